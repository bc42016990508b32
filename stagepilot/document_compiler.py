"""DocumentCompiler: turns a project into a numbered input list and stage plan."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Final

from stagepilot.document_models import (
    DocumentMeta,
    DocumentNotes,
    DocumentViewModel,
    MonitorEntry,
    MonitorTableRow,
    NumberedInput,
    StageplanInput,
    StageplanPerson,
    StageplanViewModel,
)
from stagepilot.drum_kit import migrate_legacy_drum_preset_refs, resolve_drum_inputs
from stagepilot.errors import CapacityError, ConfigurationError, InternalInvariantError, ValidationError
from stagepilot.formatters import (
    build_export_file_name,
    format_contact_line,
    format_meta_line,
    format_monitor_note,
    format_power_badge,
    format_vocal_label,
)
from stagepilot.input_list import (
    LEAD_VOCAL_KEY_PREFIX,
    assign_channel_numbers,
    build_input_rows,
    disambiguate_input_keys,
    is_spare,
    reposition_acoustic_guitars,
    sort_inputs,
)
from stagepilot.lineup import (
    ResolvedLineup,
    default_back_vocal_ref,
    default_talkback_ref,
    resolve_effective_preset_items,
    resolve_lineup,
)
from stagepilot.models import (
    PROJECT_PURPOSES,
    Band,
    InputChannel,
    MonitoringPreset,
    MonitorType,
    Musician,
    MusicianSetupPreset,
    Project,
)
from stagepilot.preset_expansion import ExpandedPresets, expand_musician_presets, is_lead_vocalist
from stagepilot.preset_override import MAX_INPUT_CHANNELS, summarize_effective_preset_validation
from stagepilot.repository import Repository
from stagepilot.setup_resolver import EffectiveSetup, monitoring_from_entity, resolve_effective_musician_setup
from stagepilot.stageplan_layout import LayoutSettings, build_stageplan_plan

logger = logging.getLogger(__name__)

DEFAULT_NOTES_TEMPLATE: Final[str] = "notes_default_cs"
MONITOR_TABLE_ORDER: Final[tuple[str, ...]] = ("guitar", "vocs", "keys", "bass", "drums")
MONITOR_OUTPUT_LABELS: Final[dict[str, str]] = {
    "guitar": "Guitar",
    "keys": "Keys",
    "bass": "Bass",
    "drums": "Drums",
}


@dataclass(frozen=True)
class MusicianSetup:
    """Resolved setup of one musician in one role."""

    role: str
    musician: Musician
    setup: EffectiveSetup
    monitor: MonitorType | None = None


def band_leader_error(band: Band) -> str:
    return f"Band '{band.id}' must define bandLeader referencing an existing musician id."


class DocumentCompiler:
    """
    Compile a project into a ``DocumentViewModel``.

    The pipeline is: lineup resolution, back vocal and talkback injection,
    preset expansion, legacy drum migration, per-musician override
    resolution, lineup-wide limits, global ordering and numbering, then the
    stage plan layout. Any error aborts the whole compilation.
    """

    def __init__(
        self,
        repo: Repository,
        *,
        notes_template: str = DEFAULT_NOTES_TEMPLATE,
        layout_settings: LayoutSettings | None = None,
    ) -> None:
        self.repo = repo
        self.notes_template = notes_template
        self.layout_settings = layout_settings or LayoutSettings()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _validate_project(self, project: Project) -> None:
        if project.purpose not in PROJECT_PURPOSES:
            raise ConfigurationError(f"Project '{project.id}' has unknown purpose '{project.purpose}'.")
        if not project.document_date:
            raise ConfigurationError(f"Project '{project.id}' is missing a document date.")
        if project.purpose == "event" and not (project.event_date and project.event_venue):
            raise ConfigurationError(f"Event project '{project.id}' requires an event date and venue.")
        for name in ("document_date", "event_date"):
            value = getattr(project, name)
            if value is None:
                continue
            try:
                date.fromisoformat(value.strip()[:10])
            except ValueError:
                raise ConfigurationError(
                    f"Project '{project.id}' has an invalid {name} '{value}', expected YYYY-MM-DD."
                ) from None

    def _validate_band_leader(self, band: Band, lineup: ResolvedLineup) -> None:
        if not band.leader_id or band.leader_id not in lineup.musician_ids():
            raise ConfigurationError(band_leader_error(band))

    def _expand_lineup(
        self,
        project: Project,
        lineup: ResolvedLineup,
        musicians: dict[str, Musician],
    ) -> dict[str, ExpandedPresets]:
        refs = self.repo.preset_refs()
        items = resolve_effective_preset_items(
            lineup,
            musicians,
            back_vocal_ids=project.back_vocal_ids,
            back_vocal_ref=default_back_vocal_ref(refs),
            talkback_ref=default_talkback_ref(refs),
        )
        expanded = {
            musician_id: expand_musician_presets(musicians[musician_id], items[musician_id], role=role, repo=self.repo)
            for role, musician_id in lineup.assignments()
        }

        # Legacy drum tokens are migrated only once everything else is expanded.
        for musician_id, result in expanded.items():
            if result.legacy_drum_refs and not result.has_drum_setup:
                setup = migrate_legacy_drum_preset_refs(result.legacy_drum_refs)
                logger.debug("Migrated legacy drum refs of %s: %s", musician_id, result.legacy_drum_refs)
                expanded[musician_id] = replace(result, inputs=(*result.inputs, *resolve_drum_inputs(setup)))
        return expanded

    def _musician_defaults(self, musician: Musician, expanded: ExpandedPresets) -> MusicianSetupPreset | None:
        """Expanded presets first, then the musician's stored defaults."""
        stored = musician.setup_defaults
        if not expanded.inputs and expanded.monitor is None:
            return stored
        inputs = expanded.inputs or (stored.inputs if stored else ())
        if expanded.monitor is not None:
            monitoring = monitoring_from_entity(expanded.monitor)
        elif stored is not None:
            monitoring = stored.monitoring
        else:
            monitoring = MonitoringPreset()
        return MusicianSetupPreset(inputs=inputs, monitoring=monitoring)

    def _monitor_entity(self, monitoring: MonitoringPreset) -> MonitorType | None:
        if monitoring.monitor_ref is None:
            return None
        entity = self.repo.get_preset(monitoring.monitor_ref)
        if not isinstance(entity, MonitorType):
            raise ConfigurationError(
                f'Monitoring references "{monitoring.monitor_ref}" of type "{entity.kind}", expected "monitor".'
            )
        return entity

    def _leads(self, setups: list[MusicianSetup]) -> list[MusicianSetup]:
        """Lead vocalists in lineup order, the same order their lead inputs are numbered in."""
        return [entry for entry in setups if is_lead_vocalist(entry.musician)]

    def _label_leads(self, inputs: list[InputChannel], lead_count: int) -> list[InputChannel]:
        genders = {item.owner_gender for item in inputs if item.key.startswith(LEAD_VOCAL_KEY_PREFIX)}
        mixed = len(genders - {None, "x"}) > 1
        labelled: list[InputChannel] = []
        index = 0
        for item in inputs:
            if not item.key.startswith(LEAD_VOCAL_KEY_PREFIX):
                labelled.append(item)
                continue
            index += 1
            label = format_vocal_label(index, lead_count, item.owner_gender, show_gender=mixed)
            labelled.append(replace(item, label=label))
        return labelled

    def _finalize_inputs(self, inputs: list[InputChannel], lead_count: int) -> list[NumberedInput]:
        if not inputs:
            raise ValidationError("No inputs generated for this project.")

        ordered = reposition_acoustic_guitars(sort_inputs(inputs))
        ordered = self._label_leads(disambiguate_input_keys(ordered), lead_count)

        seen: set[str] = set()
        for item in ordered:
            if item.key in seen:
                raise InternalInvariantError(f"Duplicate input key after disambiguation: {item.key}")
            seen.add(item.key)

        numbered = assign_channel_numbers(ordered)
        # Spare channels before odd-start stereo pairs count against the desk too.
        highest = max(item.channel_no for item in numbered)
        if highest > MAX_INPUT_CHANNELS:
            raise CapacityError(f"Channel numbering exceeds limit: {highest}/{MAX_INPUT_CHANNELS}.")
        return numbered

    def _monitor_rows(self, setups: list[MusicianSetup], leads: list[MusicianSetup]) -> list[MonitorTableRow]:
        by_role = {entry.role: entry for entry in reversed(setups)}
        rows: list[MonitorTableRow] = []
        genders = {entry.musician.gender for entry in leads} - {"x"}
        for role in MONITOR_TABLE_ORDER:
            if role == "vocs":
                for index, entry in enumerate(leads, start=1):
                    rows.append(
                        MonitorTableRow(
                            no=len(rows) + 1,
                            output=format_vocal_label(
                                index, len(leads), entry.musician.gender, show_gender=len(genders) > 1
                            ),
                            note=format_monitor_note(entry.setup.effective_monitoring, entry.monitor),
                            role="vocs",
                            lead_index=index,
                        )
                    )
                continue
            entry = by_role.get(role)
            if entry is None:
                continue
            rows.append(
                MonitorTableRow(
                    no=len(rows) + 1,
                    output=MONITOR_OUTPUT_LABELS[role],
                    note=format_monitor_note(entry.setup.effective_monitoring, entry.monitor),
                    role=role,
                )
            )
        return rows

    def _monitor_entries(self, setups: list[MusicianSetup]) -> list[MonitorEntry]:
        entries: list[MonitorEntry] = []
        for entry in setups:
            monitoring = entry.setup.effective_monitoring
            wireless = entry.monitor.wireless if entry.monitor else monitoring.type == "iem_wireless"
            entries.append(
                MonitorEntry(
                    musician_id=entry.musician.id,
                    role=entry.role,
                    kind="iem" if wireless else "wedge",
                    ref=monitoring.monitor_ref,
                )
            )
            if monitoring.additional_wedge_count > 0:
                entries.append(MonitorEntry(musician_id=entry.musician.id, role=entry.role, kind="wedge"))
        return entries

    def _person(self, project: Project, band: Band, musician: Musician) -> StageplanPerson:
        power = project.power_overrides.get(musician.id) or musician.power
        return StageplanPerson(
            musician_id=musician.id,
            first_name=musician.first_name,
            is_band_leader=musician.id == band.leader_id,
            power_badge=format_power_badge(power) if power else None,
        )

    def _stageplan(
        self,
        project: Project,
        band: Band,
        lineup: ResolvedLineup,
        leads: list[MusicianSetup],
        numbered: list[NumberedInput],
        monitor_rows: list[MonitorTableRow],
    ) -> StageplanViewModel:
        lineup_by_role: dict[str, StageplanPerson] = {}
        for role, musician_ids in lineup.roles.items():
            if musician_ids and role != "talkback":
                lineup_by_role[role] = self._person(project, band, self.repo.get_musician(musician_ids[0]))
        lead_people = tuple(self._person(project, band, entry.musician) for entry in leads)
        if lead_people:
            lineup_by_role["vocs"] = lead_people[0]

        return StageplanViewModel(
            lineup_by_role=lineup_by_role,
            lead_vocals=lead_people,
            inputs=tuple(
                StageplanInput(channel_no=item.channel_no, key=item.key, label=item.label, group=item.group)
                for item in numbered
                if not is_spare(item)
            ),
            monitor_outputs=tuple(monitor_rows),
            power_by_role={
                role: person.power_badge for role, person in lineup_by_role.items() if person.power_badge
            },
        )

    def _notes(self, band: Band, monitors: list[MonitorEntry]) -> DocumentNotes:
        template = self.repo.get_notes_template(band.notes_template_ref or self.notes_template)
        has_wedge = any(entry.kind == "wedge" for entry in monitors)
        return DocumentNotes(
            inputs=tuple(line.text for line in template.inputs if not line.requires_wedge or has_wedge),
            monitors=tuple(line.text for line in template.monitors if not line.requires_wedge or has_wedge),
        )

    def _meta(self, project: Project, band: Band) -> DocumentMeta:
        contact_line = None
        if band.default_contact_id:
            contact_line = format_contact_line(self.repo.get_musician(band.default_contact_id))
        return DocumentMeta(
            project_id=project.id,
            band_name=band.name,
            band_code=band.code,
            purpose=project.purpose,
            document_date=project.document_date,
            meta_line=format_meta_line(project),
            event_date=project.event_date,
            event_venue=project.event_venue,
            title=project.title,
            contact_line=contact_line,
            export_file_name=build_export_file_name(project, band),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_setups(self, project_id: str) -> list[MusicianSetup]:
        """
        Effective setup of every musician in the project's lineup.

        Raises:
            NotFoundError: If the project, band, a musician or a preset is missing.
            ConfigurationError: For inconsistent records or a missing band leader.
            ValidationError: For drum setup errors or override collisions.
        """
        project = self.repo.get_project(project_id)
        band = self.repo.get_band(project.band_id)
        self._validate_project(project)

        lineup = resolve_lineup(project, band)
        musicians = {musician_id: self.repo.get_musician(musician_id) for musician_id in lineup.musician_ids()}
        self._validate_band_leader(band, lineup)

        expanded = self._expand_lineup(project, lineup, musicians)
        setups: list[MusicianSetup] = []
        for role, musician_id in lineup.assignments():
            musician = musicians[musician_id]
            setup = resolve_effective_musician_setup(
                role=role,
                musician_defaults=self._musician_defaults(musician, expanded[musician_id]),
                band_defaults=band.setup_defaults.get(role),
                event_override=lineup.overrides.get(musician_id),
            )
            logger.debug("%s as %s: %d input(s)", musician_id, role, len(setup.effective_inputs))
            setups.append(
                MusicianSetup(
                    role=role,
                    musician=musician,
                    setup=setup,
                    monitor=self._monitor_entity(setup.effective_monitoring),
                )
            )
        return setups

    def compile(self, project_id: str) -> DocumentViewModel:
        """
        Compile one project.

        Raises:
            CapacityError: If the lineup exceeds 30 input channels, spares included, or 6 monitor mixes.
            LayoutOverflowError: If the stage plan does not fit.
            StagePilotError: Any other failure from the pipeline stages.
        """
        project = self.repo.get_project(project_id)
        band = self.repo.get_band(project.band_id)
        setups = self.resolve_setups(project_id)
        lineup = resolve_lineup(project, band)

        summary = summarize_effective_preset_validation(
            [(entry.role, entry.setup.effective_preset) for entry in setups]
        )
        if not summary.ok:
            raise CapacityError(summary.errors)

        leads = self._leads(setups)
        inputs = [item for entry in setups for item in entry.setup.effective_inputs]
        numbered = self._finalize_inputs(inputs, len(leads))
        monitors = self._monitor_entries(setups)
        monitor_rows = self._monitor_rows(setups, leads)
        stageplan = self._stageplan(project, band, lineup, leads, numbered, monitor_rows)
        plan = build_stageplan_plan(stageplan, self.layout_settings)

        logger.info(
            "Compiled project %s: %d channel(s), %d monitor output(s), %s",
            project.id,
            len(numbered),
            len(monitor_rows),
            plan.layout_id,
        )
        return DocumentViewModel(
            meta=self._meta(project, band),
            inputs=tuple(numbered),
            input_rows=tuple(build_input_rows(numbered)),
            monitors=tuple(monitors),
            monitor_table_rows=tuple(monitor_rows),
            notes=self._notes(band, monitors),
            stageplan=stageplan,
            stageplan_plan=plan,
        )


def build_document(
    project_id: str,
    repo: Repository,
    *,
    notes_template: str = DEFAULT_NOTES_TEMPLATE,
    layout_settings: LayoutSettings | None = None,
) -> DocumentViewModel:
    """Compile ``project_id`` with a throwaway ``DocumentCompiler``."""
    compiler = DocumentCompiler(repo, notes_template=notes_template, layout_settings=layout_settings)
    return compiler.compile(project_id)
