"""Read-only access to bands, musicians, projects, presets and notes templates.

``load_repository`` reads a JSON directory tree. Every legacy record shape is
normalized here, so the pipeline only ever sees the canonical dataclasses.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Final, Protocol

from stagepilot.errors import ConfigurationError, NotFoundError
from stagepilot.models import (
    Band,
    DrumSetup,
    DrumSetupItem,
    InputChannel,
    InputPreset,
    InputReplace,
    InputsPatch,
    InputTemplate,
    InputUpdate,
    LineupSlot,
    MonitoringPatch,
    MonitoringPreset,
    MonitorItem,
    MonitorType,
    Musician,
    MusicianSetupPreset,
    NoteLine,
    NotesTemplate,
    PadConfig,
    PowerRequirement,
    PresetEntity,
    PresetItem,
    PresetOverridePatch,
    PresetRefItem,
    Project,
    TalkbackItem,
    TalkbackType,
    VocalItem,
    VocalType,
)

logger = logging.getLogger(__name__)

# Older records stored lead singers under these lineup keys.
LEAD_VOCAL_ROLE_ALIASES: Final[tuple[str, ...]] = ("lead_vocs", "lead_voc")


class Repository(Protocol):
    """Lookup capability the compiler depends on. Misses raise ``NotFoundError``."""

    def get_band(self, band_id: str) -> Band: ...

    def get_musician(self, musician_id: str) -> Musician: ...

    def get_project(self, project_id: str) -> Project: ...

    def get_preset(self, ref: str) -> PresetEntity: ...

    def get_notes_template(self, template_id: str) -> NotesTemplate: ...

    def preset_refs(self) -> list[str]: ...


class InMemoryRepository:
    """Dictionary-backed repository. Duplicate ids are rejected on construction."""

    def __init__(
        self,
        *,
        bands: Iterable[Band] = (),
        musicians: Iterable[Musician] = (),
        projects: Iterable[Project] = (),
        presets: Iterable[PresetEntity] = (),
        notes_templates: Iterable[NotesTemplate] = (),
    ) -> None:
        self._bands = _index(bands, "Band")
        self._musicians = _index(musicians, "Musician")
        self._projects = _index(projects, "Project")
        self._presets = _index(presets, "Preset")
        self._notes = _index(notes_templates, "NotesTemplate")
        self._bands_by_code = {band.code.strip().lower(): band for band in self._bands.values() if band.code}

    def get_band(self, band_id: str) -> Band:
        band = self._bands.get(band_id) or self._bands_by_code.get(band_id.strip().lower())
        if band is None:
            raise NotFoundError("Band", band_id)
        return band

    def get_musician(self, musician_id: str) -> Musician:
        return _must(self._musicians, musician_id, "Musician")

    def get_project(self, project_id: str) -> Project:
        return _must(self._projects, project_id, "Project")

    def get_preset(self, ref: str) -> PresetEntity:
        return _must(self._presets, ref, "Preset")

    def get_notes_template(self, template_id: str) -> NotesTemplate:
        return _must(self._notes, template_id, "NotesTemplate")

    def preset_refs(self) -> list[str]:
        return sorted(self._presets)


def _index(records: Iterable[Any], kind: str) -> dict[str, Any]:
    indexed: dict[str, Any] = {}
    for record in records:
        if record.id in indexed:
            raise ConfigurationError(f'Duplicate {kind} id "{record.id}".')
        indexed[record.id] = record
    return indexed


def _must(records: Mapping[str, Any], entity_id: str, kind: str) -> Any:
    try:
        return records[entity_id]
    except KeyError:
        raise NotFoundError(kind, entity_id) from None


# ----------------------------------------------------------------------
# Record parsing
# ----------------------------------------------------------------------


def _require(data: Mapping[str, Any], name: str, kind: str) -> Any:
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigurationError(f"{kind} record is missing required field '{name}'.")
    return value


def input_from_dict(data: Mapping[str, Any]) -> InputChannel:
    return InputChannel(
        key=_require(data, "key", "Input"),
        label=_require(data, "label", "Input"),
        group=data.get("group"),
        note=data.get("note"),
    )


def _monitoring_type(data: Mapping[str, Any]) -> str | None:
    monitor_type = data.get("type")
    if monitor_type == "iem":
        return "iem_wireless" if data.get("connection") == "wireless" else "iem_wired"
    if monitor_type == "none":
        return "wedge"
    return monitor_type


def monitoring_from_dict(data: Mapping[str, Any]) -> MonitoringPreset:
    return MonitoringPreset(
        type=_monitoring_type(data) or "wedge",
        mode=data.get("mode", "mono"),
        mix_count=int(data.get("mix_count", 1)),
        monitor_ref=data.get("monitor_ref"),
        additional_wedge_count=int(data.get("additional_wedge_count", 0)),
    )


def setup_from_dict(data: Mapping[str, Any]) -> MusicianSetupPreset:
    return MusicianSetupPreset(
        inputs=tuple(input_from_dict(item) for item in data.get("inputs", [])),
        monitoring=monitoring_from_dict(data.get("monitoring", {})),
    )


def patch_from_dict(data: Mapping[str, Any] | None) -> PresetOverridePatch | None:
    """Parse an override patch; ``remove`` is accepted as an alias of ``remove_keys``."""
    if not data:
        return None

    monitoring = None
    if data.get("monitoring"):
        raw = data["monitoring"]
        monitoring = MonitoringPatch(
            type=_monitoring_type(raw),
            mode=raw.get("mode"),
            mix_count=raw.get("mix_count"),
            monitor_ref=raw.get("monitor_ref"),
            additional_wedge_count=raw.get("additional_wedge_count"),
        )

    inputs = None
    if data.get("inputs"):
        raw = data["inputs"]
        remove_keys = [*raw.get("remove_keys", []), *raw.get("remove", [])]
        inputs = InputsPatch(
            add=tuple(input_from_dict(item) for item in raw.get("add", [])),
            remove_keys=tuple(dict.fromkeys(remove_keys)),
            update=tuple(
                InputUpdate(
                    key=_require(item, "key", "Input update"),
                    label=item.get("label"),
                    note=item.get("note"),
                    group=item.get("group"),
                )
                for item in raw.get("update", [])
            ),
            replace=tuple(
                InputReplace(
                    target_key=_require(item, "target_key", "Input replace"),
                    replacement=input_from_dict(_require(item, "with", "Input replace")),
                )
                for item in raw.get("replace", [])
            ),
        )

    return PresetOverridePatch(monitoring=monitoring, inputs=inputs)


def drum_setup_from_dict(data: Mapping[str, Any]) -> DrumSetup:
    raw_pad = data.get("pad") or {}
    pad = PadConfig(
        enabled=bool(raw_pad.get("enabled", False)),
        mode=raw_pad.get("mode"),
        channels=raw_pad.get("channels"),
    )
    return DrumSetup(
        tom_count=data.get("tom_count", 1),
        floor_tom_count=data.get("floor_tom_count", 1),
        has_hihat=bool(data.get("has_hihat", True)),
        has_overheads=bool(data.get("has_overheads", True)),
        extra_snare_count=data.get("extra_snare_count", 0),
        pad=pad,
    )


def preset_item_from_dict(data: Mapping[str, Any] | str) -> PresetItem:
    """Parse one musician preset item. A bare string is a legacy ``preset`` ref."""
    if isinstance(data, str):
        return PresetRefItem(ref=data)

    kind = data.get("kind", "preset")
    if kind == "preset":
        return PresetRefItem(ref=_require(data, "ref", "Preset item"))
    if kind == "drum_setup":
        return DrumSetupItem(setup=drum_setup_from_dict(data.get("setup", {})))
    if kind == "vocal":
        return VocalItem(
            ref=_require(data, "ref", "Vocal item"),
            owner_key=data.get("owner_key"),
            owner_label=data.get("owner_label"),
        )
    if kind == "talkback":
        return TalkbackItem(
            ref=_require(data, "ref", "Talkback item"),
            owner_key=data.get("owner_key"),
            owner_label=data.get("owner_label"),
        )
    if kind == "monitor":
        return MonitorItem(ref=_require(data, "ref", "Monitor item"))
    raise ConfigurationError(f"Unknown preset item kind: {kind}")


def _template_from_dict(data: Mapping[str, Any]) -> InputTemplate:
    return InputTemplate(
        key=_require(data, "key", "Input template"),
        label=_require(data, "label", "Input template"),
        note=data.get("note"),
    )


def preset_entity_from_dict(data: Mapping[str, Any]) -> PresetEntity:
    entity_type = data.get("type", "preset")
    entity_id = _require(data, "id", "Preset")
    label = data.get("label", entity_id)

    if entity_type == "preset":
        group = _require(data, "group", "Preset")
        return InputPreset(
            id=entity_id,
            label=label,
            group=group,
            inputs=tuple(input_from_dict(item) for item in data.get("inputs", [])),
        )
    if entity_type == "vocal_type":
        return VocalType(
            id=entity_id,
            label=label,
            input=_template_from_dict(_require(data, "input", "Vocal type")),
            group=data.get("group", "vocs"),
        )
    if entity_type == "talkback_type":
        return TalkbackType(
            id=entity_id,
            label=label,
            input=_template_from_dict(_require(data, "input", "Talkback type")),
            group=data.get("group", "talkback"),
        )
    if entity_type == "monitor":
        return MonitorType(
            id=entity_id,
            label=label,
            mode=data.get("mode"),
            wireless=bool(data.get("wireless", False)),
        )
    raise ConfigurationError(f'Unknown preset type "{entity_type}" for "{entity_id}".')


def _power_from_dict(data: Mapping[str, Any] | None) -> PowerRequirement | None:
    if not data:
        return None
    return PowerRequirement(sockets=int(data["sockets"]), voltage=int(data.get("voltage", 230)))


def musician_from_dict(data: Mapping[str, Any]) -> Musician:
    contact = data.get("contact") or {}
    requirements = data.get("requirements") or {}
    defaults = data.get("setup_defaults")
    return Musician(
        id=_require(data, "id", "Musician"),
        first_name=_require(data, "first_name", "Musician"),
        last_name=data.get("last_name", ""),
        gender=data.get("gender", "x"),
        group=data.get("group"),
        presets=tuple(preset_item_from_dict(item) for item in data.get("presets", [])),
        power=_power_from_dict(requirements.get("power")),
        phone=contact.get("phone"),
        email=contact.get("email"),
        setup_defaults=setup_from_dict(defaults) if defaults else None,
    )


def _lineup_ids(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    return tuple(item for item in value if isinstance(item, str) and item.strip())


def _canonical_roles(raw: Mapping[str, Any]) -> dict[str, Any]:
    roles = dict(raw)
    for alias in LEAD_VOCAL_ROLE_ALIASES:
        if alias in roles:
            value = roles.pop(alias)
            if not roles.get("vocs"):
                logger.warning("Lineup role '%s' read as 'vocs'", alias)
                roles["vocs"] = value
    return roles


def band_from_dict(data: Mapping[str, Any]) -> Band:
    lineup = _canonical_roles(data.get("default_lineup") or {})
    return Band(
        id=_require(data, "id", "Band"),
        name=_require(data, "name", "Band"),
        leader_id=str(data.get("leader") or data.get("band_leader") or "").strip(),
        default_lineup={role: _lineup_ids(value) for role, value in lineup.items()},
        code=data.get("code"),
        default_contact_id=data.get("default_contact_id"),
        notes_template_ref=data.get("notes_template_ref"),
        setup_defaults={role: setup_from_dict(value) for role, value in (data.get("setup_defaults") or {}).items()},
    )


def _slot_from_value(value: Any) -> LineupSlot | None:
    if isinstance(value, str):
        return LineupSlot(musician_id=value) if value.strip() else None
    if isinstance(value, Mapping):
        musician_id = value.get("musician_id")
        if not musician_id:
            return None
        return LineupSlot(musician_id=musician_id, preset_override=patch_from_dict(value.get("preset_override")))
    return None


def _slots(value: Any) -> tuple[LineupSlot, ...]:
    values = value if isinstance(value, list) else [value]
    return tuple(slot for slot in (_slot_from_value(item) for item in values) if slot is not None)


def project_from_dict(data: Mapping[str, Any]) -> Project:
    """Parse a project. The legacy ``date``/``venue`` shape becomes an event project."""
    event_date = data.get("event_date") or data.get("date")
    event_venue = data.get("event_venue") or data.get("venue")
    purpose = data.get("purpose") or ("event" if event_date else "generic")
    lineup = _canonical_roles(data.get("lineup") or {})
    back_vocals = data.get("back_vocal_ids")
    stageplan = data.get("stageplan") or {}

    return Project(
        id=_require(data, "id", "Project"),
        band_id=_require(data, "band_id", "Project"),
        purpose=purpose,
        document_date=data.get("document_date") or event_date or "",
        lineup={role: _slots(value) for role, value in lineup.items()},
        event_date=event_date,
        event_venue=event_venue,
        title=data.get("title"),
        back_vocal_ids=tuple(back_vocals) if back_vocals is not None else None,
        talkback_owner_id=data.get("talkback_owner_id"),
        power_overrides={
            musician_id: power
            for musician_id, raw in (stageplan.get("power_overrides") or {}).items()
            if (power := _power_from_dict(raw)) is not None
        },
    )


def notes_template_from_dict(data: Mapping[str, Any]) -> NotesTemplate:
    def lines(items: Iterable[Mapping[str, Any]]) -> tuple[NoteLine, ...]:
        return tuple(
            NoteLine(
                id=_require(item, "id", "Note"),
                text=_require(item, "text", "Note"),
                severity=item.get("severity", "info"),
                requires_wedge=bool(((item.get("when") or {}).get("monitors") or {}).get("has_wedge")),
            )
            for item in items
        )

    return NotesTemplate(
        id=_require(data, "id", "NotesTemplate"),
        lang=data.get("lang", "cs"),
        inputs=lines(data.get("inputs", [])),
        monitors=lines(data.get("monitors", [])),
    )


# ----------------------------------------------------------------------
# JSON directory loader
# ----------------------------------------------------------------------


def _read_records(directory: Path) -> list[Mapping[str, Any]]:
    """Every JSON object under ``directory``; a file may hold one object or a list."""
    if not directory.is_dir():
        logger.debug("Skipping missing data directory %s", directory)
        return []
    records: list[Mapping[str, Any]] = []
    for path in sorted(directory.rglob("*.json")):
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc
        records.extend(payload if isinstance(payload, list) else [payload])
    return records


def load_repository(data_root: str | Path) -> InMemoryRepository:
    """Load ``bands/``, ``musicians/``, ``projects/``, ``presets/`` and ``notes/`` below ``data_root``."""
    root = Path(data_root)
    if not root.is_dir():
        raise ConfigurationError(f"Data directory not found: {root}")

    repo = InMemoryRepository(
        bands=[band_from_dict(item) for item in _read_records(root / "bands")],
        musicians=[musician_from_dict(item) for item in _read_records(root / "musicians")],
        projects=[project_from_dict(item) for item in _read_records(root / "projects")],
        presets=[preset_entity_from_dict(item) for item in _read_records(root / "presets")],
        notes_templates=[notes_template_from_dict(item) for item in _read_records(root / "notes")],
    )
    logger.info("Loaded data repository from %s", root)
    return repo
