"""Apply event-specific override patches to a musician's default setup."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Final

from stagepilot.errors import OverrideCollisionError
from stagepilot.models import (
    GROUP_ORDER,
    InputChannel,
    InputReplace,
    InputsPatch,
    InputUpdate,
    MonitoringPatch,
    MonitoringPreset,
    MusicianSetupPreset,
    PresetOverridePatch,
    group_rank,
)

MAX_INPUT_CHANNELS: Final[int] = 30
MAX_MONITOR_MIXES: Final[int] = 6

# Main bass inputs are mutually exclusive connection variants.
BASS_MAIN_KEYS: Final[tuple[str, ...]] = ("el_bass_xlr_amp", "el_bass_xlr_pedalboard")


def create_default_musician_preset() -> MusicianSetupPreset:
    """Built-in fallback: no inputs and a single mono wedge."""
    return MusicianSetupPreset()


# ----------------------------------------------------------------------
# Private helpers
# ----------------------------------------------------------------------


def _merge_monitoring(base: MonitoringPreset, patch: MonitoringPatch | None) -> MonitoringPreset:
    if patch is None:
        return base
    changes = patch.touched_fields()
    # A new monitor type without a new ref must not keep the old entity label.
    if "type" in changes and "monitor_ref" not in changes and changes["type"] != base.type:
        changes["monitor_ref"] = None
    return replace(base, **changes)


def _apply_update(channel: InputChannel, update: InputUpdate) -> InputChannel:
    changes = {
        name: value
        for name, value in (("label", update.label), ("note", update.note), ("group", update.group))
        if value is not None
    }
    return replace(channel, **changes)


def _apply_replace(inputs: list[InputChannel], entry: InputReplace) -> list[InputChannel]:
    new_key = entry.replacement.key
    if any(item.key == new_key and item.key != entry.target_key for item in inputs):
        raise OverrideCollisionError(new_key)
    if not any(item.key == entry.target_key for item in inputs):
        return [*inputs, entry.replacement]
    return [entry.replacement if item.key == entry.target_key else item for item in inputs]


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------


def apply_preset_override(
    default: MusicianSetupPreset,
    patch: PresetOverridePatch | None,
) -> MusicianSetupPreset:
    """
    Return the effective setup for ``default`` with ``patch`` applied.

    Operations run in a fixed order: monitoring overlay, remove, update,
    replace, add. Removal wins over an update for the same key. ``default`` is
    never modified, so applying the same patch twice gives the same result.

    Raises:
        OverrideCollisionError: If an added or replacing input reuses a key
            that still exists after removal.
    """
    if patch is None:
        return default

    monitoring = _merge_monitoring(default.monitoring, patch.monitoring)
    inputs = list(default.inputs)
    ops = patch.inputs

    if ops is not None:
        removed = set(ops.remove_keys)
        inputs = [item for item in inputs if item.key not in removed]

        for update in ops.update:
            inputs = [_apply_update(item, update) if item.key == update.key else item for item in inputs]

        for entry in ops.replace:
            inputs = _apply_replace(inputs, entry)

        for added in ops.add:
            if any(item.key == added.key for item in inputs):
                raise OverrideCollisionError(added.key)
            inputs.append(added)

    return MusicianSetupPreset(inputs=tuple(inputs), monitoring=monitoring)


def normalize_patch(patch: PresetOverridePatch | None) -> PresetOverridePatch | None:
    """Drop empty sections; return ``None`` when nothing is left."""
    if patch is None:
        return None

    monitoring = patch.monitoring
    if monitoring is not None:
        if monitoring.additional_wedge_count is not None and monitoring.additional_wedge_count <= 0:
            monitoring = replace(monitoring, additional_wedge_count=None)
        if not monitoring.touched_fields():
            monitoring = None

    inputs = patch.inputs
    if inputs is not None and inputs.is_empty():
        inputs = None

    if monitoring is None and inputs is None:
        return None
    return PresetOverridePatch(monitoring=monitoring, inputs=inputs)


def normalize_bass_connection(
    default: MusicianSetupPreset,
    patch: PresetOverridePatch | None,
) -> PresetOverridePatch | None:
    """Turn an ``add`` of a bass main input into a ``replace`` of the default one.

    Older editors switched the bass connection by adding the other variant,
    which would collide with the default main input.
    """
    if patch is None or patch.inputs is None:
        return patch

    ops = patch.inputs
    default_main = next((item.key for item in default.inputs if item.key in BASS_MAIN_KEYS), None)
    if default_main is None or default_main in ops.remove_keys:
        return patch

    kept: list[InputChannel] = []
    replacements = list(ops.replace)
    for added in ops.add:
        if added.key in BASS_MAIN_KEYS and added.key != default_main and not replacements:
            replacements.append(InputReplace(target_key=default_main, replacement=added))
        else:
            kept.append(added)

    if len(replacements) == len(ops.replace):
        return patch
    return replace(patch, inputs=replace(ops, add=tuple(kept), replace=tuple(replacements)))


def is_patch_different_from_default(
    default: MusicianSetupPreset,
    patch: PresetOverridePatch | None,
) -> bool:
    return apply_preset_override(default, patch) != default


def normalize_setup_override_patch(
    default: MusicianSetupPreset,
    patch: PresetOverridePatch | None,
) -> PresetOverridePatch | None:
    """Canonical form of ``patch`` for ``default``; ``None`` when it changes nothing."""
    normalized = normalize_bass_connection(default, normalize_patch(patch))
    if normalized is None or not is_patch_different_from_default(default, normalized):
        return None
    return normalized


def build_changed_summary(default: MusicianSetupPreset, effective: MusicianSetupPreset) -> list[str]:
    """Short human-readable list of what an override changed."""
    default_by_key = {item.key: item for item in default.inputs}
    effective_by_key = {item.key: item for item in effective.inputs}

    added = [key for key in effective_by_key if key not in default_by_key]
    removed = [key for key in default_by_key if key not in effective_by_key]
    changed = [
        key for key, item in effective_by_key.items() if key in default_by_key and default_by_key[key] != item
    ]

    summary: list[str] = []
    if added:
        summary.append(f"+{len(added)} input(s)")
    if removed:
        summary.append(f"-{len(removed)} input(s)")
    if changed:
        summary.append(f"{len(changed)} changed")
    if default.monitoring != effective.monitoring:
        summary.append("monitoring")
    return summary


@dataclass(frozen=True)
class PresetValidationSummary:
    errors: tuple[str, ...]
    total_inputs: int
    total_monitor_mixes: int

    @property
    def ok(self) -> bool:
        return not self.errors


def summarize_effective_preset_validation(
    slots: Sequence[tuple[str, MusicianSetupPreset]],
) -> PresetValidationSummary:
    """
    Check lineup-wide limits over ``(role, effective setup)`` pairs.

    The limits are venue constraints: 30 input channels, 6 monitor mixes and
    the fixed stage order of roles.
    """
    total_inputs = sum(len(setup.inputs) for _, setup in slots)
    total_mixes = sum(setup.monitoring.mix_count for _, setup in slots)

    errors: list[str] = []
    if total_inputs > MAX_INPUT_CHANNELS:
        errors.append(f"Total input channels exceed limit: {total_inputs}/{MAX_INPUT_CHANNELS}.")
    if total_mixes > MAX_MONITOR_MIXES:
        errors.append(f"Total monitor mixes exceed limit: {total_mixes}/{MAX_MONITOR_MIXES}.")

    ranks = [group_rank(role) for role, _ in slots]
    if ranks != sorted(ranks):
        errors.append(f"Group order must stay fixed: {', '.join(GROUP_ORDER)}.")

    return PresetValidationSummary(
        errors=tuple(errors),
        total_inputs=total_inputs,
        total_monitor_mixes=total_mixes,
    )


def create_patch(
    *,
    add: Sequence[InputChannel] = (),
    remove_keys: Sequence[str] = (),
    update: Sequence[InputUpdate] = (),
    monitoring: MonitoringPatch | None = None,
) -> PresetOverridePatch:
    """Convenience constructor used by the editor boundary and tests."""
    inputs = InputsPatch(add=tuple(add), remove_keys=tuple(remove_keys), update=tuple(update))
    return PresetOverridePatch(monitoring=monitoring, inputs=None if inputs.is_empty() else inputs)
