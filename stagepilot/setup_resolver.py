"""Resolve a musician's effective setup from defaults plus an event override."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

from stagepilot.drum_kit import drum_rank
from stagepilot.models import (
    InputChannel,
    InputDiff,
    MonitoringFieldDiff,
    MonitoringPreset,
    MonitorType,
    MusicianSetupPreset,
    PresetOverridePatch,
    SetupDiff,
    group_rank,
)
from stagepilot.preset_override import (
    apply_preset_override,
    create_default_musician_preset,
    normalize_setup_override_patch,
)

BASS_INPUT_PRIORITY: Final[dict[str, int]] = {
    "el_bass_xlr_amp": 0,
    "el_bass_xlr_pedalboard": 0,
    "el_bass_mic": 1,
    "bass_synth": 2,
}
_DEFAULT_BASS_PRIORITY: Final[int] = 50

DIFFED_MONITORING_FIELDS: Final[tuple[str, ...]] = ("type", "mode", "mix_count")


@dataclass(frozen=True)
class EffectiveSetup:
    effective_inputs: tuple[InputChannel, ...]
    effective_monitoring: MonitoringPreset
    diff_meta: SetupDiff
    default_preset: MusicianSetupPreset
    patch: PresetOverridePatch | None = None

    @property
    def effective_preset(self) -> MusicianSetupPreset:
        return MusicianSetupPreset(inputs=self.effective_inputs, monitoring=self.effective_monitoring)


def _role_priority(channel: InputChannel, group: str | None) -> int:
    if group == "drums":
        return drum_rank(channel.key)
    if group == "bass":
        return BASS_INPUT_PRIORITY.get(channel.key, _DEFAULT_BASS_PRIORITY)
    return 0


def order_inputs(inputs: Iterable[InputChannel], role: str | None = None) -> tuple[InputChannel, ...]:
    """Sort by group rank, then the role's own priority table, then key.

    Inputs without a group are ranked as belonging to ``role``.
    """

    def sort_key(channel: InputChannel) -> tuple[int, int, str]:
        group = channel.group or role
        return (group_rank(group), _role_priority(channel, group), channel.key)

    return tuple(sorted(inputs, key=sort_key))


def monitoring_from_entity(entity: MonitorType) -> MonitoringPreset:
    """Map a monitor library entity onto a one-mix monitoring preset."""
    if entity.wireless:
        monitor_type = "iem_wireless"
    elif entity.id.startswith("iem"):
        monitor_type = "iem_wired"
    else:
        monitor_type = "wedge"
    return MonitoringPreset(
        type=monitor_type,
        mode=entity.mode or "mono",
        mix_count=1,
        monitor_ref=entity.id,
    )


def compute_setup_diff(
    default_inputs: Iterable[InputChannel],
    effective_inputs: Iterable[InputChannel],
    patch: PresetOverridePatch | None,
) -> SetupDiff:
    """Tag every default and added input, and each monitoring field, with its origin."""
    effective_by_key = {item.key: item for item in effective_inputs}
    ops = patch.inputs if patch is not None else None
    removed = set(ops.remove_keys) if ops is not None else set()
    if ops is not None:
        removed.update(entry.target_key for entry in ops.replace)
    added_keys: list[str] = []
    if ops is not None:
        added_keys.extend(entry.replacement.key for entry in ops.replace)
        added_keys.extend(item.key for item in ops.add)

    input_diffs: list[InputDiff] = []
    for item in default_inputs:
        if item.key in removed:
            input_diffs.append(InputDiff(item.key, item.label, "override", "removed"))
        else:
            label = effective_by_key[item.key].label if item.key in effective_by_key else item.label
            input_diffs.append(InputDiff(item.key, label, "default", "unchanged"))
    for key in added_keys:
        if key in effective_by_key:
            input_diffs.append(InputDiff(key, effective_by_key[key].label, "override", "added"))

    touched = patch.monitoring.touched_fields() if patch is not None and patch.monitoring else {}
    monitoring_diffs = tuple(
        MonitoringFieldDiff(name, "override", "changed")
        if name in touched
        else MonitoringFieldDiff(name, "default", "unchanged")
        for name in DIFFED_MONITORING_FIELDS
    )
    return SetupDiff(inputs=tuple(input_diffs), monitoring=monitoring_diffs)


def resolve_effective_musician_setup(
    *,
    role: str,
    musician_defaults: MusicianSetupPreset | None = None,
    band_defaults: MusicianSetupPreset | None = None,
    event_override: PresetOverridePatch | None = None,
) -> EffectiveSetup:
    """
    Merge defaults and an event override into one effective setup.

    Precedence for the default: musician defaults, then band defaults, then the
    built-in empty wedge setup. Both input lists are role-ordered before the
    diff is computed. Stored defaults are never changed, so resolving again
    without an override reproduces the default exactly.
    """
    if musician_defaults is not None:
        source = musician_defaults
    elif band_defaults is not None:
        source = band_defaults
    else:
        source = create_default_musician_preset()

    default_preset = MusicianSetupPreset(inputs=order_inputs(source.inputs, role), monitoring=source.monitoring)
    patch = normalize_setup_override_patch(default_preset, event_override)
    effective = apply_preset_override(default_preset, patch)
    effective_inputs = order_inputs(effective.inputs, role)

    return EffectiveSetup(
        effective_inputs=effective_inputs,
        effective_monitoring=effective.monitoring,
        diff_meta=compute_setup_diff(default_preset.inputs, effective_inputs, patch),
        default_preset=default_preset,
        patch=patch,
    )
