"""Data model for band rosters, the preset library and musician setups.

All records are immutable. Pipeline stages derive new records with
``dataclasses.replace`` instead of mutating what the repository handed out.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import ClassVar, Final, Union

GROUP_ORDER: Final[tuple[str, ...]] = ("drums", "bass", "guitar", "keys", "vocs", "talkback")
LINEUP_ROLES: Final[tuple[str, ...]] = ("drums", "bass", "guitar", "keys", "vocs")

MONITOR_TYPES: Final[tuple[str, ...]] = ("wedge", "iem_wired", "iem_wireless")
MONITOR_MODES: Final[tuple[str, ...]] = ("mono", "stereo")
PROJECT_PURPOSES: Final[tuple[str, ...]] = ("event", "generic")


def group_rank(group: str | None) -> int:
    """Position of ``group`` in the fixed stage order; unknown groups sort last."""
    if group in GROUP_ORDER:
        return GROUP_ORDER.index(group)
    return len(GROUP_ORDER)


# ----------------------------------------------------------------------
# Channels and setups
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class InputChannel:
    """One physical input on the front-of-house console."""

    key: str
    label: str
    group: str | None = None
    note: str | None = None
    owner_gender: str | None = None


@dataclass(frozen=True)
class MonitoringPreset:
    type: str = "wedge"
    mode: str = "mono"
    mix_count: int = 1
    monitor_ref: str | None = None
    additional_wedge_count: int = 0


@dataclass(frozen=True)
class MusicianSetupPreset:
    """Inputs plus monitoring: the unit both defaults and overrides produce."""

    inputs: tuple[InputChannel, ...] = ()
    monitoring: MonitoringPreset = field(default_factory=MonitoringPreset)


# ----------------------------------------------------------------------
# Override patches
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class MonitoringPatch:
    """Partial monitoring overlay. ``None`` fields leave the default alone."""

    type: str | None = None
    mode: str | None = None
    mix_count: int | None = None
    monitor_ref: str | None = None
    additional_wedge_count: int | None = None

    def touched_fields(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass(frozen=True)
class InputUpdate:
    key: str
    label: str | None = None
    note: str | None = None
    group: str | None = None


@dataclass(frozen=True)
class InputReplace:
    target_key: str
    replacement: InputChannel


@dataclass(frozen=True)
class InputsPatch:
    add: tuple[InputChannel, ...] = ()
    remove_keys: tuple[str, ...] = ()
    update: tuple[InputUpdate, ...] = ()
    replace: tuple[InputReplace, ...] = ()

    def is_empty(self) -> bool:
        return not (self.add or self.remove_keys or self.update or self.replace)


@dataclass(frozen=True)
class PresetOverridePatch:
    """Event-specific changes to one musician's default setup."""

    monitoring: MonitoringPatch | None = None
    inputs: InputsPatch | None = None


# ----------------------------------------------------------------------
# Drum kit
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class PadConfig:
    enabled: bool = False
    mode: str | None = None  # sfx | backing
    channels: str | None = None  # mono | stereo


@dataclass(frozen=True)
class DrumSetup:
    tom_count: int = 1
    floor_tom_count: int = 1
    has_hihat: bool = True
    has_overheads: bool = True
    extra_snare_count: int = 0
    pad: PadConfig = field(default_factory=PadConfig)


# ----------------------------------------------------------------------
# Preset items carried by musicians
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class PresetRefItem:
    ref: str
    kind: ClassVar[str] = "preset"


@dataclass(frozen=True)
class DrumSetupItem:
    setup: DrumSetup
    kind: ClassVar[str] = "drum_setup"


@dataclass(frozen=True)
class VocalItem:
    ref: str
    owner_key: str | None = None
    owner_label: str | None = None
    kind: ClassVar[str] = "vocal"


@dataclass(frozen=True)
class TalkbackItem:
    ref: str
    owner_key: str | None = None
    owner_label: str | None = None
    kind: ClassVar[str] = "talkback"


@dataclass(frozen=True)
class MonitorItem:
    ref: str
    kind: ClassVar[str] = "monitor"


PresetItem = Union[PresetRefItem, DrumSetupItem, VocalItem, TalkbackItem, MonitorItem]


# ----------------------------------------------------------------------
# Preset library entities
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class InputTemplate:
    """Single input whose strings may contain ``{ownerKey}``/``{ownerLabel}``."""

    key: str
    label: str
    note: str | None = None


@dataclass(frozen=True)
class InputPreset:
    id: str
    label: str
    group: str
    inputs: tuple[InputChannel, ...] = ()
    kind: ClassVar[str] = "preset"


@dataclass(frozen=True)
class VocalType:
    id: str
    label: str
    input: InputTemplate
    group: str = "vocs"
    kind: ClassVar[str] = "vocal_type"


@dataclass(frozen=True)
class TalkbackType:
    id: str
    label: str
    input: InputTemplate
    group: str = "talkback"
    kind: ClassVar[str] = "talkback_type"


@dataclass(frozen=True)
class MonitorType:
    id: str
    label: str
    mode: str | None = None
    wireless: bool = False
    kind: ClassVar[str] = "monitor"


PresetEntity = Union[InputPreset, VocalType, TalkbackType, MonitorType]


# ----------------------------------------------------------------------
# Roster and projects
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class PowerRequirement:
    sockets: int
    voltage: int = 230


@dataclass(frozen=True)
class Musician:
    id: str
    first_name: str
    last_name: str = ""
    gender: str = "x"
    group: str | None = None
    presets: tuple[PresetItem, ...] = ()
    power: PowerRequirement | None = None
    phone: str | None = None
    email: str | None = None
    setup_defaults: MusicianSetupPreset | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Band:
    id: str
    name: str
    leader_id: str
    default_lineup: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    code: str | None = None
    default_contact_id: str | None = None
    notes_template_ref: str | None = None
    setup_defaults: Mapping[str, MusicianSetupPreset] = field(default_factory=dict)


@dataclass(frozen=True)
class LineupSlot:
    musician_id: str
    preset_override: PresetOverridePatch | None = None


@dataclass(frozen=True)
class Project:
    id: str
    band_id: str
    purpose: str
    document_date: str
    lineup: Mapping[str, tuple[LineupSlot, ...]] = field(default_factory=dict)
    event_date: str | None = None
    event_venue: str | None = None
    title: str | None = None
    back_vocal_ids: tuple[str, ...] | None = None
    talkback_owner_id: str | None = None
    power_overrides: Mapping[str, PowerRequirement] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Notes printed under the tables
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class NoteLine:
    id: str
    text: str
    severity: str = "info"
    requires_wedge: bool = False


@dataclass(frozen=True)
class NotesTemplate:
    id: str
    lang: str = "cs"
    inputs: tuple[NoteLine, ...] = ()
    monitors: tuple[NoteLine, ...] = ()


# ----------------------------------------------------------------------
# Setup diff metadata
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class InputDiff:
    key: str
    label: str
    origin: str  # default | override
    change_type: str  # unchanged | added | removed


@dataclass(frozen=True)
class MonitoringFieldDiff:
    field: str
    origin: str
    change_type: str  # unchanged | changed


@dataclass(frozen=True)
class SetupDiff:
    inputs: tuple[InputDiff, ...] = ()
    monitoring: tuple[MonitoringFieldDiff, ...] = ()
