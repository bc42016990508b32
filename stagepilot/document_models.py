"""Data models for the compiled document and its stage plan layout."""

from __future__ import annotations

from dataclasses import dataclass, field

from stagepilot.models import InputChannel


@dataclass(frozen=True)
class NumberedInput:
    """An input channel with its console channel number."""

    channel_no: int
    key: str
    label: str
    group: str | None = None
    note: str | None = None

    @classmethod
    def from_channel(cls, channel_no: int, channel: InputChannel) -> NumberedInput:
        return cls(
            channel_no=channel_no,
            key=channel.key,
            label=channel.label,
            group=channel.group,
            note=channel.note,
        )

    def as_channel(self) -> InputChannel:
        return InputChannel(key=self.key, label=self.label, group=self.group, note=self.note)


@dataclass(frozen=True)
class InputRow:
    """One printed row of the input list; ``no`` is ``"7"`` or ``"7+8"``."""

    no: str
    label: str
    note: str | None = None


@dataclass(frozen=True)
class MonitorEntry:
    musician_id: str
    role: str
    kind: str  # iem | wedge
    ref: str | None = None


@dataclass(frozen=True)
class MonitorTableRow:
    no: int
    output: str
    note: str
    role: str
    lead_index: int | None = None


@dataclass(frozen=True)
class MetaLine:
    kind: str  # labeled | plain
    value: str
    label: str | None = None


@dataclass(frozen=True)
class DocumentMeta:
    project_id: str
    band_name: str
    band_code: str | None
    purpose: str
    document_date: str
    meta_line: MetaLine
    event_date: str | None = None
    event_venue: str | None = None
    title: str | None = None
    contact_line: str | None = None
    export_file_name: str = ""


@dataclass(frozen=True)
class DocumentNotes:
    inputs: tuple[str, ...] = ()
    monitors: tuple[str, ...] = ()


@dataclass(frozen=True)
class StageplanPerson:
    musician_id: str
    first_name: str
    is_band_leader: bool = False
    power_badge: str | None = None


@dataclass(frozen=True)
class StageplanInput:
    channel_no: int
    key: str
    label: str
    group: str | None = None


@dataclass(frozen=True)
class StageplanViewModel:
    """Everything the stage plan layout needs from a compilation."""

    lineup_by_role: dict[str, StageplanPerson] = field(default_factory=dict)
    lead_vocals: tuple[StageplanPerson, ...] = ()
    inputs: tuple[StageplanInput, ...] = ()
    monitor_outputs: tuple[MonitorTableRow, ...] = ()
    power_by_role: dict[str, str] = field(default_factory=dict)


# ----------------------------------------------------------------------
# Stage plan geometry
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class BoxPosition:
    x_mm: float
    y_mm: float
    width_mm: float
    height_mm: float


@dataclass(frozen=True)
class StageplanBox:
    slot: str
    row: str  # top | bottom
    instrument: str
    header: str
    input_bullets: tuple[str, ...]
    monitor_bullets: tuple[str, ...]
    extra_bullets: tuple[str, ...]
    power_badge: str | None
    font_size_pt: float
    line_height: float
    required_height_mm: float
    position: BoxPosition


@dataclass(frozen=True)
class StageplanPlan:
    layout_id: str
    heading: str
    area_width_mm: float
    area_height_mm: float
    total_height_mm: float
    available_height_mm: float
    boxes: tuple[StageplanBox, ...]


@dataclass(frozen=True)
class DocumentViewModel:
    """Output of one compilation. Created fresh every time and never persisted."""

    meta: DocumentMeta
    inputs: tuple[NumberedInput, ...]
    input_rows: tuple[InputRow, ...]
    monitors: tuple[MonitorEntry, ...]
    monitor_table_rows: tuple[MonitorTableRow, ...]
    notes: DocumentNotes
    stageplan: StageplanViewModel
    stageplan_plan: StageplanPlan
