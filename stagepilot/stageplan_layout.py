"""Stage plan box layout with per-box and per-page overflow checks.

Two fixed layouts exist. Drums and bass always share the top row; the bottom
row holds guitar, one or two lead vocal boxes and keys. Box content is never
shrunk or truncated: if it does not fit, compilation fails.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final

from stagepilot.document_models import (
    BoxPosition,
    MonitorTableRow,
    StageplanBox,
    StageplanInput,
    StageplanPerson,
    StageplanPlan,
    StageplanViewModel,
)
from stagepilot.errors import ConfigurationError, LayoutOverflowError
from stagepilot.formatters import format_monitor_bullets, format_stageplan_box_header
from stagepilot.input_list import is_overheads_base, parse_stereo_label

MM_TO_PT: Final[float] = 72 / 25.4

SLOT_INSTRUMENTS: Final[dict[str, tuple[str, str]]] = {
    "drums": ("Drums", "drums"),
    "bass": ("Bass", "bass"),
    "guitar": ("Guitar", "guitar"),
    "keys": ("Keys", "keys"),
    "lead_voc_1": ("Lead vocal", "vocs"),
    "lead_voc_2": ("Lead vocal", "vocs"),
}
DRUM_RISER_BULLET: Final[str] = "Drum riser 3x2"

_OWNED_LABEL_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"back vocal\s*[-–—]\s*(guitar|keys|bass|drums)", re.IGNORECASE),
    re.compile(r"talkback\s*(?:[-–—]\s*|\(\s*)(guitar|keys|bass|drums)", re.IGNORECASE),
)
_LEAD_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"^voc_lead(?:_(\d+))?")


@dataclass(frozen=True)
class LayoutSettings:
    """Typography and page geometry, in points unless the name says mm."""

    text_size_pt: float = 9.0
    line_height: float = 1.3
    box_title_gap_pt: float = 6.0
    box_padding_bottom_pt: float = 2.0
    heading_size_pt: float = 20.0
    section_margin_top_pt: float = 16.0
    container_margin_top_pt: float = 24.0
    container_pad_pt: float = 24.0
    top_box_max_height_mm: float = 110.0
    bottom_box_max_height_mm: float = 110.0
    page_height_mm: float = 297.0
    margin_top_mm: float = 20.0
    margin_bottom_mm: float = 15.0
    area_width_mm: float = 180.0
    box_width_mm: float = 55.0
    gap_x_mm: float = 7.5
    gap_y_mm: float = 8.0


@dataclass(frozen=True)
class BottomRow:
    slots: tuple[str, ...]
    gutter_mm: float | None = None
    side_inset_mm: float = 0.0
    font_size_delta_pt: float = 0.0
    line_height_delta: float = 0.0


@dataclass(frozen=True)
class LayoutDefinition:
    id: str
    bottom_row: BottomRow
    # slot -> column of the three-column top grid
    top_row: dict[str, int] = field(default_factory=lambda: {"drums": 1, "bass": 2})


LAYOUT_5_PARTY: Final[LayoutDefinition] = LayoutDefinition(
    id="layout_5_party",
    bottom_row=BottomRow(slots=("guitar", "lead_voc_1", "keys")),
)
LAYOUT_6_2_VOCS: Final[LayoutDefinition] = LayoutDefinition(
    id="layout_6_2_vocs",
    bottom_row=BottomRow(
        slots=("guitar", "lead_voc_1", "lead_voc_2", "keys"),
        gutter_mm=4.5,
        side_inset_mm=2.0,
        font_size_delta_pt=-1.0,
        line_height_delta=-0.05,
    ),
)


@dataclass(frozen=True)
class _BoxContent:
    slot: str
    row: str
    instrument: str
    header: str
    input_bullets: tuple[str, ...]
    monitor_bullets: tuple[str, ...]
    extra_bullets: tuple[str, ...]
    power_badge: str | None
    font_size_pt: float
    line_height: float


def select_layout(stageplan: StageplanViewModel) -> LayoutDefinition:
    """One lead vocalist (or none) → five boxes; two → six boxes."""
    lead_count = len(stageplan.lead_vocals)
    if lead_count > 2:
        raise ConfigurationError(f"Unsupported lead vocal count for stageplan layout: {lead_count}")
    return LAYOUT_6_2_VOCS if lead_count == 2 else LAYOUT_5_PARTY


# ----------------------------------------------------------------------
# Slot assignment
# ----------------------------------------------------------------------


def resolve_slot_for_input(item: StageplanInput) -> str | None:
    """Stage plan box an input belongs to, or ``None`` when it has no box."""
    for pattern in _OWNED_LABEL_PATTERNS:
        match = pattern.search(item.label)
        if match:
            return match.group(1).lower()
    lead = _LEAD_KEY_PATTERN.match(item.key.lower())
    if lead or item.label.lower().startswith("lead vocal"):
        index = int(lead.group(1)) if lead and lead.group(1) else 1
        return "lead_voc_2" if index == 2 else "lead_voc_1"
    if item.group in ("drums", "bass", "guitar", "keys"):
        return item.group
    return None


def resolve_slot_for_monitor(row: MonitorTableRow) -> str | None:
    if row.role == "vocs":
        return "lead_voc_2" if row.lead_index == 2 else "lead_voc_1"
    if row.role in ("drums", "bass", "guitar", "keys"):
        return row.role
    return None


# ----------------------------------------------------------------------
# Bullet text
# ----------------------------------------------------------------------


def _range_bullet(label: str, items: list[StageplanInput]) -> str | None:
    if not items:
        return None
    numbers = [item.channel_no for item in items]
    low, high = min(numbers), max(numbers)
    return f"{label} ({low})" if low == high else f"{label} ({low}–{high})"


def _is_pad(item: StageplanInput) -> bool:
    return "pad" in item.label.lower()


def drum_bullets(items: list[StageplanInput]) -> list[str]:
    """Drum kit and pad collapse into range bullets; anything else is listed singly."""
    kit = [item for item in items if item.group == "drums" and not _is_pad(item)]
    pads = [item for item in items if item.group == "drums" and _is_pad(item)]
    others = [item for item in items if item.group != "drums"]

    bullets = [bullet for bullet in (_range_bullet("Drums", kit), _range_bullet("PAD", pads)) if bullet]
    bullets.extend(f"{item.label} ({item.channel_no})" for item in others)
    return bullets


def collapse_stereo_bullets(items: list[StageplanInput]) -> list[str]:
    """``"{label} ({n})"`` per input; consecutive L/R halves become ``"2x {base} ({n}+{n+1})"``."""
    bullets: list[str] = []
    index = 0
    while index < len(items):
        current = items[index]
        following = items[index + 1] if index + 1 < len(items) else None
        left = parse_stereo_label(current.label)
        right = parse_stereo_label(following.label) if following is not None else None
        if (
            following is not None
            and left is not None
            and right is not None
            and following.channel_no == current.channel_no + 1
            and left[0].lower() == right[0].lower()
            and left[1] != right[1]
            and not is_overheads_base(left[0])
        ):
            bullets.append(f"2x {left[0]} ({current.channel_no}+{following.channel_no})")
            index += 2
            continue
        bullets.append(f"{current.label} ({current.channel_no})")
        index += 1
    return bullets


def _keys_rank(label: str) -> int:
    text = label.strip().lower()
    if text.startswith("keys"):
        return 0
    if text.startswith("synth (mono)") or text.startswith("synth mono"):
        return 2
    if text.startswith("synth"):
        return 1
    return 3


# ----------------------------------------------------------------------
# Geometry
# ----------------------------------------------------------------------


def count_rendered_lines(box: _BoxContent) -> int:
    """Bullet lines plus one blank line between non-empty sections."""
    inputs, monitors, extras = len(box.input_bullets), len(box.monitor_bullets), len(box.extra_bullets)
    lines = inputs + monitors + extras
    if monitors and inputs:
        lines += 1
    if extras and (monitors or inputs):
        lines += 1
    return lines


def required_height_pt(box: _BoxContent, settings: LayoutSettings) -> float:
    has_body = bool(box.input_bullets or box.monitor_bullets or box.extra_bullets)
    line_pt = box.font_size_pt * box.line_height
    height = settings.box_title_gap_pt + line_pt + (settings.box_title_gap_pt if has_body else 0.0)
    height += count_rendered_lines(box) * line_pt
    if box.power_badge:
        badge_pt = line_pt + settings.box_padding_bottom_pt * 2
        height += badge_pt + line_pt
    else:
        height += settings.box_padding_bottom_pt
    return height


def _person_for_slot(stageplan: StageplanViewModel, slot: str) -> StageplanPerson | None:
    if slot == "lead_voc_1":
        return stageplan.lead_vocals[0] if stageplan.lead_vocals else None
    if slot == "lead_voc_2":
        return stageplan.lead_vocals[1] if len(stageplan.lead_vocals) > 1 else None
    return stageplan.lineup_by_role.get(slot)


def _build_box(
    slot: str,
    row: str,
    stageplan: StageplanViewModel,
    inputs: list[StageplanInput],
    monitors: list[tuple[int, str]],
    layout: LayoutDefinition,
    settings: LayoutSettings,
) -> _BoxContent:
    instrument, _ = SLOT_INSTRUMENTS[slot]
    person = _person_for_slot(stageplan, slot)

    if slot == "keys":
        inputs = sorted(inputs, key=lambda item: (_keys_rank(item.label), item.channel_no))
    else:
        inputs = sorted(inputs, key=lambda item: item.channel_no)

    if slot == "drums":
        input_bullets = drum_bullets(inputs)
    else:
        input_bullets = collapse_stereo_bullets(inputs)

    has_drummer = person is not None or bool(inputs)
    bottom = row == "bottom"
    return _BoxContent(
        slot=slot,
        row=row,
        instrument=instrument,
        header=format_stageplan_box_header(
            instrument,
            person.first_name if person else None,
            person.is_band_leader if person else False,
        ),
        input_bullets=tuple(input_bullets),
        monitor_bullets=tuple(text for _, text in sorted(monitors, key=lambda entry: entry[0])),
        extra_bullets=(DRUM_RISER_BULLET,) if slot == "drums" and has_drummer else (),
        power_badge=person.power_badge if person else None,
        font_size_pt=settings.text_size_pt + (layout.bottom_row.font_size_delta_pt if bottom else 0.0),
        line_height=settings.line_height + (layout.bottom_row.line_height_delta if bottom else 0.0),
    )


def _bottom_positions(
    layout: LayoutDefinition,
    settings: LayoutSettings,
    y_mm: float,
    height_mm: float,
) -> dict[str, BoxPosition]:
    row = layout.bottom_row
    columns = len(row.slots)
    gutter = settings.gap_x_mm if row.gutter_mm is None else row.gutter_mm
    available = settings.area_width_mm - 2 * row.side_inset_mm
    width = (available - (columns - 1) * gutter) / columns
    return {
        slot: BoxPosition(
            x_mm=row.side_inset_mm + index * (width + gutter),
            y_mm=y_mm,
            width_mm=width,
            height_mm=height_mm,
        )
        for index, slot in enumerate(row.slots)
    }


def build_stageplan_plan(stageplan: StageplanViewModel, settings: LayoutSettings | None = None) -> StageplanPlan:
    """
    Lay out the stage plan boxes for a compiled document.

    Raises:
        ConfigurationError: If there are more than two lead vocalists.
        LayoutOverflowError: If a box exceeds its row's maximum height or the
            whole block does not fit the printable page height.
    """
    settings = settings or LayoutSettings()
    layout = select_layout(stageplan)
    slots = [*layout.top_row, *layout.bottom_row.slots]

    inputs_by_slot: dict[str, list[StageplanInput]] = {slot: [] for slot in slots}
    for item in stageplan.inputs:
        slot = resolve_slot_for_input(item)
        if slot in inputs_by_slot:
            inputs_by_slot[slot].append(item)

    monitors_by_slot: dict[str, list[tuple[int, str]]] = {slot: [] for slot in slots}
    for output in stageplan.monitor_outputs:
        slot = resolve_slot_for_monitor(output)
        if slot in monitors_by_slot:
            bullets = format_monitor_bullets(output.note, output.no)
            monitors_by_slot[slot].extend((output.no, bullet) for bullet in bullets)

    contents = [
        _build_box(
            slot,
            "top" if slot in layout.top_row else "bottom",
            stageplan,
            inputs_by_slot[slot],
            monitors_by_slot[slot],
            layout,
            settings,
        )
        for slot in slots
    ]

    heights_mm = {box.slot: required_height_pt(box, settings) / MM_TO_PT for box in contents}
    for box in contents:
        limit = settings.top_box_max_height_mm if box.row == "top" else settings.bottom_box_max_height_mm
        if heights_mm[box.slot] > limit:
            raise LayoutOverflowError(
                f"Stageplan box overflow: {box.header} requires {heights_mm[box.slot]:.2f}mm, "
                f"available {limit:.2f}mm."
            )

    top_height = max(heights_mm[box.slot] for box in contents if box.row == "top")
    bottom_height = max(heights_mm[box.slot] for box in contents if box.row == "bottom")
    bottom_y = top_height + settings.gap_y_mm
    area_height = bottom_y + bottom_height

    total_height = (
        settings.section_margin_top_pt / MM_TO_PT
        + settings.heading_size_pt / MM_TO_PT
        + settings.container_margin_top_pt / MM_TO_PT
        + 2 * settings.container_pad_pt / MM_TO_PT
        + area_height
    )
    available_height = settings.page_height_mm - settings.margin_top_mm - settings.margin_bottom_mm
    if total_height > available_height:
        raise LayoutOverflowError(
            f"Stageplan layout overflow: required {total_height:.2f}mm exceeds available {available_height:.2f}mm."
        )

    positions = {
        slot: BoxPosition(
            x_mm=column * (settings.box_width_mm + settings.gap_x_mm),
            y_mm=0.0,
            width_mm=settings.box_width_mm,
            height_mm=top_height,
        )
        for slot, column in layout.top_row.items()
    }
    positions.update(_bottom_positions(layout, settings, bottom_y, bottom_height))

    boxes = tuple(
        StageplanBox(
            slot=box.slot,
            row=box.row,
            instrument=box.instrument,
            header=box.header,
            input_bullets=box.input_bullets,
            monitor_bullets=box.monitor_bullets,
            extra_bullets=box.extra_bullets,
            power_badge=box.power_badge,
            font_size_pt=box.font_size_pt,
            line_height=box.line_height,
            required_height_mm=round(heights_mm[box.slot], 2),
            position=positions[box.slot],
        )
        for box in contents
    )
    return StageplanPlan(
        layout_id=layout.id,
        heading="Stageplan",
        area_width_mm=settings.area_width_mm,
        area_height_mm=area_height,
        total_height_mm=total_height,
        available_height_mm=available_height,
        boxes=boxes,
    )
