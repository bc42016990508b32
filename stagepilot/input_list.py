"""Global channel ordering, disambiguation, stereo pairing and numbering."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Final

from stagepilot.document_models import InputRow, NumberedInput
from stagepilot.drum_kit import drum_rank
from stagepilot.models import InputChannel, group_rank

SPARE_LABEL: Final[str] = "---"
OVERHEAD_BASES: Final[frozenset[str]] = frozenset({"overhead", "overheads", "oh"})

ACOUSTIC_GUITAR_PREFIXES: Final[tuple[str, ...]] = ("ac_guitar", "acoustic_guitar")
ELECTRIC_GUITAR_PREFIXES: Final[tuple[str, ...]] = ("el_guitar", "electric_guitar")

LEAD_VOCAL_KEY_PREFIX: Final[str] = "voc_lead"
BACK_VOCAL_KEY_PREFIX: Final[str] = "voc_back_"
# Back vocals follow the singer's position on stage.
BACK_VOCAL_OWNER_RANK: Final[dict[str, int]] = {"guitar": 1, "keys": 2, "bass": 3, "drums": 4}
_UNKNOWN_OWNER_RANK: Final[int] = 900

_STEREO_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"^(.*?)\s+(L|R)\s*(?=\(|$)", re.IGNORECASE),
    re.compile(r"^(.*)\((L|R)\)$", re.IGNORECASE),
    re.compile(r"^(.*)\s+[-–—]\s*(L|R)\s*$", re.IGNORECASE),
)
_STEREO_WORD_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(.*?)\s+(Left|Right)\s*(?=\(|$)", re.IGNORECASE)


def normalize_ws(text: str | None) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


# ----------------------------------------------------------------------
# Stereo pairs
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class StereoPair:
    base: str
    first_side: str
    should_collapse: bool


def parse_stereo_label(label: str) -> tuple[str, str] | None:
    """Split ``"Keys L"``, ``"Pad (R)"``, ``"Synth - L"`` or ``"Amp Left"`` into base and side."""
    text = normalize_ws(label)
    for pattern in _STEREO_PATTERNS:
        match = pattern.match(text)
        if match:
            return normalize_ws(match.group(1)).rstrip(" -–—"), match.group(2).upper()
    match = _STEREO_WORD_PATTERN.match(text)
    if match:
        return normalize_ws(match.group(1)), "L" if match.group(2).lower() == "left" else "R"
    return None


def is_overheads_base(base: str) -> bool:
    return normalize_ws(base).lower() in OVERHEAD_BASES


def resolve_stereo_pair(first: InputChannel, second: InputChannel) -> StereoPair | None:
    """Decide whether two adjacent channels are the L/R halves of one source."""
    if first.group != second.group or normalize_ws(first.note) != normalize_ws(second.note):
        return None

    parsed_first = parse_stereo_label(first.label)
    parsed_second = parse_stereo_label(second.label)
    if parsed_first and parsed_second and parsed_first[0] == parsed_second[0] and parsed_first[1] != parsed_second[1]:
        base = parsed_first[0]
        return StereoPair(base=base, first_side=parsed_first[1], should_collapse=not is_overheads_base(base))

    key_first = first.key.lower()
    key_second = second.key.lower()
    if (key_first.endswith("_l") and key_second.endswith("_r")) or (
        key_first.endswith("_r") and key_second.endswith("_l")
    ):
        base = first.key[:-2]
        side = "L" if key_first.endswith("_l") else "R"
        return StereoPair(base=base, first_side=side, should_collapse=not is_overheads_base(base))
    return None


def format_input_list_label(left_label: str, right_label: str) -> str:
    """Merged row label for a stereo pair: ``"Keys L"`` + ``"Keys R"`` → ``"Keys"``."""

    def clean(label: str) -> str:
        text = normalize_ws(label)
        text = re.sub(r"\s+(L|R)\s*$", "", text, flags=re.IGNORECASE).strip()
        text = re.sub(r"\(([^()]*)\b(L|R)\b([^()]*)\)\s*$", r"(\1\3)", text, flags=re.IGNORECASE)
        text = re.sub(r"\s+\)", ")", text)
        text = normalize_ws(text)
        text = re.sub(r"\s+(L|R)\s*\(", " (", text, count=1, flags=re.IGNORECASE)
        return normalize_ws(text)

    left = clean(left_label)
    right = clean(right_label)
    if left and left == right:
        return left
    return left or normalize_ws(left_label)


def format_input_list_note(note: str | None, duplicate_count: int = 1) -> str | None:
    text = normalize_ws(note)
    if not text:
        return None
    if duplicate_count <= 1 or re.match(r"^\d+x\s+", text, flags=re.IGNORECASE):
        return text
    return f"{duplicate_count}x {text}"


# ----------------------------------------------------------------------
# Ordering
# ----------------------------------------------------------------------


def is_acoustic_guitar(channel: InputChannel) -> bool:
    return channel.key.lower().startswith(ACOUSTIC_GUITAR_PREFIXES)


def is_electric_guitar(channel: InputChannel) -> bool:
    return channel.key.lower().startswith(ELECTRIC_GUITAR_PREFIXES)


def _is_keys(channel: InputChannel) -> bool:
    key = channel.key.lower()
    return channel.group == "keys" or key.startswith("keys_") or key.startswith("synth")


def _vocal_rank(channel: InputChannel) -> tuple[int, int]:
    key = channel.key.lower()
    if key.startswith(LEAD_VOCAL_KEY_PREFIX):
        return (0, 0)
    if key.startswith(BACK_VOCAL_KEY_PREFIX):
        owner = key[len(BACK_VOCAL_KEY_PREFIX):]
        return (1, BACK_VOCAL_OWNER_RANK.get(owner, _UNKNOWN_OWNER_RANK))
    return (1, _UNKNOWN_OWNER_RANK)


def channel_sort_key(channel: InputChannel) -> tuple[int, int, tuple[int, int], int, str, str, str]:
    group = channel.group
    return (
        group_rank(group),
        drum_rank(channel.key) if group == "drums" else 0,
        _vocal_rank(channel) if group == "vocs" else (0, 0),
        1 if group == "guitar" and is_acoustic_guitar(channel) else 0,
        channel.label.casefold(),
        channel.label,
        channel.key,
    )


def sort_inputs(inputs: Iterable[InputChannel]) -> list[InputChannel]:
    """Global order: group, drum table, lead before back vocals, electric before acoustic, label, key."""
    return sorted(inputs, key=channel_sort_key)


def reposition_acoustic_guitars(inputs: Sequence[InputChannel]) -> list[InputChannel]:
    """Move every acoustic guitar right after the last electric guitar and before the keys block.

    Without electric guitars the acoustic lands after the last drums, bass or
    guitar channel.
    """
    result = list(inputs)
    acoustic = [channel for channel in result if is_acoustic_guitar(channel)]

    for channel in acoustic:
        result.remove(channel)
        keys_index = next((i for i, item in enumerate(result) if _is_keys(item)), len(result))
        before_keys = result[:keys_index]

        anchor = max((i for i, item in enumerate(before_keys) if is_electric_guitar(item)), default=-1)
        if anchor < 0:
            anchor = max(
                (i for i, item in enumerate(before_keys) if group_rank(item.group) <= group_rank("guitar")),
                default=-1,
            )
        result.insert(min(anchor + 1, keys_index), channel)
    return result


# ----------------------------------------------------------------------
# Disambiguation
# ----------------------------------------------------------------------


def _stereo_side_of_key(key: str) -> str | None:
    lowered = key.lower()
    if lowered.endswith("_l"):
        return "L"
    if lowered.endswith("_r"):
        return "R"
    return None


def _with_index(label: str, index: int) -> str:
    trimmed = label.rstrip()
    if re.search(r"\s\d+$", trimmed) or re.search(r"\(\d+\)$", trimmed):
        return label
    return f"{label} {index}"


def _with_index_before_side(label: str, index: int) -> str:
    trimmed = label.rstrip()
    match = re.match(r"^(.*)\s+(L|R)\s*$", trimmed, flags=re.IGNORECASE)
    if not match:
        return _with_index(label, index)
    base = match.group(1).strip()
    if re.search(r"\s\d+$", base) or re.search(r"\(\d+\)$", base):
        return label
    return f"{base} {index} {match.group(2)}"


def disambiguate_input_keys(inputs: Sequence[InputChannel]) -> list[InputChannel]:
    """
    Suffix repeated keys with a 1-based instance index in key and label.

    Keys are grouped ignoring a trailing ``_l``/``_r``. Left and right halves
    fill instance slots independently, so ``keys_l, keys_r, keys_l, keys_r``
    become instances 1, 1, 2, 2. Keys occurring once are left untouched.
    """
    assignments: list[tuple[str, int]] = []
    mono_counts: dict[str, int] = {}
    stereo_slots: dict[str, list[set[str]]] = {}

    for channel in inputs:
        side = _stereo_side_of_key(channel.key)
        group_key = channel.key[:-2] if side else channel.key
        if side is None:
            mono_counts[group_key] = mono_counts.get(group_key, 0) + 1
            assignments.append((group_key, mono_counts[group_key]))
            continue
        slots = stereo_slots.setdefault(group_key, [])
        index = next((i for i, used in enumerate(slots, start=1) if side not in used), 0)
        if index == 0:
            slots.append(set())
            index = len(slots)
        slots[index - 1].add(side)
        assignments.append((group_key, index))

    totals = {key: len(slots) for key, slots in stereo_slots.items()}
    for key, count in mono_counts.items():
        totals[key] = max(totals.get(key, 0), count)

    result: list[InputChannel] = []
    for channel, (group_key, index) in zip(inputs, assignments):
        if totals[group_key] <= 1:
            result.append(channel)
            continue
        result.append(
            replace(channel, key=f"{channel.key}_{index}", label=_with_index_before_side(channel.label, index))
        )
    return result


# ----------------------------------------------------------------------
# Numbering and display rows
# ----------------------------------------------------------------------


def assign_channel_numbers(inputs: Sequence[InputChannel]) -> list[NumberedInput]:
    """
    Number channels from 1 in order.

    A collapsible stereo pair always starts on an odd channel: a ``---`` spare
    is inserted when needed. Overhead pairs may start anywhere. Each pair is
    emitted left side first.
    """
    numbered: list[NumberedInput] = []
    next_no = 1
    index = 0

    while index < len(inputs):
        current = inputs[index]
        following = inputs[index + 1] if index + 1 < len(inputs) else None
        pair = resolve_stereo_pair(current, following) if following is not None else None

        if pair is None or following is None:
            numbered.append(NumberedInput.from_channel(next_no, current))
            next_no += 1
            index += 1
            continue

        if pair.should_collapse and next_no % 2 == 0:
            numbered.append(
                NumberedInput(
                    channel_no=next_no,
                    key=f"spare_ch_{next_no}",
                    label=SPARE_LABEL,
                    group=current.group,
                    note=SPARE_LABEL,
                )
            )
            next_no += 1

        left, right = (current, following) if pair.first_side == "L" else (following, current)
        numbered.append(NumberedInput.from_channel(next_no, left))
        numbered.append(NumberedInput.from_channel(next_no + 1, right))
        next_no += 2
        index += 2

    return numbered


def is_spare(channel: NumberedInput) -> bool:
    return channel.key.startswith("spare_ch_")


def build_input_rows(numbered: Sequence[NumberedInput]) -> list[InputRow]:
    """Printable rows: adjacent collapsible stereo pairs share one row."""
    ordered = sorted(numbered, key=lambda item: item.channel_no)
    rows: list[InputRow] = []
    index = 0

    while index < len(ordered):
        current = ordered[index]
        following = ordered[index + 1] if index + 1 < len(ordered) else None
        pair = None
        if following is not None and following.channel_no == current.channel_no + 1:
            pair = resolve_stereo_pair(current.as_channel(), following.as_channel())

        if pair is not None and following is not None and pair.should_collapse:
            left, right = (current, following) if pair.first_side == "L" else (following, current)
            rows.append(
                InputRow(
                    no=f"{current.channel_no}+{following.channel_no}",
                    label=format_input_list_label(left.label, right.label),
                    note=format_input_list_note(current.note, 2),
                )
            )
            index += 2
            continue

        rows.append(InputRow(no=str(current.channel_no), label=current.label, note=current.note))
        index += 1

    return rows
