"""Parametric drum kit: validation, channel expansion and legacy migration."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Final

from stagepilot.errors import DrumSetupValidationError, InternalInvariantError
from stagepilot.models import DrumSetup, InputChannel, PadConfig

logger = logging.getLogger(__name__)

MAX_TOMS: Final[int] = 4
MAX_FLOOR_TOMS: Final[int] = 4
MAX_EXTRA_SNARES: Final[int] = 2
PAD_MODES: Final[tuple[str, ...]] = ("sfx", "backing")
PAD_CHANNELS: Final[tuple[str, ...]] = ("mono", "stereo")

STANDARD_9: Final[DrumSetup] = DrumSetup(
    tom_count=1,
    floor_tom_count=1,
    has_hihat=True,
    has_overheads=True,
    extra_snare_count=0,
    pad=PadConfig(),
)
STANDARD_10: Final[DrumSetup] = replace(STANDARD_9, tom_count=2)

LEGACY_DRUM_REFS: Final[frozenset[str]] = frozenset(
    {"standard_9", "standard_10", "sample_pad_mono", "sample_pad_stereo", "snare_2", "effect_snare"}
)

# Mic and stand suggestions printed in the note column.
_PART_NOTES: Final[dict[str, str]] = {
    "kick_out": "Beta 52A / SE V Kick / e602 / D6 / D112 – kick mic stand",
    "kick_in": "TG D71 / SE BL8 / Beta 91A",
    "snare_top": "SM57 / Beta 57A / i5 / TG D57 – small boom mic stand",
    "snare_bottom": "e904 / e604 (alt. SM57 / Beta 57A) – small boom mic stand",
    "hihat": "Condenser mic – small boom mic stand",
    "tom": "e904 / e604 / D2",
    "floor_tom": "e904 / e604 / D4 (alt. D112)",
    "overhead": "Condenser mic – boom mic stand",
    "snare_extra": "SM57 / Beta 57A / i5 – small boom mic stand",
    "pad": "TS jack 6.3mm – DI box",
}

DRUM_KEY_ORDER: Final[tuple[str, ...]] = (
    "kick_out",
    "kick_in",
    "snare1_top",
    "snare1_bottom",
    "hihat",
    *(f"tom_{i}" for i in range(1, MAX_TOMS + 1)),
    *(f"floor_{i}" for i in range(1, MAX_FLOOR_TOMS + 1)),
    "oh_l",
    "oh_r",
    *(f"snare{i}_top" for i in range(2, MAX_EXTRA_SNARES + 2)),
    "pad_mono_sfx",
    "pad_mono_backing",
    "pad_stereo_sfx_l",
    "pad_stereo_sfx_r",
    "pad_stereo_backing_l",
    "pad_stereo_backing_r",
)
DEFAULT_DRUM_RANK: Final[int] = 500
_DRUM_RANK: Final[dict[str, int]] = {key: rank for rank, key in enumerate(DRUM_KEY_ORDER)}


def drum_rank(key: str) -> int:
    """Fixed position of a drum channel key; legacy ``dr_`` keys rank like new ones."""
    return _DRUM_RANK.get(key.removeprefix("dr_"), DEFAULT_DRUM_RANK)


def is_legacy_drum_ref(ref: str) -> bool:
    return ref.strip().lower() in LEGACY_DRUM_REFS


# ----------------------------------------------------------------------
# Interactive editing helpers
# ----------------------------------------------------------------------


def _clamp(value: int, upper: int) -> int:
    return max(0, min(upper, int(value)))


def clamp_tom_count(value: int) -> int:
    return _clamp(value, MAX_TOMS)


def clamp_floor_tom_count(value: int) -> int:
    return _clamp(value, MAX_FLOOR_TOMS)


def clamp_extra_snare_count(value: int) -> int:
    return _clamp(value, MAX_EXTRA_SNARES)


def apply_drum_controls(
    setup: DrumSetup,
    *,
    tom_count: int | None = None,
    floor_tom_count: int | None = None,
    has_hihat: bool | None = None,
    has_overheads: bool | None = None,
    extra_snare_count: int | None = None,
    pad: PadConfig | None = None,
) -> DrumSetup:
    """Return ``setup`` with the given controls changed, clamping counts into range.

    Editors call this on every keystroke, so out-of-range counts are pulled back
    instead of rejected. The resolver itself still validates strictly.
    """
    changes: dict[str, object] = {}
    if tom_count is not None:
        changes["tom_count"] = clamp_tom_count(tom_count)
    if floor_tom_count is not None:
        changes["floor_tom_count"] = clamp_floor_tom_count(floor_tom_count)
    if extra_snare_count is not None:
        changes["extra_snare_count"] = clamp_extra_snare_count(extra_snare_count)
    if has_hihat is not None:
        changes["has_hihat"] = has_hihat
    if has_overheads is not None:
        changes["has_overheads"] = has_overheads
    if pad is not None:
        changes["pad"] = pad
    return replace(setup, **changes)


# ----------------------------------------------------------------------
# Validation and expansion
# ----------------------------------------------------------------------


def _is_count(value: object, upper: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= upper


def validate_drum_setup(setup: DrumSetup) -> list[str]:
    """Return every problem with ``setup``; an empty list means it is valid."""
    errors: list[str] = []
    if not _is_count(setup.tom_count, MAX_TOMS):
        errors.append(f"tom_count must be an integer between 0 and {MAX_TOMS}.")
    if not _is_count(setup.floor_tom_count, MAX_FLOOR_TOMS):
        errors.append(f"floor_tom_count must be an integer between 0 and {MAX_FLOOR_TOMS}.")
    if not _is_count(setup.extra_snare_count, MAX_EXTRA_SNARES):
        errors.append(f"extra_snare_count must be an integer between 0 and {MAX_EXTRA_SNARES}.")
    if setup.pad.enabled and (setup.pad.mode not in PAD_MODES or setup.pad.channels not in PAD_CHANNELS):
        errors.append("pad.mode and pad.channels are required when pad is enabled.")
    return errors


def _drum_input(key: str, label: str, part: str) -> InputChannel:
    return InputChannel(key=key, label=label, group="drums", note=_PART_NOTES[part])


def _pad_inputs(pad: PadConfig) -> list[InputChannel]:
    if not pad.enabled:
        return []
    mode = str(pad.mode)
    if pad.channels == "mono":
        return [_drum_input(f"pad_mono_{mode}", f"PAD ({mode.upper()}, mono)", "pad")]
    return [
        _drum_input(f"pad_stereo_{mode}_{side.lower()}", f"PAD {side} ({mode.upper()}, stereo)", "pad")
        for side in ("L", "R")
    ]


def resolve_drum_inputs(setup: DrumSetup) -> list[InputChannel]:
    """
    Expand a drum setup into its ordered input channels.

    Order: kick out/in, snare 1 top/bottom, hi-hat, toms, floor toms,
    overheads L/R, extra snares, pad channel(s) last.

    Raises:
        DrumSetupValidationError: If any count or pad option is out of range.
        InternalInvariantError: If two generated channels share a key.
    """
    errors = validate_drum_setup(setup)
    if errors:
        raise DrumSetupValidationError(errors)

    inputs = [
        _drum_input("kick_out", "Kick OUT", "kick_out"),
        _drum_input("kick_in", "Kick IN", "kick_in"),
        _drum_input("snare1_top", "Snare 1 TOP", "snare_top"),
        _drum_input("snare1_bottom", "Snare 1 BOTTOM", "snare_bottom"),
    ]
    if setup.has_hihat:
        inputs.append(_drum_input("hihat", "Hi-hat", "hihat"))
    inputs.extend(_drum_input(f"tom_{i}", f"Tom {i}", "tom") for i in range(1, setup.tom_count + 1))
    inputs.extend(
        _drum_input(f"floor_{i}", f"Floor {i}", "floor_tom") for i in range(1, setup.floor_tom_count + 1)
    )
    if setup.has_overheads:
        inputs.append(_drum_input("oh_l", "OH L", "overhead"))
        inputs.append(_drum_input("oh_r", "OH R", "overhead"))
    inputs.extend(
        _drum_input(f"snare{n}_top", f"Snare {n} TOP", "snare_extra")
        for n in range(2, setup.extra_snare_count + 2)
    )
    inputs.extend(_pad_inputs(setup.pad))

    seen: set[str] = set()
    for item in inputs:
        if item.key in seen:
            raise InternalInvariantError(f"Duplicate drum key produced by resolver: {item.key}")
        seen.add(item.key)
    return inputs


# ----------------------------------------------------------------------
# Legacy data
# ----------------------------------------------------------------------


def infer_drum_setup_from_legacy_inputs(keys: Iterable[str]) -> DrumSetup:
    """Reconstruct a drum setup from a flat list of legacy channel keys."""
    present = {key.strip().lower().removeprefix("dr_") for key in keys}

    tom_count = sum(1 for i in range(1, MAX_TOMS + 1) if f"tom_{i}" in present)
    floor_count = sum(1 for i in range(1, MAX_FLOOR_TOMS + 1) if f"floor_{i}" in present)
    if "floor_tom" in present:
        floor_count += 1
    extra_snares = sum(1 for key in ("snare2_top", "snare3_top", "snare_2_top") if key in present)

    mode = "backing" if any("backing" in key for key in present if key.startswith("pad")) else "sfx"
    stereo_pad = {"pad_l", "pad_r"} <= present or any(key.startswith("pad_stereo") for key in present)
    mono_pad = "pad" in present or any(key.startswith("pad_mono") for key in present)
    if stereo_pad:
        pad = PadConfig(enabled=True, mode=mode, channels="stereo")
    elif mono_pad:
        pad = PadConfig(enabled=True, mode=mode, channels="mono")
    else:
        pad = PadConfig()

    return DrumSetup(
        tom_count=clamp_tom_count(tom_count),
        floor_tom_count=clamp_floor_tom_count(floor_count),
        has_hihat="hihat" in present,
        has_overheads={"oh_l", "oh_r"} <= present,
        extra_snare_count=clamp_extra_snare_count(extra_snares),
        pad=pad,
    )


def migrate_legacy_drum_preset_refs(refs: Iterable[str]) -> DrumSetup:
    """Map legacy drum preset tokens onto a structured drum setup.

    Unknown tokens are logged and ignored. Without any recognised token the
    9-piece standard kit is returned.
    """
    tokens = [ref.strip().lower() for ref in refs if ref.strip()]
    unknown = [token for token in tokens if token not in LEGACY_DRUM_REFS]
    if unknown:
        logger.warning("Ignoring unknown legacy drum preset refs: %s", ", ".join(unknown))
    if len(unknown) == len(tokens):
        logger.warning("Unknown legacy drum configuration detected, falling back to standard_9 setup.")
        return STANDARD_9

    setup = STANDARD_10 if "standard_10" in tokens else STANDARD_9
    if "sample_pad_stereo" in tokens:
        setup = replace(setup, pad=PadConfig(enabled=True, mode="sfx", channels="stereo"))
    elif "sample_pad_mono" in tokens:
        setup = replace(setup, pad=PadConfig(enabled=True, mode="sfx", channels="mono"))
    if "snare_2" in tokens or "effect_snare" in tokens:
        setup = replace(setup, extra_snare_count=max(setup.extra_snare_count, 1))
    return setup
