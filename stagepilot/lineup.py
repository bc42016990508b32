"""Resolve who plays which role, who owns talkback and who sings back vocals."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Final

from stagepilot.models import (
    GROUP_ORDER,
    Band,
    Musician,
    PresetItem,
    PresetOverridePatch,
    Project,
    TalkbackItem,
    VocalItem,
)
from stagepilot.preset_expansion import BACK_VOCAL_PREFIX, is_back_vocal_item, is_lead_vocalist

PREFERRED_BACK_VOCAL_REF: Final[str] = "vocal_back_no_mic"
PREFERRED_TALKBACK_REF: Final[str] = "talkback"


@dataclass(frozen=True)
class ResolvedLineup:
    """Musician ids per role in stage order plus per-musician overrides."""

    roles: Mapping[str, tuple[str, ...]]
    overrides: Mapping[str, PresetOverridePatch] = field(default_factory=dict)
    talkback_owner_id: str | None = None

    def assignments(self) -> list[tuple[str, str]]:
        """``(role, musician_id)`` pairs; a musician keeps only their first role."""
        seen: set[str] = set()
        pairs: list[tuple[str, str]] = []
        for role, musician_ids in self.roles.items():
            for musician_id in musician_ids:
                if musician_id not in seen:
                    seen.add(musician_id)
                    pairs.append((role, musician_id))
        return pairs

    def musician_ids(self) -> list[str]:
        return [musician_id for _, musician_id in self.assignments()]


def resolve_lineup(project: Project, band: Band) -> ResolvedLineup:
    """
    Merge project slots with the band's default lineup.

    Project slots win for a role only when they are non-empty. The talkback
    owner is the project's explicit choice, else the band leader.
    """
    roles: dict[str, tuple[str, ...]] = {}
    overrides: dict[str, PresetOverridePatch] = {}

    for role in GROUP_ORDER:
        slots = project.lineup.get(role, ())
        if slots:
            roles[role] = tuple(slot.musician_id for slot in slots)
            for slot in slots:
                if slot.preset_override is not None:
                    overrides[slot.musician_id] = slot.preset_override
        elif band.default_lineup.get(role):
            roles[role] = tuple(band.default_lineup[role])

    owner = (project.talkback_owner_id or "").strip() or band.leader_id or None
    return ResolvedLineup(roles=roles, overrides=overrides, talkback_owner_id=owner)


def default_back_vocal_ref(refs: Iterable[str]) -> str | None:
    """The no-mic back vocal preset if present, else the smallest back vocal ref."""
    candidates = sorted(ref for ref in refs if ref.startswith(BACK_VOCAL_PREFIX))
    if PREFERRED_BACK_VOCAL_REF in candidates:
        return PREFERRED_BACK_VOCAL_REF
    return candidates[0] if candidates else None


def default_talkback_ref(refs: Iterable[str]) -> str | None:
    candidates = sorted(ref for ref in refs if ref.startswith(PREFERRED_TALKBACK_REF))
    if PREFERRED_TALKBACK_REF in candidates:
        return PREFERRED_TALKBACK_REF
    return candidates[0] if candidates else None


def apply_back_vocals(
    items: tuple[PresetItem, ...],
    *,
    musician: Musician,
    role: str,
    selected: bool,
    back_vocal_ref: str | None,
) -> tuple[PresetItem, ...]:
    """Add or strip the back vocal item of one musician. Lead vocalists are left alone."""
    if is_lead_vocalist(musician):
        return items
    if not selected:
        return tuple(item for item in items if not is_back_vocal_item(item))
    if any(is_back_vocal_item(item) for item in items) or back_vocal_ref is None:
        return items
    return (*items, VocalItem(ref=back_vocal_ref, owner_key=role, owner_label=role))


def apply_talkback(
    items: tuple[PresetItem, ...],
    *,
    role: str,
    is_owner: bool,
    talkback_ref: str | None,
) -> tuple[PresetItem, ...]:
    """Make sure only the talkback owner carries exactly one talkback item."""
    without = tuple(item for item in items if not isinstance(item, TalkbackItem))
    if not is_owner:
        return without
    existing = next((item for item in items if isinstance(item, TalkbackItem)), None)
    if existing is not None:
        return (*without, existing)
    if talkback_ref is None:
        return without
    return (*without, TalkbackItem(ref=talkback_ref, owner_key=role, owner_label=role))


def resolve_effective_preset_items(
    lineup: ResolvedLineup,
    musicians: Mapping[str, Musician],
    *,
    back_vocal_ids: Iterable[str] | None,
    back_vocal_ref: str | None,
    talkback_ref: str | None,
) -> dict[str, tuple[PresetItem, ...]]:
    """
    Preset items per musician after back vocal and talkback injection.

    Without an explicit back vocal list the musicians' own items are kept.
    Running this again on its own output gives the same items.
    """
    selected = set(back_vocal_ids) if back_vocal_ids is not None else None
    resolved: dict[str, tuple[PresetItem, ...]] = {}

    for role, musician_id in lineup.assignments():
        musician = musicians[musician_id]
        items = musician.presets
        if selected is not None:
            items = apply_back_vocals(
                items,
                musician=musician,
                role=role,
                selected=musician_id in selected,
                back_vocal_ref=back_vocal_ref,
            )
        items = apply_talkback(
            items,
            role=role,
            is_owner=musician_id == lineup.talkback_owner_id,
            talkback_ref=talkback_ref,
        )
        resolved[musician_id] = items
    return resolved
