"""Expand a musician's preset items into concrete input channels."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TypeVar

from stagepilot.drum_kit import is_legacy_drum_ref, resolve_drum_inputs
from stagepilot.errors import ConfigurationError
from stagepilot.models import (
    DrumSetupItem,
    InputChannel,
    InputPreset,
    InputTemplate,
    MonitorItem,
    MonitorType,
    Musician,
    PresetEntity,
    PresetItem,
    PresetRefItem,
    TalkbackItem,
    TalkbackType,
    VocalItem,
    VocalType,
)
from stagepilot.repository import Repository

LEAD_VOCAL_PREFIX = "vocal_lead"
BACK_VOCAL_PREFIX = "vocal_back"

_EntityT = TypeVar("_EntityT", InputPreset, VocalType, TalkbackType, MonitorType)


@dataclass(frozen=True)
class ExpandedPresets:
    """Everything one musician's preset items contribute."""

    inputs: tuple[InputChannel, ...] = ()
    monitor: MonitorType | None = None
    legacy_drum_refs: tuple[str, ...] = ()
    has_drum_setup: bool = False


def is_lead_vocal_item(item: PresetItem) -> bool:
    return isinstance(item, (PresetRefItem, VocalItem)) and item.ref.startswith(LEAD_VOCAL_PREFIX)


def is_back_vocal_item(item: PresetItem) -> bool:
    return isinstance(item, (PresetRefItem, VocalItem)) and item.ref.startswith(BACK_VOCAL_PREFIX)


def is_lead_vocalist(musician: Musician) -> bool:
    return any(is_lead_vocal_item(item) for item in musician.presets)


def substitute_owner(template: str | None, owner_key: str, owner_label: str) -> str | None:
    """Fill the two owner placeholders; any other brace text is left as is."""
    if template is None:
        return None
    return template.replace("{ownerKey}", owner_key).replace("{ownerLabel}", owner_label)


def _expect(entity: PresetEntity, expected: type[_EntityT], item: PresetItem) -> _EntityT:
    if not isinstance(entity, expected):
        raise ConfigurationError(
            f'Preset item "{item.kind}" references "{entity.id}" of type "{entity.kind}", '
            f'expected "{expected.kind}".'
        )
    return entity


def _render_template(template: InputTemplate, group: str, owner_key: str, owner_label: str) -> InputChannel:
    return InputChannel(
        key=substitute_owner(template.key, owner_key, owner_label) or template.key,
        label=substitute_owner(template.label, owner_key, owner_label) or template.label,
        group=group,
        note=substitute_owner(template.note, owner_key, owner_label),
    )


def expand_preset_item(
    item: PresetItem,
    *,
    role: str,
    repo: Repository,
    gender: str | None = None,
) -> list[InputChannel]:
    """
    Expand one preset item into input channels.

    Monitor items contribute no channels. ``role`` is the owner used for
    template placeholders when the item names no explicit owner.

    Raises:
        ConfigurationError: If the referenced entity is of the wrong type.
        NotFoundError: If the ref is not in the preset library.
    """
    if isinstance(item, DrumSetupItem):
        return resolve_drum_inputs(item.setup)

    if isinstance(item, MonitorItem):
        _expect(repo.get_preset(item.ref), MonitorType, item)
        return []

    if isinstance(item, PresetRefItem):
        entity = _expect(repo.get_preset(item.ref), InputPreset, item)
        channels = [channel if channel.group else replace(channel, group=entity.group) for channel in entity.inputs]
        if is_lead_vocal_item(item):
            channels = [replace(channel, owner_gender=gender) for channel in channels]
        return channels

    if isinstance(item, (VocalItem, TalkbackItem)):
        template: VocalType | TalkbackType
        if isinstance(item, VocalItem):
            template = _expect(repo.get_preset(item.ref), VocalType, item)
        else:
            template = _expect(repo.get_preset(item.ref), TalkbackType, item)
        owner_key = item.owner_key or role
        owner_label = item.owner_label or owner_key
        channel = _render_template(template.input, template.group, owner_key, owner_label)
        if is_lead_vocal_item(item):
            channel = replace(channel, owner_gender=gender)
        return [channel]

    raise ConfigurationError(f"Unsupported preset item: {item!r}")


def expand_musician_presets(
    musician: Musician,
    items: tuple[PresetItem, ...],
    *,
    role: str,
    repo: Repository,
) -> ExpandedPresets:
    """Expand every item of one musician.

    Legacy drum tokens held by a drummer are collected instead of looked up;
    the compiler migrates them once the whole lineup is expanded.
    """
    inputs: list[InputChannel] = []
    monitor: MonitorType | None = None
    legacy_refs: list[str] = []
    has_drum_setup = False

    for item in items:
        if role == "drums" and isinstance(item, PresetRefItem) and is_legacy_drum_ref(item.ref):
            legacy_refs.append(item.ref)
            continue
        if isinstance(item, DrumSetupItem):
            has_drum_setup = True
        if isinstance(item, MonitorItem):
            entity = _expect(repo.get_preset(item.ref), MonitorType, item)
            if monitor is not None:
                raise ConfigurationError(f"Musician '{musician.id}' declares more than one monitor.")
            monitor = entity
            continue
        inputs.extend(expand_preset_item(item, role=role, repo=repo, gender=musician.gender))

    return ExpandedPresets(
        inputs=tuple(inputs),
        monitor=monitor,
        legacy_drum_refs=tuple(legacy_refs),
        has_drum_setup=has_drum_setup,
    )
