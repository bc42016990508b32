"""Record builders shared by the StagePilot tests."""

from __future__ import annotations

from pathlib import Path

from stagepilot.models import (
    Band,
    DrumSetup,
    DrumSetupItem,
    InputChannel,
    InputPreset,
    InputTemplate,
    LineupSlot,
    MonitorItem,
    MonitorType,
    Musician,
    NoteLine,
    NotesTemplate,
    PowerRequirement,
    PresetItem,
    PresetRefItem,
    Project,
    TalkbackType,
    VocalType,
)
from stagepilot.repository import InMemoryRepository


DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def channel(key: str, label: str | None = None, group: str | None = None, note: str | None = None) -> InputChannel:
    return InputChannel(key=key, label=label or key, group=group, note=note)


def library() -> list:
    """A small preset library covering every entity type."""
    return [
        InputPreset(
            id="el_guitar_stereo",
            label="Electric guitar",
            group="guitar",
            inputs=(
                channel("el_guitar_l", "El. guitar L", note="SM57"),
                channel("el_guitar_r", "El. guitar R", note="SM57"),
            ),
        ),
        InputPreset(
            id="el_bass_xlr_amp",
            label="Bass",
            group="bass",
            inputs=(channel("el_bass_xlr_amp", "Bass", note="XLR out"),),
        ),
        InputPreset(
            id="keys_stereo",
            label="Keys",
            group="keys",
            inputs=(channel("keys_l", "Keys L", note="DI"), channel("keys_r", "Keys R", note="DI")),
        ),
        InputPreset(
            id="vocal_lead_sm58",
            label="Lead vocal",
            group="vocs",
            inputs=(channel("voc_lead", "Lead vocal", note="SM58"),),
        ),
        VocalType(
            id="vocal_back_no_mic",
            label="Back vocal",
            input=InputTemplate(key="voc_back_{ownerKey}", label="Back vocal – {ownerLabel}", note="SM58"),
        ),
        TalkbackType(
            id="talkback",
            label="Talkback",
            input=InputTemplate(key="talkback_{ownerKey}", label="Talkback ({ownerLabel})"),
        ),
        MonitorType(id="wedge", label="Wedge", mode="mono"),
        MonitorType(id="iem_wireless_stereo", label="IEM STEREO wireless", mode="stereo", wireless=True),
    ]


def musician(
    musician_id: str,
    group: str,
    presets: tuple[PresetItem, ...] = (),
    *,
    gender: str = "m",
    power: int | None = None,
) -> Musician:
    return Musician(
        id=musician_id,
        first_name=musician_id.capitalize(),
        last_name="Test",
        gender=gender,
        group=group,
        presets=presets,
        power=PowerRequirement(sockets=power) if power else None,
    )


def roster() -> list[Musician]:
    """Five-piece band: drums, bass, guitar (leader), keys, one lead singer."""
    return [
        musician(
            "tomas",
            "drums",
            (DrumSetupItem(setup=DrumSetup()), MonitorItem(ref="wedge")),
            power=1,
        ),
        musician("jan", "bass", (PresetRefItem(ref="el_bass_xlr_amp"), MonitorItem(ref="wedge"))),
        musician("petr", "guitar", (PresetRefItem(ref="el_guitar_stereo"), MonitorItem(ref="wedge")), power=2),
        musician(
            "lucie",
            "keys",
            (PresetRefItem(ref="keys_stereo"), MonitorItem(ref="iem_wireless_stereo")),
            gender="f",
        ),
        musician(
            "anna",
            "vocs",
            (PresetRefItem(ref="vocal_lead_sm58"), MonitorItem(ref="iem_wireless_stereo")),
            gender="f",
        ),
        musician("martin", "vocs", (PresetRefItem(ref="vocal_lead_sm58"), MonitorItem(ref="wedge"))),
    ]


def band(**changes: object) -> Band:
    values: dict[str, object] = {
        "id": "northbound",
        "name": "Northbound",
        "code": "NB",
        "leader_id": "petr",
        "default_lineup": {
            "drums": ("tomas",),
            "bass": ("jan",),
            "guitar": ("petr",),
            "keys": ("lucie",),
            "vocs": ("anna",),
        },
        "default_contact_id": "petr",
    }
    values.update(changes)
    return Band(**values)  # type: ignore[arg-type]


def project(project_id: str = "gig", **changes: object) -> Project:
    values: dict[str, object] = {
        "id": project_id,
        "band_id": "northbound",
        "purpose": "event",
        "document_date": "2026-02-20",
        "event_date": "2026-03-07",
        "event_venue": "Lucerna",
    }
    values.update(changes)
    return Project(**values)  # type: ignore[arg-type]


def slots(*musician_ids: str) -> tuple[LineupSlot, ...]:
    return tuple(LineupSlot(musician_id=musician_id) for musician_id in musician_ids)


def notes_template() -> NotesTemplate:
    return NotesTemplate(
        id="notes_default_cs",
        inputs=(NoteLine(id="phantom", text="Phantom power on all condensers."),),
        monitors=(
            NoteLine(id="mixes", text="Separate mix per output."),
            NoteLine(id="wedges", text="Wedges must be active.", requires_wedge=True),
        ),
    )


def make_repo(
    *,
    projects: list[Project] | None = None,
    musicians: list[Musician] | None = None,
    bands: list[Band] | None = None,
) -> InMemoryRepository:
    return InMemoryRepository(
        bands=bands if bands is not None else [band()],
        musicians=musicians if musicians is not None else roster(),
        projects=projects if projects is not None else [project()],
        presets=library(),
        notes_templates=[notes_template()],
    )
