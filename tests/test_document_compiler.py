"""Tests for the full compilation pipeline."""

from dataclasses import replace

import pytest

from builders import band, channel, make_repo, musician, project, roster, slots
from stagepilot.document_compiler import DocumentCompiler, build_document
from stagepilot.errors import CapacityError, ConfigurationError, NotFoundError, OverrideCollisionError
from stagepilot.models import (
    DrumSetup,
    DrumSetupItem,
    LineupSlot,
    MonitoringPatch,
    MonitorItem,
    PadConfig,
    PowerRequirement,
    PresetRefItem,
)
from stagepilot.preset_override import create_patch


def _keys(document) -> list[str]:
    return [item.key for item in document.inputs]


def test_five_piece_numbering() -> None:
    document = build_document("gig", make_repo())
    assert _keys(document) == [
        "kick_out",
        "kick_in",
        "snare1_top",
        "snare1_bottom",
        "hihat",
        "tom_1",
        "floor_1",
        "oh_l",
        "oh_r",
        "el_bass_xlr_amp",
        "el_guitar_l",
        "el_guitar_r",
        "keys_l",
        "keys_r",
        "voc_lead",
        "talkback_guitar",
    ]
    assert [item.channel_no for item in document.inputs] == list(range(1, 17))


def test_input_rows_collapse_stereo_sources() -> None:
    document = build_document("gig", make_repo())
    rows = {row.no: row for row in document.input_rows}
    assert rows["11+12"].label == "El. guitar"
    assert rows["11+12"].note == "2x SM57"
    assert rows["13+14"].label == "Keys"
    assert rows["8"].label == "OH L"
    assert rows["15"].label == "Lead vocal"


def test_monitor_table_order() -> None:
    document = build_document("gig", make_repo())
    assert [(row.no, row.output, row.note) for row in document.monitor_table_rows] == [
        (1, "Guitar", "Wedge"),
        (2, "Lead vocal", "IEM STEREO wireless"),
        (3, "Keys", "IEM STEREO wireless"),
        (4, "Bass", "Wedge"),
        (5, "Drums", "Wedge"),
    ]
    assert {entry.kind for entry in document.monitors} == {"wedge", "iem"}


def test_meta_and_contact() -> None:
    document = build_document("gig", make_repo())
    assert document.meta.meta_line.label == "Datum akce a místo konání:"
    assert document.meta.contact_line == "Kontaktní osoba – (kapelník) Petr Test"
    assert document.meta.export_file_name == "NB_Inputlist_Stageplan_07-03-2026_Lucerna"


def test_one_lead_uses_five_box_layout() -> None:
    document = build_document("gig", make_repo())
    plan = document.stageplan_plan
    assert plan.layout_id == "layout_5_party"
    guitar = next(box for box in plan.boxes if box.slot == "guitar")
    assert guitar.header == "GUITAR – PETR (band leader)"
    assert guitar.input_bullets == ("2x El. guitar (11+12)", "Talkback (guitar) (16)")
    assert guitar.power_badge == "2x 230 V"


def test_two_leads_use_six_box_layout() -> None:
    repo = make_repo(projects=[project(lineup={"vocs": slots("anna", "martin")})])
    document = build_document("gig", repo)

    leads = [item for item in document.inputs if item.key.startswith("voc_lead")]
    assert [(item.key, item.label) for item in leads] == [
        ("voc_lead_1", "Lead vocal 1 (f)"),
        ("voc_lead_2", "Lead vocal 2 (m)"),
    ]
    assert [row.output for row in document.monitor_table_rows] == [
        "Guitar",
        "Lead vocal 1 (f)",
        "Lead vocal 2 (m)",
        "Keys",
        "Bass",
        "Drums",
    ]

    plan = document.stageplan_plan
    assert plan.layout_id == "layout_6_2_vocs"
    headers = {box.slot: box.header for box in plan.boxes}
    assert headers["lead_voc_1"] == "LEAD VOC – ANNA"
    assert headers["lead_voc_2"] == "LEAD VOC – MARTIN"


def test_31_inputs_exceed_limit() -> None:
    big_kit = DrumSetup(
        tom_count=4,
        floor_tom_count=4,
        extra_snare_count=2,
        pad=PadConfig(enabled=True, mode="sfx", channels="stereo"),
    )
    musicians = [
        replace(item, presets=(DrumSetupItem(setup=big_kit), MonitorItem(ref="wedge"))) if item.id == "tomas" else item
        for item in roster()
    ]
    extra = create_patch(add=[channel(f"synth_{i}", f"Synth {i}", "keys") for i in range(1, 6)])
    repo = make_repo(
        musicians=musicians,
        projects=[project(lineup={"keys": (LineupSlot("lucie", extra),)})],
    )

    with pytest.raises(CapacityError, match="Total input channels exceed limit: 31/30."):
        build_document("gig", repo)


def test_too_many_monitor_mixes() -> None:
    patch = create_patch(monitoring=MonitoringPatch(mix_count=2))
    repo = make_repo(projects=[project(lineup={"drums": (LineupSlot("tomas", patch),), "vocs": slots("anna", "martin")})])
    with pytest.raises(CapacityError) as exc_info:
        build_document("gig", repo)
    assert exc_info.value.errors == ["Total monitor mixes exceed limit: 7/6."]


def test_leader_outside_lineup_is_fatal() -> None:
    repo = make_repo(bands=[band(leader_id="karel")])
    with pytest.raises(ConfigurationError, match="must define bandLeader"):
        build_document("gig", repo)


def test_event_without_date_is_fatal() -> None:
    repo = make_repo(projects=[project(event_date=None)])
    with pytest.raises(ConfigurationError):
        build_document("gig", repo)


def test_unknown_project() -> None:
    with pytest.raises(NotFoundError, match="Project not found: nope"):
        build_document("nope", make_repo())


def test_selected_back_vocal_is_added() -> None:
    repo = make_repo(projects=[project(back_vocal_ids=("petr",))])
    document = build_document("gig", repo)
    vocals = [(item.channel_no, item.key, item.label) for item in document.inputs if item.group == "vocs"]
    assert vocals == [(15, "voc_lead", "Lead vocal"), (16, "voc_back_guitar", "Back vocal – guitar")]
    guitar = next(box for box in document.stageplan_plan.boxes if box.slot == "guitar")
    assert "Back vocal – guitar (16)" in guitar.input_bullets


def test_slot_override_removes_input() -> None:
    patch = create_patch(remove_keys=["el_guitar_r"])
    repo = make_repo(projects=[project(lineup={"guitar": (LineupSlot("petr", patch),)})])
    document = build_document("gig", repo)
    assert "el_guitar_r" not in _keys(document)
    assert "el_guitar_l" in _keys(document)


def test_slot_override_collision() -> None:
    patch = create_patch(add=[channel("el_guitar_l", "Guitar", "guitar")])
    repo = make_repo(projects=[project(lineup={"guitar": (LineupSlot("petr", patch),)})])
    with pytest.raises(OverrideCollisionError):
        build_document("gig", repo)


def test_additional_wedge_shows_in_monitor_note() -> None:
    patch = create_patch(monitoring=MonitoringPatch(additional_wedge_count=1))
    repo = make_repo(projects=[project(lineup={"drums": (LineupSlot("tomas", patch),)})])
    document = build_document("gig", repo)
    drums = next(row for row in document.monitor_table_rows if row.output == "Drums")
    assert drums.note == "Wedge + Additional wedge monitor 1x"
    assert len([entry for entry in document.monitors if entry.musician_id == "tomas"]) == 2


def test_legacy_drum_refs_are_migrated() -> None:
    drummer = musician(
        "karel",
        "drums",
        (PresetRefItem(ref="standard_10"), PresetRefItem(ref="sample_pad_mono"), MonitorItem(ref="wedge")),
    )
    repo = make_repo(
        musicians=[*roster(), drummer],
        projects=[project(lineup={"drums": slots("karel")})],
    )
    keys = _keys(build_document("gig", repo))
    assert keys[:8] == ["kick_out", "kick_in", "snare1_top", "snare1_bottom", "hihat", "tom_1", "tom_2", "floor_1"]
    assert "pad_mono_sfx" in keys


def test_talkback_follows_project_owner() -> None:
    repo = make_repo(projects=[project(talkback_owner_id="lucie")])
    keys = _keys(build_document("gig", repo))
    assert keys[-1] == "talkback_keys"
    assert "talkback_guitar" not in keys


def test_project_power_override_wins() -> None:
    repo = make_repo(projects=[project(power_overrides={"petr": PowerRequirement(sockets=4)})])
    plan = build_document("gig", repo).stageplan_plan
    guitar = next(box for box in plan.boxes if box.slot == "guitar")
    assert guitar.power_badge == "4x 230 V"


def test_wedge_notes_dropped_without_wedges() -> None:
    iem_only = [
        replace(
            item,
            presets=tuple(
                MonitorItem(ref="iem_wireless_stereo") if isinstance(preset, MonitorItem) else preset
                for preset in item.presets
            ),
        )
        for item in roster()
    ]
    with_wedges = build_document("gig", make_repo())
    without = build_document("gig", make_repo(musicians=iem_only))
    assert "Wedges must be active." in with_wedges.notes.monitors
    assert without.notes.monitors == ("Separate mix per output.",)


def test_compilation_is_deterministic() -> None:
    repo = make_repo(projects=[project(lineup={"vocs": slots("anna", "martin")}, back_vocal_ids=("petr",))])
    assert build_document("gig", repo) == build_document("gig", repo)


def test_resolve_setups_exposes_diff() -> None:
    patch = create_patch(remove_keys=["el_guitar_r"])
    repo = make_repo(projects=[project(lineup={"guitar": (LineupSlot("petr", patch),)})])
    setups = DocumentCompiler(repo).resolve_setups("gig")
    petr = next(entry for entry in setups if entry.musician.id == "petr")
    tags = {diff.key: diff.change_type for diff in petr.setup.diff_meta.inputs}
    assert tags["el_guitar_r"] == "removed"
    assert tags["el_guitar_l"] == "unchanged"


def test_lead_tagged_guitarist_keeps_box_and_labels_aligned() -> None:
    musicians = [
        replace(item, presets=(*item.presets, PresetRefItem(ref="vocal_lead_sm58"))) if item.id == "petr" else item
        for item in roster()
    ]
    document = build_document("gig", make_repo(musicians=musicians))

    leads = [(item.key, item.label, item.channel_no) for item in document.inputs if item.key.startswith("voc_lead")]
    assert leads == [("voc_lead_1", "Lead vocal 1 (m)", 15), ("voc_lead_2", "Lead vocal 2 (f)", 16)]
    assert [row.output for row in document.monitor_table_rows] == [
        "Guitar",
        "Lead vocal 1 (m)",
        "Lead vocal 2 (f)",
        "Keys",
        "Bass",
        "Drums",
    ]

    plan = document.stageplan_plan
    assert plan.layout_id == "layout_6_2_vocs"
    boxes = {box.slot: box for box in plan.boxes}
    assert boxes["lead_voc_1"].header == "LEAD VOC – PETR"
    assert boxes["lead_voc_1"].input_bullets == ("Lead vocal 1 (m) (15)",)
    assert boxes["lead_voc_2"].header == "LEAD VOC – ANNA"
    assert boxes["lead_voc_2"].input_bullets == ("Lead vocal 2 (f) (16)",)


def test_spare_channels_count_toward_limit() -> None:
    bass_mic = create_patch(add=[channel("el_bass_mic", "Bass mic", "bass")])
    synths = create_patch(add=[channel(f"synth_{i}", f"Synth {i}", "keys") for i in range(1, 14)])
    repo = make_repo(
        projects=[project(lineup={"bass": (LineupSlot("jan", bass_mic),), "keys": (LineupSlot("lucie", synths),)})]
    )

    with pytest.raises(CapacityError, match="Channel numbering exceeds limit: 31/30."):
        build_document("gig", repo)


def test_malformed_event_date_is_fatal() -> None:
    repo = make_repo(projects=[project(event_date="7.3.2026")])
    with pytest.raises(ConfigurationError, match="invalid event_date '7.3.2026'"):
        build_document("gig", repo)


def test_malformed_document_date_is_fatal() -> None:
    repo = make_repo(projects=[project(document_date="soon")])
    with pytest.raises(ConfigurationError, match="invalid document_date 'soon'"):
        build_document("gig", repo)
