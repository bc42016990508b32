"""Unit tests for label, meta line and stage plan text formatting."""

from builders import band, project
from stagepilot.formatters import (
    build_export_file_name,
    format_contact_line,
    format_document_date,
    format_meta_line,
    format_monitor_bullets,
    format_monitor_note,
    format_phone,
    format_power_badge,
    format_stageplan_box_header,
    format_vocal_label,
)
from stagepilot.models import MonitoringPreset, MonitorType, Musician, PowerRequirement


def test_document_date_is_czech_style() -> None:
    assert format_document_date("2026-03-07") == "7. 3. 2026"


def test_event_meta_line_is_labeled() -> None:
    line = format_meta_line(project())
    assert line.kind == "labeled"
    assert line.label == "Datum akce a místo konání:"
    assert line.value == "7. 3. 2026, Lucerna (datum aktualizace: 20. 2. 2026)"


def test_generic_meta_line_uses_title_or_fallback() -> None:
    generic = project(purpose="generic", event_date=None, event_venue=None)
    assert format_meta_line(generic).value == "Stage plan (datum aktualizace: 20. 2. 2026)"
    titled = project(purpose="generic", title="Festival rider")
    assert format_meta_line(titled).kind == "plain"
    assert format_meta_line(titled).value.startswith("Festival rider ")


def test_vocal_labels() -> None:
    assert format_vocal_label(1, 1, "f") == "Lead vocal"
    assert format_vocal_label(2, 2, "m") == "Lead vocal 2 (m)"
    assert format_vocal_label(2, 2, "m", show_gender=False) == "Lead vocal 2"
    assert format_vocal_label(1, 2, "x") == "Lead vocal 1"


def test_monitor_note_prefers_entity_label() -> None:
    monitoring = MonitoringPreset(type="iem_wireless", mode="stereo")
    assert format_monitor_note(monitoring, MonitorType(id="iem", label="Shure PSM 300")) == "Shure PSM 300"
    assert format_monitor_note(monitoring) == "IEM STEREO wireless"
    assert format_monitor_note(MonitoringPreset()) == "Wedge"


def test_monitor_note_with_additional_wedges() -> None:
    note = format_monitor_note(MonitoringPreset(additional_wedge_count=2))
    assert note == "Wedge + Additional wedge monitor 2x"
    assert format_monitor_bullets(note, 5) == ["Wedge (5)", "+ Additional wedge monitor 2x"]


def test_plain_monitor_bullet() -> None:
    assert format_monitor_bullets("IEM STEREO wireless", 2) == ["IEM STEREO wireless (2)"]


def test_box_header() -> None:
    assert format_stageplan_box_header("Guitar", "Petr", True) == "GUITAR – PETR (band leader)"
    assert format_stageplan_box_header("Lead vocal", "Anna") == "LEAD VOC – ANNA"
    assert format_stageplan_box_header("Drums", None) == "DRUMS"


def test_power_badge() -> None:
    assert format_power_badge(PowerRequirement(sockets=3)) == "3x 230 V"


def test_phone_grouping() -> None:
    assert format_phone("777123456") == "+420 777 123 456"
    assert format_phone("+420 777-123-456") == "+420 777 123 456"
    assert format_phone("+44 20 7946 0958") == "+44 20 7946 0958"


def test_contact_line() -> None:
    contact = Musician(id="petr", first_name="Petr", last_name="Dvořák", phone="777123456", email="petr@nb.cz")
    assert format_contact_line(contact) == "Kontaktní osoba – (kapelník) Petr Dvořák, +420 777 123 456, petr@nb.cz"


def test_export_file_names() -> None:
    assert build_export_file_name(project(), band()) == "NB_Inputlist_Stageplan_07-03-2026_Lucerna"
    generic = project(purpose="generic", event_date=None, event_venue=None)
    assert build_export_file_name(generic, band()) == "NB_Inputlist_Stageplan_2026"
