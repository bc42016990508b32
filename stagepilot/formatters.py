"""Text formatting for labels, meta lines, monitor notes and stage plan boxes."""

from __future__ import annotations

import re
from datetime import date
from typing import Final

from stagepilot.document_models import MetaLine
from stagepilot.models import Band, MonitoringPreset, MonitorType, Musician, PowerRequirement, Project

EVENT_META_LABEL: Final[str] = "Datum akce a místo konání:"
DEFAULT_GENERIC_TITLE: Final[str] = "Stage plan"
UPDATED_LABEL: Final[str] = "datum aktualizace"

_ADDITIONAL_WEDGE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<base>.*?)(?:\s*\+\s*Additional wedge monitor\s+(?P<count>\d+)x)$"
)
_MONITOR_TYPE_LABELS: Final[dict[str, str]] = {
    "wedge": "Wedge",
    "iem_wired": "IEM {mode} wired",
    "iem_wireless": "IEM {mode} wireless",
}


def format_document_date(iso_date: str) -> str:
    """``2026-03-07`` → ``7. 3. 2026``."""
    parsed = date.fromisoformat(iso_date.strip()[:10])
    return f"{parsed.day}. {parsed.month}. {parsed.year}"


def format_meta_line(project: Project) -> MetaLine:
    updated = f"({UPDATED_LABEL}: {format_document_date(project.document_date)})"
    if project.purpose == "event":
        event_date = format_document_date(project.event_date or project.document_date)
        venue = (project.event_venue or "").strip()
        return MetaLine(kind="labeled", label=EVENT_META_LABEL, value=f"{event_date}, {venue} {updated}")
    title = (project.title or "").strip() or DEFAULT_GENERIC_TITLE
    return MetaLine(kind="plain", value=f"{title} {updated}")


def format_vocal_label(index: int, lead_count: int, gender: str | None = None, show_gender: bool = True) -> str:
    """``Lead vocal`` for a single lead, else ``Lead vocal 2`` with an optional ``(m)``/``(f)``."""
    if lead_count <= 1:
        return "Lead vocal"
    suffix = f" ({gender})" if show_gender and gender and gender != "x" else ""
    return f"Lead vocal {index}{suffix}"


def format_monitor_note(monitoring: MonitoringPreset, entity: MonitorType | None = None) -> str:
    """Monitor table note: the monitor's label plus any extra wedges."""
    if entity is not None:
        base = entity.label
    else:
        base = _MONITOR_TYPE_LABELS.get(monitoring.type, monitoring.type).format(mode=monitoring.mode.upper())
    if monitoring.additional_wedge_count > 0:
        return f"{base} + Additional wedge monitor {monitoring.additional_wedge_count}x"
    return base


def format_monitor_bullet(note: str, no: int) -> str:
    label = note.strip() if note else ""
    return f"{label} ({no})" if label else f"({no})"


def format_monitor_bullets(note: str, no: int) -> list[str]:
    """Stage plan bullets for one monitor output; extra wedges get their own line."""
    label = note.strip() if note else ""
    match = _ADDITIONAL_WEDGE_PATTERN.match(label)
    if not label or not match or not match.group("count"):
        return [format_monitor_bullet(label, no)]
    return [
        format_monitor_bullet(match.group("base").strip(), no),
        f"+ Additional wedge monitor {match.group('count')}x",
    ]


def format_stageplan_box_header(instrument: str, first_name: str | None, is_band_leader: bool = False) -> str:
    """``GUITAR – PETR (band leader)``; ``Lead vocal`` is shortened to ``LEAD VOC``."""
    display = "Lead voc" if instrument == "Lead vocal" else instrument
    name = (first_name or "").strip()
    main = f"{display} – {name}" if name else display
    return main.upper() + (" (band leader)" if is_band_leader else "")


def format_power_badge(power: PowerRequirement) -> str:
    return f"{power.sockets}x {power.voltage} V"


def format_phone(phone: str) -> str:
    """Group Czech numbers as ``+420 123 456 789``; anything else is returned trimmed."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 9:
        digits = "420" + digits
    if len(digits) == 12 and digits.startswith("420"):
        return f"+420 {digits[3:6]} {digits[6:9]} {digits[9:]}"
    return phone.strip()


def format_contact_line(contact: Musician) -> str:
    parts = [contact.display_name]
    if contact.phone:
        parts.append(format_phone(contact.phone))
    if contact.email:
        parts.append(contact.email.strip())
    return f"Kontaktní osoba – (kapelník) {', '.join(parts)}"


def _file_token(text: str) -> str:
    token = re.sub(r"[^\w-]+", "_", text.strip(), flags=re.UNICODE)
    return token.strip("_")


def build_export_file_name(project: Project, band: Band) -> str:
    """``{CODE}_Inputlist_Stageplan_{DD-MM-YYYY}_{Venue}`` for events, year only otherwise."""
    code = _file_token((band.code or band.id).upper())
    if project.purpose == "event" and project.event_date:
        parsed = date.fromisoformat(project.event_date[:10])
        parts = [code, "Inputlist_Stageplan", parsed.strftime("%d-%m-%Y")]
        if project.event_venue:
            parts.append(_file_token(project.event_venue))
        return "_".join(part for part in parts if part)
    year = project.document_date[:4] if project.document_date else ""
    return "_".join(part for part in (code, "Inputlist_Stageplan", year) if part)
