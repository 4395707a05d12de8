import dataclasses
import logging
from datetime import date, datetime
from typing import Any, Dict

from dateutil import tz

from kidschedule.models import CalendarConflict, CalendarMonthData

_WEEKDAY_ABBR = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']
_MONTH_ABBR = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
_WEEKDAY_DE = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]


def format_time(at: datetime, zone=None) -> str:
    """Uhrzeit im 12h-Format, z.B. '5:00 PM'."""
    local = at.astimezone(zone or tz.UTC)
    hour = local.hour % 12 or 12
    suffix = 'AM' if local.hour < 12 else 'PM'
    return f"{hour}:{local.minute:02d} {suffix}"


def format_transition_label(at: datetime, now: datetime, zone=None) -> str:
    """
    'Today', 'Tomorrow' oder 'Mon, Oct 27'. Entscheidend ist die Differenz der
    Kalendertage in der Anzeige-Zeitzone, nicht die vergangenen Stunden.
    """
    zone = zone or tz.UTC
    day = at.astimezone(zone).date()
    today = now.astimezone(zone).date()
    diff = (day - today).days
    if diff == 0:
        return "Today"
    if diff == 1:
        return "Tomorrow"
    return f"{_WEEKDAY_ABBR[day.weekday()]}, {_MONTH_ABBR[day.month - 1]} {day.day}"


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def month_data_to_dict(data: CalendarMonthData) -> Dict[str, Any]:
    """JSON-taugliche Struktur des Monats (Datumswerte als ISO-Strings)."""
    return _plain(dataclasses.asdict(data))


def conflict_to_dict(conflict: CalendarConflict) -> Dict[str, Any]:
    return _plain(dataclasses.asdict(conflict))


def export_month_pdf(data: CalendarMonthData, filename: str) -> str:
    """Schreibt eine Monatsliste (ein Tag pro Zeile) als PDF."""
    from reportlab.lib.pagesizes import letter
    from reportlab.pdfgen import canvas

    logging.info(f"[KidSchedule] PDF-Export {data.year}-{data.month:02d} nach {filename}")
    c = canvas.Canvas(filename, pagesize=letter)
    w, h = letter
    y = h - 40
    c.setFont('Helvetica-Bold', 14)
    c.drawString(50, y, f"KidSchedule Monatsübersicht {data.month:02d}/{data.year}")
    y -= 25
    c.setFont('Helvetica', 10)
    c.drawString(50, y, f"Elternteil 1: {data.current_parent.name}   Elternteil 2: {data.other_parent.name}")
    y -= 30

    header = "Datum      | Tag | Betreuung            | Farbe     | Einträge"
    c.setFont('Helvetica-Bold', 11)
    c.drawString(50, y, header)
    y -= 20
    c.setFont('Helvetica', 9)
    for day in data.month_days:
        if y < 60:
            c.showPage()
            y = h - 40
            c.setFont('Helvetica-Bold', 11)
            c.drawString(50, y, header)
            y -= 20
            c.setFont('Helvetica', 9)
        parent = day.custody_parent.name if day.custody_parent else "-"
        entries = ", ".join(e.title for e in day.events)
        if day.has_pending_request:
            entries = f"[Antrag offen] {entries}".strip()
        c.drawString(
            50, y,
            f"{day.day.isoformat()} | {_WEEKDAY_DE[day.day.weekday()]}  | {parent:<20} | {day.custody_color or '':<9} | {entries}"
        )
        y -= 14

    if data.upcoming_transitions:
        y -= 10
        if y < 80:
            c.showPage()
            y = h - 40
        c.setFont('Helvetica-Bold', 11)
        c.drawString(50, y, "Nächste Übergaben")
        y -= 18
        c.setFont('Helvetica', 9)
        for item in data.upcoming_transitions:
            if y < 60:
                c.showPage()
                y = h - 40
                c.setFont('Helvetica', 9)
            t = item.transition
            c.drawString(50, y, f"{item.label} {item.time_str}: {t.from_parent.name} -> {t.to_parent.name}")
            y -= 14
    c.save()
    return filename
