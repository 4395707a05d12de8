from typing import Dict

from kidschedule.custody import CustodyEngine
from kidschedule.models import CalendarMonthData, Family


def custody_percentages(family: Family) -> Dict[str, float]:
    """Anteil je Elternteil (Parent-ID -> Prozent) über einen Rotationszyklus."""
    return CustodyEngine(family).get_custody_percentages()


def count_custody_days(data: CalendarMonthData) -> Dict[str, int]:
    """Tage je betreuendem Elternteil (Stichprobe 12:00 UTC), nur aktueller Monat."""
    counts = {data.current_parent.id: 0, data.other_parent.id: 0}
    for day in data.month_days:
        if day.custody_parent is not None:
            counts[day.custody_parent.id] = counts.get(day.custody_parent.id, 0) + 1
    return counts


def summarize_month(data: CalendarMonthData) -> Dict[str, int]:
    """
    Zusammenfassung eines Monats:
      days            : Anzahl Tage im Monat
      primary         : Tage beim ersten Elternteil ohne Übergabe
      secondary       : Tage beim zweiten Elternteil ohne Übergabe
      split           : Tage mit Übergabe
      pending_days    : Tage mit offenem Tauschantrag
      event_entries   : angezeigte Termine (ohne Übergaben und Ortsangaben)
    """
    days = data.month_days
    return {
        'days': len(days),
        'primary': sum(1 for d in days if d.custody_color == 'primary'),
        'secondary': sum(1 for d in days if d.custody_color == 'secondary'),
        'split': sum(1 for d in days if d.custody_color == 'split'),
        'pending_days': sum(1 for d in days if d.has_pending_request),
        'event_entries': sum(1 for d in days for e in d.events if e.type == 'event'),
    }
