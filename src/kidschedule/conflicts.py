# src/kidschedule/conflicts.py
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from kidschedule.custody import ONE_DAY, to_utc, utc_midnight
from kidschedule.models import CalendarConflict, CalendarEvent


def normalize_event_range(event: CalendarEvent) -> Tuple[datetime, datetime]:
    """
    Halboffenes UTC-Intervall [start, end) eines Termins.
      - Ganztägig: von 00:00 des Starttags bis 00:00 nach dem Endtag.
      - Sonst: die echten Zeitpunkte, end mindestens start.
    """
    start = to_utc(event.start_at)
    end = to_utc(event.end_at)
    if event.all_day:
        day_start = utc_midnight(start.date())
        day_end = utc_midnight(end.date()) + ONE_DAY
        return day_start, max(day_start + ONE_DAY, day_end)
    return start, max(start, end)


def _conflict_between(a: CalendarEvent, b: CalendarEvent, window: timedelta) -> Optional[CalendarConflict]:
    a_start, a_end = normalize_event_range(a)
    b_start, b_end = normalize_event_range(b)

    # Pufferzone: Intervalle um `window` verlängert
    if not (a_start < b_end + window and b_start < a_end + window):
        return None

    direct = a_start < b_end and b_start < a_end
    seconds = abs((a_start - b_start).total_seconds())
    minutes_apart = int(seconds / 60 + 0.5)

    # früherer Termin zuerst, damit das Ergebnis nicht von der Eingabereihenfolge abhängt
    if (b_start, b.id) < (a_start, a.id):
        a, b = b, a
    return CalendarConflict(
        primary_event=a,
        conflicting_event=b,
        minutes_apart=minutes_apart,
        overlap_type='overlap' if direct else 'buffer_window',
    )


def detect_conflicts(events: Iterable[CalendarEvent], window_minutes: int) -> List[CalendarConflict]:
    """
    Alle Terminpaare, die sich überschneiden oder näher als `window_minutes`
    beieinander liegen, aufsteigend nach Abstand der Startzeiten.

    Einfacher paarweiser Vergleich (O(n²)); gedacht für die Termine eines
    Monats. Negative Fenster werden auf 0 gesetzt.
    """
    # TODO: Intervallbaum statt Paarvergleich, sobald Zeiträume über einen Monat hinaus geprüft werden
    items = list(events)
    window = timedelta(minutes=max(0, window_minutes))
    conflicts = []
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            conflict = _conflict_between(items[i], items[j], window)
            if conflict:
                conflicts.append(conflict)

    conflicts.sort(key=lambda c: (c.minutes_apart, c.primary_event.id, c.conflicting_event.id))
    return conflicts
