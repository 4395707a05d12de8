# src/kidschedule/calendar_logic.py
"""
Monatsansicht: verbindet Betreuung, Übergaben, Termine und offene
Tauschanträge zu einem Raster aus Tageszellen.

Alles wird bei jedem Aufruf aus den Eingaben neu berechnet; es gibt keinen
Cache und keinen veränderlichen Zustand zwischen zwei Aufrufen. Tage werden
in UTC gebildet. Uhrzeiten erscheinen in der Anzeige-Zeitzone, in den
Tageszellen aber nur, solange sie dort auf denselben Kalendertag fallen.
"""
import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from kidschedule.config import default_config, display_timezone, resolve_conflict_window
from kidschedule.conflicts import detect_conflicts
from kidschedule.custody import ONE_DAY, UTC, CustodyEngine, to_utc, utc_midnight
from kidschedule.export_utils import format_time, format_transition_label
from kidschedule.models import (
    CalendarConflict, CalendarDayEvent, CalendarDayState, CalendarEvent,
    CalendarMonthData, Family, ScheduleChangeRequest, ScheduleTransition,
    TransitionListItem,
)

# Kategorie -> (Icon, Farbklasse)
_CATEGORY_STYLE = {
    'medical': ('local_hospital', 'text-red-500'),
    'activity': ('sports_soccer', 'text-orange-500'),
    'school': ('school', 'text-purple-500'),
    'holiday': ('celebration', 'text-amber-500'),
}
_DEFAULT_STYLE = ('event', 'text-slate-500')

_CSS_CLASSES = {
    'primary': 'bg-primary/5',
    'secondary': 'bg-secondary/5',
    'split': 'split',
}

_EARLIEST = datetime.min.replace(tzinfo=UTC)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def leading_blank_days(year: int, month: int) -> int:
    """Anzahl Leerzellen vor dem 1. bei Wochenbeginn Sonntag."""
    return (date(year, month, 1).weekday() + 1) % 7


def _as_day(value) -> date:
    if isinstance(value, datetime):
        return to_utc(value).date()
    return value


def _cell_time(at: datetime, day: date, zone=None) -> str:
    """Uhrzeit in einer Tageszelle. Die Zellen sind UTC-Tage; fällt die lokale
    Zeit auf einen anderen Kalendertag, wird die UTC-Uhrzeit gezeigt."""
    if zone is not None and at.astimezone(zone).date() != day:
        zone = None
    return format_time(at, zone)


def merge_events_for_day(
    day: date,
    transition: Optional[ScheduleTransition],
    day_events: Iterable[CalendarEvent],
    zone=None,
    max_items: int = 3,
) -> List[CalendarDayEvent]:
    """
    Einträge einer Tageszelle: Übergabe (plus Ort) immer zuerst, danach die
    Termine des Tages. Die Zelle zeigt nur wenige Symbole, daher wird auf
    `max_items` gekürzt.
    """
    date_str = day.isoformat()
    merged: List[CalendarDayEvent] = []

    if transition is not None:
        time_str = _cell_time(transition.at, day, zone)
        merged.append(CalendarDayEvent(
            id=f"transition-{date_str}",
            type='transition',
            title=f"Exchange {time_str}",
            time=time_str,
            icon='swap_driving_apps_wheel',
            bg_color='bg-secondary/20 text-secondary-900',
        ))
        if transition.location:
            merged.append(CalendarDayEvent(
                id=f"location-{date_str}",
                type='note',
                title=transition.location,
                icon='location_on',
                bg_color='bg-slate-100 dark:bg-slate-700',
            ))

    for event in day_events:
        icon, icon_color = _CATEGORY_STYLE.get(event.category, _DEFAULT_STYLE)
        merged.append(CalendarDayEvent(
            id=event.id,
            type='event',
            title=event.title,
            time=None if event.all_day else _cell_time(to_utc(event.start_at), day, zone),
            icon=icon,
            icon_color=icon_color,
        ))

    return merged[:max(0, max_items)]


class CalendarMonthEngine:
    """Baut CalendarMonthData für eine Familie.

    Hält nur die Familie, den Rotations-Resolver und die Konfiguration.
    Ein ungültiger Umgangsplan fällt schon im Konstruktor auf
    (InvalidScheduleError).
    """

    def __init__(self, family: Family, config: Optional[dict] = None):
        self.family = family
        self.config = default_config()
        self.config.update(config or {})
        self.engine = CustodyEngine(family)
        self.zone = display_timezone(self.config)

    def get_month_data(
        self,
        year: int,
        month: int,
        events: Iterable[CalendarEvent],
        change_requests: Iterable[ScheduleChangeRequest],
        now: datetime,
    ) -> CalendarMonthData:
        """
        Kompletter Monat für das Raster. `month` muss 1-12 sein (wird nicht
        geprüft); `now` bestimmt nur die Seitenleiste der Übergaben.
        """
        now = to_utc(now)
        n_days = days_in_month(year, month)
        first = date(year, month, 1)
        last = date(year, month, n_days)
        month_start = utc_midnight(first)
        month_end = month_start + timedelta(days=n_days)

        requests_by_day = self._pending_request_lookup(change_requests, first, last)
        transitions_by_day = {
            t.at.date(): t for t in self.engine.get_transitions_in_range(month_start, month_end)
        }
        events_by_day = self._events_by_day(events, first, last)

        days = self._prev_month_padding(year, month)
        primary = self.family.parents[0]
        max_items = int(self.config['max_day_events'])

        for day_of_month in range(1, n_days + 1):
            day = date(year, month, day_of_month)
            noon = datetime(year, month, day_of_month, 12, tzinfo=UTC)
            status = self.engine.get_status(noon)
            transition = transitions_by_day.get(day)

            if transition is not None:
                color = 'split'
            elif status.current_parent.id == primary.id:
                color = 'primary'
            else:
                color = 'secondary'

            pending = requests_by_day.get(day)
            days.append(CalendarDayState(
                day=day,
                date_str=day.isoformat(),
                day_of_month=day_of_month,
                in_current_month=True,
                custody_parent=status.current_parent,
                custody_color=color,
                block_label=status.block_label,
                transition_to_parent=transition.to_parent if transition else None,
                events=tuple(merge_events_for_day(
                    day, transition, events_by_day.get(day, ()), self.zone, max_items
                )),
                has_pending_request=pending is not None,
                pending_request=pending,
                transition=transition,
            ))

        logging.debug(
            f"[KidSchedule] Monat {year}-{month:02d}: {len(transitions_by_day)} Übergaben, "
            f"{len(requests_by_day)} Tage mit offenem Antrag"
        )
        return CalendarMonthData(
            year=year,
            month=month,
            days=tuple(days),
            upcoming_transitions=tuple(self._upcoming_transitions(now)),
            current_parent=self.family.parents[0],
            other_parent=self.family.parents[1],
        )

    def _pending_request_lookup(
        self, requests: Iterable[ScheduleChangeRequest], first: date, last: date
    ) -> Dict[date, ScheduleChangeRequest]:
        """Tag -> offener Antrag; bei Überschneidung gewinnt der neueste Antrag."""
        pending = [r for r in requests if r.status == 'pending']
        pending.sort(key=lambda r: (to_utc(r.created_at) if r.created_at else _EARLIEST, r.id))

        by_day: Dict[date, ScheduleChangeRequest] = {}
        for req in pending:
            cursor = max(_as_day(req.giving_up_start), first)
            end = min(_as_day(req.giving_up_end), last)
            while cursor <= end:
                by_day[cursor] = req
                cursor += ONE_DAY
        return by_day

    @staticmethod
    def _events_by_day(events: Iterable[CalendarEvent], first: date, last: date) -> Dict[date, List[CalendarEvent]]:
        by_day: Dict[date, List[CalendarEvent]] = {}
        for event in events:
            day = to_utc(event.start_at).date()
            if first <= day <= last:
                by_day.setdefault(day, []).append(event)
        for day_events in by_day.values():
            day_events.sort(key=lambda e: (to_utc(e.start_at), e.id))
        return by_day

    @staticmethod
    def _prev_month_padding(year: int, month: int) -> List[CalendarDayState]:
        blanks = leading_blank_days(year, month)
        first = date(year, month, 1)
        padding = []
        for offset in range(blanks, 0, -1):
            day = first - timedelta(days=offset)
            padding.append(CalendarDayState(
                day=day,
                date_str=day.isoformat(),
                day_of_month=day.day,
                in_current_month=False,
            ))
        return padding

    def _upcoming_transitions(self, now: datetime) -> List[TransitionListItem]:
        cutoff = now + timedelta(days=int(self.config['sidebar_lookahead_days']))
        limit = int(self.config['upcoming_transition_limit'])
        items = []
        for transition in self.engine.get_upcoming_transitions(now, limit):
            if transition.at > cutoff:
                break
            items.append(TransitionListItem(
                transition=transition,
                label=format_transition_label(transition.at, now, self.zone),
                time_str=format_time(transition.at, self.zone),
                is_upcoming=transition.at > now,
            ))
        return items

    def get_day_color(self, day: date) -> str:
        """Farbe eines einzelnen Tages ohne den ganzen Monat aufzubauen."""
        start = utc_midnight(day)
        if self.engine.get_transitions_in_range(start, start + ONE_DAY):
            return 'split'
        status = self.engine.get_status(start + timedelta(hours=12))
        return 'primary' if status.current_parent.id == self.family.parents[0].id else 'secondary'

    @staticmethod
    def color_to_css_class(color: str) -> str:
        return _CSS_CLASSES.get(color, '')

    def detect_conflicts(self, events: Iterable[CalendarEvent], window_minutes: Optional[int] = None) -> List[CalendarConflict]:
        """Delegiert an conflicts.detect_conflicts; ohne Fenster gilt der konfigurierte Standard."""
        if window_minutes is None:
            window_minutes = resolve_conflict_window(self.config['conflict_window_minutes'])
        return detect_conflicts(events, window_minutes)
