# src/kidschedule/models.py
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

EVENT_CATEGORIES = ('holiday', 'activity', 'medical', 'school', 'other')
CONFIRMATION_STATUSES = ('confirmed', 'pending', 'declined')
REQUEST_STATUSES = ('draft', 'pending', 'accepted', 'declined', 'countered', 'expired')
CUSTODY_COLORS = ('primary', 'secondary', 'split')


@dataclass(frozen=True)
class Parent:
    """Ein Elternteil der Familie."""
    id: str
    name: str
    email: str = ""
    avatar_url: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Child:
    id: str
    first_name: str
    last_name: str = ""
    date_of_birth: Optional[date] = None


@dataclass(frozen=True)
class ScheduleBlock:
    """Zusammenhängende Tage eines Elternteils innerhalb der Rotation."""
    owner_parent_index: int      # 0 oder 1, Index in Family.parents
    days: int                    # >= 1
    label: str = ""


@dataclass(frozen=True)
class Schedule:
    """Zyklische Block-Liste; wiederholt sich ab dem Ankerdatum."""
    blocks: Tuple[ScheduleBlock, ...]
    transition_hour: int = 17    # Stunde der Übergabe (0-23)
    id: str = ""
    name: str = ""
    exchange_location: Optional[str] = None

    @property
    def cycle_days(self) -> int:
        return sum(b.days for b in self.blocks)


@dataclass(frozen=True)
class Family:
    """Aggregat: zwei Eltern, Kinder, Ankerdatum und Umgangsplan."""
    id: str
    parents: Tuple[Parent, Parent]
    custody_anchor_date: date
    schedule: Schedule
    children: Tuple[Child, ...] = ()


@dataclass(frozen=True)
class CalendarEvent:
    """Termin im Familienkalender. start_at/end_at sind UTC-Zeitpunkte."""
    id: str
    family_id: str
    title: str
    category: str
    start_at: datetime
    end_at: datetime
    all_day: bool = False
    location: Optional[str] = None
    created_by: Optional[str] = None
    confirmation_status: str = 'confirmed'
    description: Optional[str] = None
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class ScheduleChangeRequest:
    """Antrag auf Tausch: Zeitraum abgeben, Ersatzzeitraum erhalten."""
    id: str
    family_id: str
    requested_by: str
    title: str
    giving_up_start: date
    giving_up_end: date
    status: str = 'pending'
    requested_make_up_start: Optional[date] = None
    requested_make_up_end: Optional[date] = None
    created_at: Optional[datetime] = None
    description: Optional[str] = None
    responded_at: Optional[datetime] = None
    response_note: Optional[str] = None


@dataclass(frozen=True)
class ScheduleTransition:
    """Übergabe; wird immer aus Schedule + Anker neu berechnet, nie gespeichert."""
    at: datetime
    from_parent: Parent
    to_parent: Parent
    location: Optional[str] = None


@dataclass(frozen=True)
class CustodyStatus:
    current_parent: Parent
    block_label: str
    block_index: int
    period_start: Optional[datetime]   # letzte Übergabe <= Zeitpunkt
    period_end: Optional[datetime]     # nächste Übergabe > Zeitpunkt
    minutes_until_transition: Optional[int]
    transition_location: Optional[str] = None


@dataclass(frozen=True)
class CalendarConflict:
    primary_event: CalendarEvent
    conflicting_event: CalendarEvent
    minutes_apart: int
    overlap_type: str            # 'overlap' | 'buffer_window'


@dataclass(frozen=True)
class CalendarDayEvent:
    """Eintrag in einer Tageszelle (Übergabe, Ort oder Termin)."""
    id: str
    type: str                    # 'transition' | 'event' | 'note'
    title: str
    time: Optional[str] = None
    icon: Optional[str] = None
    icon_color: Optional[str] = None
    bg_color: Optional[str] = None


@dataclass(frozen=True)
class CalendarDayState:
    """Eine Zelle im Monatsraster. Wird pro Aufruf neu erzeugt."""
    day: date
    date_str: str
    day_of_month: int
    in_current_month: bool = True
    custody_parent: Optional[Parent] = None
    custody_color: Optional[str] = None
    block_label: str = ""
    transition_to_parent: Optional[Parent] = None
    events: Tuple[CalendarDayEvent, ...] = ()
    has_pending_request: bool = False
    pending_request: Optional[ScheduleChangeRequest] = None
    transition: Optional[ScheduleTransition] = None


@dataclass(frozen=True)
class TransitionListItem:
    transition: ScheduleTransition
    label: str                   # "Today", "Tomorrow", "Mon, Oct 27"
    time_str: str                # "5:00 PM"
    is_upcoming: bool


@dataclass(frozen=True)
class CalendarMonthData:
    """Fertiges View-Model eines Monats, enthält nur Daten."""
    year: int
    month: int
    days: Tuple[CalendarDayState, ...]
    upcoming_transitions: Tuple[TransitionListItem, ...]
    current_parent: Parent
    other_parent: Parent

    @property
    def month_days(self) -> Tuple[CalendarDayState, ...]:
        """Nur die Tage des angezeigten Monats (ohne Vormonats-Auffüllung)."""
        return tuple(d for d in self.days if d.in_current_month)
