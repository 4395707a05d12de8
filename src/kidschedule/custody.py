# src/kidschedule/custody.py
"""
Umgangs-Rotation: ordnet jedem Zeitpunkt den betreuenden Elternteil zu.

Der Plan ist eine zyklische Liste von Blöcken (Elternteil, Anzahl Tage), die
ab dem Ankerdatum (00:00 UTC) endlos wiederholt wird. Es wird nichts pro Tag
gespeichert; jede Abfrage rechnet über

    tag      = floor((t - anker) / 1 Tag)
    position = tag mod zykluslänge

und sucht den Block, dessen Tagesbereich die Position enthält.

Konvention: ein Block besitzt ganze Kalendertage, der Wechseltag gehört
bereits zum neuen Block. Die Übergabe selbst liegt um `transition_hour` auf
diesem Tag.
"""
import bisect
import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from itertools import islice
from typing import Dict, Iterator, List, Optional, Tuple

from kidschedule.models import (
    CustodyStatus, Family, Parent, Schedule, ScheduleBlock, ScheduleTransition,
)

UTC = timezone.utc
ONE_DAY = timedelta(days=1)


class InvalidScheduleError(ValueError):
    """Der Umgangsplan ist unbrauchbar (keine Blöcke, Blocklänge < 1, ...)."""


def to_utc(value: datetime) -> datetime:
    """Naive Zeitpunkte gelten als UTC, alle anderen werden nach UTC umgerechnet."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_midnight(d: date) -> datetime:
    return datetime(d.year, d.month, d.day, tzinfo=UTC)


def validate_schedule(schedule: Schedule, parent_count: int = 2) -> None:
    """Wirft InvalidScheduleError, wenn der Plan nicht ausgewertet werden kann."""
    problem = None
    if not schedule.blocks:
        problem = "schedule has no blocks"
    elif not isinstance(schedule.transition_hour, int) or not 0 <= schedule.transition_hour <= 23:
        problem = f"transition_hour must be 0-23, got {schedule.transition_hour!r}"
    else:
        for i, block in enumerate(schedule.blocks):
            if isinstance(block.days, bool) or not isinstance(block.days, int) or block.days < 1:
                problem = f"block {i} must span at least one day, got {block.days!r}"
                break
            if not 0 <= block.owner_parent_index < parent_count:
                problem = f"block {i} references unknown parent index {block.owner_parent_index}"
                break
    if problem:
        logging.error(f"[KidSchedule] Ungültiger Umgangsplan: {problem}")
        raise InvalidScheduleError(problem)


class CustodyEngine:
    """Löst Betreuung und Übergaben für eine Familie auf.

    Hält nur unveränderliche Konfiguration; alle Methoden sind reine
    Funktionen ihrer Argumente. `now`/`at` wird immer übergeben.
    """

    def __init__(self, family: Family):
        validate_schedule(family.schedule, len(family.parents))
        self.family = family
        self.schedule = family.schedule
        self.parents = family.parents
        self.anchor = utc_midnight(family.custody_anchor_date)
        self.cycle_days = self.schedule.cycle_days

        # Kumulierte Blockgrenzen, z.B. 2-2-3 -> [2, 4, 7]
        self.thresholds: List[int] = []
        total = 0
        for block in self.schedule.blocks:
            total += block.days
            self.thresholds.append(total)

        # (Tag im Zyklus, von-Block, zu-Block) für echte Übergaben
        self._handovers: List[Tuple[int, int, int]] = []
        count = len(self.schedule.blocks)
        for i, block in enumerate(self.schedule.blocks):
            prev = (i - 1) % count
            if self.schedule.blocks[prev].owner_parent_index != block.owner_parent_index:
                self._handovers.append((self.thresholds[i] - block.days, prev, i))

        logging.debug(
            f"[KidSchedule] CustodyEngine für Familie {family.id}: "
            f"{count} Blöcke, Zyklus {self.cycle_days} Tage, {len(self._handovers)} Übergaben/Zyklus"
        )

    # interne Helfer

    def _parent_of(self, block: ScheduleBlock) -> Parent:
        return self.parents[block.owner_parent_index]

    def _handover_instant(self, day_index: int) -> datetime:
        return self.anchor + timedelta(days=day_index, hours=self.schedule.transition_hour)

    def _block_index(self, at: datetime) -> int:
        """Index des Blocks, zu dem der Kalendertag von `at` gehört."""
        day_index = (to_utc(at) - self.anchor) // ONE_DAY
        position = day_index % self.cycle_days
        # 0 <= position < thresholds[-1], also immer ein gültiger Index
        return bisect.bisect_right(self.thresholds, position)

    def _iter_transitions(self, start: datetime) -> Iterator[ScheduleTransition]:
        """Alle Übergaben ab `start` (inklusive), Zyklus für Zyklus, unbegrenzt."""
        if not self._handovers:
            return
        start = to_utc(start)
        cycle_no = ((start - self.anchor) // ONE_DAY) // self.cycle_days
        blocks = self.schedule.blocks
        while True:
            base = cycle_no * self.cycle_days
            for offset, from_idx, to_idx in self._handovers:
                at = self._handover_instant(base + offset)
                if at < start:
                    continue
                yield ScheduleTransition(
                    at=at,
                    from_parent=self._parent_of(blocks[from_idx]),
                    to_parent=self._parent_of(blocks[to_idx]),
                    location=self.schedule.exchange_location,
                )
            cycle_no += 1

    def _previous_transition(self, at: datetime) -> Optional[ScheduleTransition]:
        """Letzte Übergabe mit Zeitpunkt <= at."""
        previous = None
        # jede Übergabe kommt genau einmal pro Zyklus vor
        for transition in self._iter_transitions(at - timedelta(days=self.cycle_days)):
            if transition.at > at:
                break
            previous = transition
        return previous

    def _next_transition(self, at: datetime) -> Optional[ScheduleTransition]:
        """Erste Übergabe mit Zeitpunkt > at."""
        for transition in self._iter_transitions(at):
            if transition.at > at:
                return transition
        return None

    # öffentliche API

    def get_status(self, at: datetime) -> CustodyStatus:
        """
        Betreuung zum Zeitpunkt `at`, auch vor dem Ankerdatum.

        Elternteil und Block gelten tageweise. period_start/period_end sind
        dagegen die echten Übergaben um `at` herum, also dieselben Zeitpunkte,
        die get_upcoming_transitions liefert. Ohne Übergaben (nur ein
        Elternteil im Plan) bleiben sie None.
        """
        at = to_utc(at)
        index = self._block_index(at)
        block = self.schedule.blocks[index]
        previous = self._previous_transition(at)
        following = self._next_transition(at)
        period_start = previous.at if previous else None
        period_end = following.at if following else None
        minutes = None
        if period_end is not None:
            minutes = int((period_end - at).total_seconds() // 60)
        return CustodyStatus(
            current_parent=self._parent_of(block),
            block_label=block.label,
            block_index=index,
            period_start=period_start,
            period_end=period_end,
            minutes_until_transition=minutes,
            transition_location=self.schedule.exchange_location,
        )

    def get_transitions_in_range(self, range_start: datetime, range_end: datetime) -> List[ScheduleTransition]:
        """Alle Übergaben mit range_start <= at < range_end, aufsteigend sortiert."""
        range_end = to_utc(range_end)
        transitions = []
        for transition in self._iter_transitions(range_start):
            if transition.at >= range_end:
                break
            transitions.append(transition)
        return transitions

    def get_upcoming_transitions(self, now: datetime, limit: int = 5) -> List[ScheduleTransition]:
        """Die nächsten `limit` Übergaben ab `now` (inklusive)."""
        if limit <= 0:
            return []
        return list(islice(self._iter_transitions(now), limit))

    def get_custody_percentages(self) -> Dict[str, float]:
        """Anteil der Zyklustage je Elternteil in Prozent (zwei Nachkommastellen)."""
        days_by_parent: Dict[str, int] = {}
        for block in self.schedule.blocks:
            pid = self._parent_of(block).id
            days_by_parent[pid] = days_by_parent.get(pid, 0) + block.days
        return {
            pid: round(days / self.cycle_days * 100, 2)
            for pid, days in days_by_parent.items()
        }

    def get_month_custody_map(self, year: int, month: int) -> Dict[date, Parent]:
        """Betreuender Elternteil je Tag des Monats, abgefragt jeweils um 12:00 UTC."""
        _, days_in_month = calendar.monthrange(year, month)
        result = {}
        for day in range(1, days_in_month + 1):
            noon = datetime(year, month, day, 12, tzinfo=UTC)
            result[noon.date()] = self.get_status(noon).current_parent
        return result


# Vorlagen für gängige Rotationen; Elternteil 0 hat den ersten Block.

def alternating_weeks() -> Tuple[ScheduleBlock, ...]:
    """Wöchentlicher Wechsel, Zyklus 14 Tage."""
    return (
        ScheduleBlock(0, 7, "Week A"),
        ScheduleBlock(1, 7, "Week B"),
    )


def two_two_three() -> Tuple[ScheduleBlock, ...]:
    """2-2-3 Rotation, Zyklus 14 Tage; jedes zweite Wochenende pro Elternteil."""
    return (
        ScheduleBlock(0, 2, "Mon-Tue A"),
        ScheduleBlock(1, 2, "Wed-Thu B"),
        ScheduleBlock(0, 3, "Fri-Sun A"),
        ScheduleBlock(1, 2, "Mon-Tue B"),
        ScheduleBlock(0, 2, "Wed-Thu A"),
        ScheduleBlock(1, 3, "Fri-Sun B"),
    )


def three_four_four_three() -> Tuple[ScheduleBlock, ...]:
    """3-4-4-3 Rotation, Zyklus 14 Tage."""
    return (
        ScheduleBlock(0, 3, "3 days A"),
        ScheduleBlock(1, 4, "4 days B"),
        ScheduleBlock(0, 4, "4 days A"),
        ScheduleBlock(1, 3, "3 days B"),
    )
