"""
Einlesen der Rohdaten (Familie, Termine, Tauschanträge) aus dicts bzw. JSON,
wie sie die Persistenzschicht liefert. Schlüssel dürfen camelCase oder
snake_case sein. Zeitstempel werden mit dateutil geparst.
"""
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, NamedTuple, Optional

from dateutil.parser import isoparse

from kidschedule.custody import to_utc, utc_midnight
from kidschedule.models import (
    EVENT_CATEGORIES, CalendarEvent, Child, Family, Parent, Schedule,
    ScheduleBlock, ScheduleChangeRequest,
)


class RecordParseError(ValueError):
    """Ein Datensatz lässt sich nicht in das Modell übernehmen."""


class CalendarInput(NamedTuple):
    family: Family
    events: List[CalendarEvent]
    change_requests: List[ScheduleChangeRequest]


def _get(raw: Dict[str, Any], *keys, default=None):
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _require(raw: Dict[str, Any], kind: str, *keys):
    value = _get(raw, *keys)
    if value is None:
        raise RecordParseError(f"{kind} {raw.get('id', '?')}: missing field {keys[0]!r}")
    return value


def parse_instant(value) -> datetime:
    """ISO-8601 -> UTC-datetime. Reine Datumsangaben werden 00:00 UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return utc_midnight(value)
    try:
        return to_utc(isoparse(str(value)))
    except (ValueError, OverflowError) as e:
        raise RecordParseError(f"invalid timestamp {value!r}: {e}") from e


def parse_day(value) -> date:
    """ISO-Datum oder Zeitstempel -> UTC-Kalendertag."""
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    return parse_instant(value).date()


def _optional_day(value) -> Optional[date]:
    return parse_day(value) if value not in (None, "") else None


def _optional_instant(value) -> Optional[datetime]:
    return parse_instant(value) if value not in (None, "") else None


def parse_parent(raw: Dict[str, Any]) -> Parent:
    return Parent(
        id=str(_require(raw, 'parent', 'id')),
        name=_get(raw, 'name', default=''),
        email=_get(raw, 'email', default=''),
        avatar_url=_get(raw, 'avatarUrl', 'avatar_url'),
        phone=_get(raw, 'phone'),
    )


def parse_child(raw: Dict[str, Any]) -> Child:
    return Child(
        id=str(_require(raw, 'child', 'id')),
        first_name=_get(raw, 'firstName', 'first_name', default=''),
        last_name=_get(raw, 'lastName', 'last_name', default=''),
        date_of_birth=_optional_day(_get(raw, 'dateOfBirth', 'date_of_birth')),
    )


def parse_block(raw: Dict[str, Any], parent_ids: List[str]) -> ScheduleBlock:
    """Blockbesitzer als Index (ownerParentIndex) oder als parentId."""
    index = _get(raw, 'ownerParentIndex', 'owner_parent_index')
    if index is None:
        parent_id = _get(raw, 'parentId', 'parent_id')
        if parent_id is None:
            raise RecordParseError(f"schedule block {raw!r}: no owner given")
        if str(parent_id) not in parent_ids:
            raise RecordParseError(f"schedule block {raw!r}: unknown parent id {parent_id!r}")
        index = parent_ids.index(str(parent_id))
    days = _get(raw, 'days')
    if days is None:
        raise RecordParseError(f"schedule block {raw!r}: missing field 'days'")
    try:
        return ScheduleBlock(owner_parent_index=int(index), days=int(days), label=_get(raw, 'label', default=''))
    except (TypeError, ValueError) as e:
        raise RecordParseError(f"schedule block {raw!r}: {e}") from e


def parse_schedule(raw: Dict[str, Any], parent_ids: List[str]) -> Schedule:
    return Schedule(
        blocks=tuple(parse_block(b, parent_ids) for b in _get(raw, 'blocks', default=[])),
        transition_hour=int(_get(raw, 'transitionHour', 'transition_hour', default=17)),
        id=str(_get(raw, 'id', default='')),
        name=_get(raw, 'name', default=''),
        exchange_location=_get(raw, 'exchangeLocation', 'exchange_location'),
    )


def parse_family(raw: Dict[str, Any]) -> Family:
    parents = tuple(parse_parent(p) for p in _get(raw, 'parents', default=[]))
    if len(parents) != 2:
        raise RecordParseError(f"family {raw.get('id', '?')}: expected two parents, got {len(parents)}")
    parent_ids = [p.id for p in parents]
    return Family(
        id=str(_require(raw, 'family', 'id')),
        parents=parents,
        custody_anchor_date=parse_day(_require(raw, 'family', 'custodyAnchorDate', 'custody_anchor_date')),
        schedule=parse_schedule(_require(raw, 'family', 'schedule'), parent_ids),
        children=tuple(parse_child(c) for c in _get(raw, 'children', default=[])),
    )


def parse_event(raw: Dict[str, Any]) -> CalendarEvent:
    category = _get(raw, 'category', default='other')
    if category not in EVENT_CATEGORIES:
        logging.warning(f"[KidSchedule] Termin {raw.get('id')}: unbekannte Kategorie {category!r}, nutze 'other'")
        category = 'other'
    start = parse_instant(_require(raw, 'event', 'startAt', 'start_at'))
    end = parse_instant(_get(raw, 'endAt', 'end_at', default=start))
    return CalendarEvent(
        id=str(_require(raw, 'event', 'id')),
        family_id=str(_get(raw, 'familyId', 'family_id', default='')),
        title=_get(raw, 'title', default=''),
        category=category,
        start_at=start,
        end_at=end,
        all_day=bool(_get(raw, 'allDay', 'all_day', default=False)),
        location=_get(raw, 'location'),
        created_by=_get(raw, 'createdBy', 'created_by'),
        confirmation_status=_get(raw, 'confirmationStatus', 'confirmation_status', default='confirmed'),
        description=_get(raw, 'description'),
        parent_id=_get(raw, 'parentId', 'parent_id'),
    )


def parse_change_request(raw: Dict[str, Any]) -> ScheduleChangeRequest:
    return ScheduleChangeRequest(
        id=str(_require(raw, 'change request', 'id')),
        family_id=str(_get(raw, 'familyId', 'family_id', default='')),
        requested_by=str(_get(raw, 'requestedBy', 'requested_by', default='')),
        title=_get(raw, 'title', default=''),
        giving_up_start=parse_day(_require(raw, 'change request', 'givingUpPeriodStart', 'giving_up_start')),
        giving_up_end=parse_day(_require(raw, 'change request', 'givingUpPeriodEnd', 'giving_up_end')),
        status=_get(raw, 'status', default='pending'),
        requested_make_up_start=_optional_day(_get(raw, 'requestedMakeUpStart', 'requested_make_up_start')),
        requested_make_up_end=_optional_day(_get(raw, 'requestedMakeUpEnd', 'requested_make_up_end')),
        created_at=_optional_instant(_get(raw, 'createdAt', 'created_at')),
        description=_get(raw, 'description'),
        responded_at=_optional_instant(_get(raw, 'respondedAt', 'responded_at')),
        response_note=_get(raw, 'responseNote', 'response_note'),
    )


def parse_calendar_input(raw: Dict[str, Any]) -> CalendarInput:
    return CalendarInput(
        family=parse_family(_require(raw, 'input', 'family')),
        events=[parse_event(e) for e in _get(raw, 'events', default=[])],
        change_requests=[
            parse_change_request(r)
            for r in _get(raw, 'changeRequests', 'change_requests', default=[])
        ],
    )


def load_calendar_input(path: str) -> CalendarInput:
    """Liest eine JSON-Datei mit den Schlüsseln family, events, changeRequests."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except ValueError as e:
        logging.error(f"[KidSchedule] Eingabedatei {path} ist kein gültiges JSON: {e}")
        raise RecordParseError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise RecordParseError(f"{path}: expected a JSON object")
    return parse_calendar_input(raw)
