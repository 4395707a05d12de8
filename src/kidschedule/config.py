import json
import logging
import math
import os
from typing import Optional

from dateutil import tz

DEFAULT_CONFLICT_WINDOW_MINUTES = 120
MIN_CONFLICT_WINDOW_MINUTES = 0
MAX_CONFLICT_WINDOW_MINUTES = 720

DEFAULTS = {
    'conflict_window_minutes': DEFAULT_CONFLICT_WINDOW_MINUTES,
    'sidebar_lookahead_days': 14,
    'upcoming_transition_limit': 10,
    'max_day_events': 3,
    'display_timezone': 'UTC',
}


def _config_path():
    base = os.path.join(os.path.expanduser('~'), '.kidschedule')
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, 'kidschedule_config.json')


def default_config() -> dict:
    return dict(DEFAULTS)


def load_config(path: Optional[str] = None) -> dict:
    """Lädt die Konfiguration; fehlende Schlüssel kommen aus DEFAULTS."""
    path = path or _config_path()
    cfg = default_config()
    if not os.path.exists(path):
        return cfg
    try:
        with open(path, 'r', encoding='utf-8') as f:
            stored = json.load(f)
    except (OSError, ValueError) as e:
        logging.warning(f"[KidSchedule] Konfiguration {path} nicht lesbar, nutze Standardwerte: {e}")
        return cfg
    if isinstance(stored, dict):
        cfg.update(stored)
    else:
        logging.warning(f"[KidSchedule] Konfiguration {path} ist kein JSON-Objekt, nutze Standardwerte")
    return cfg


def save_config(cfg: dict, path: Optional[str] = None):
    path = path or _config_path()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2)


def resolve_conflict_window(value) -> int:
    """Rundet (halbe Minuten aufwärts) und begrenzt das Konfliktfenster auf 0-720 Minuten."""
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFLICT_WINDOW_MINUTES
    if minutes != minutes or minutes in (float('inf'), float('-inf')):
        return DEFAULT_CONFLICT_WINDOW_MINUTES
    return min(MAX_CONFLICT_WINDOW_MINUTES, max(MIN_CONFLICT_WINDOW_MINUTES, math.floor(minutes + 0.5)))


def display_timezone(cfg: Optional[dict] = None):
    """tzinfo für die Anzeige von Uhrzeiten; unbekannte Namen -> UTC."""
    name = (cfg or {}).get('display_timezone') or 'UTC'
    zone = tz.gettz(name)
    if zone is None:
        logging.warning(f"[KidSchedule] Unbekannte Zeitzone {name!r}, nutze UTC")
        return tz.UTC
    return zone
