# src/kidschedule/main.py

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

from .calendar_logic import CalendarMonthEngine
from .charts import create_custody_chart
from .config import load_config
from .data import load_calendar_input, parse_instant
from .export_utils import conflict_to_dict, export_month_pdf, month_data_to_dict
from .statistics import custody_percentages, summarize_month


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kidschedule", description="Umgangskalender für einen Monat berechnen")
    parser.add_argument("input", help="JSON-Datei mit family, events, changeRequests")
    parser.add_argument("--year", type=int, help="Jahr (Standard: Jahr von --now)")
    parser.add_argument("--month", type=int, help="Monat 1-12 (Standard: Monat von --now)")
    parser.add_argument("--now", help="Bezugszeitpunkt ISO-8601 (Standard: jetzt)")
    parser.add_argument("--window", type=int, help="Konfliktfenster in Minuten")
    parser.add_argument("--config", help="Pfad zur Konfigurationsdatei")
    parser.add_argument("--json", action="store_true", help="Ergebnis als JSON ausgeben")
    parser.add_argument("--pdf", help="Monatsübersicht als PDF speichern")
    parser.add_argument("--chart", help="Betreuungsanteile als PNG speichern")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _print_month(data, conflicts):
    summary = summarize_month(data)
    print(f"📅 {data.month:02d}/{data.year}: {summary['days']} Tage, "
          f"{summary['split']} Übergabetage, {summary['pending_days']} Tage mit offenem Antrag")
    for day in data.month_days:
        parent = day.custody_parent.name if day.custody_parent else "-"
        marker = " ⚠" if day.has_pending_request else ""
        entries = "; ".join(e.title for e in day.events)
        print(f"  {day.date_str} {day.custody_color:<9} {parent:<12}{marker} {entries}")

    print("\n🔁 Nächste Übergaben:")
    if not data.upcoming_transitions:
        print("  keine in den nächsten Tagen")
    for item in data.upcoming_transitions:
        t = item.transition
        print(f"  {item.label} {item.time_str}: {t.from_parent.name} → {t.to_parent.name}")

    print(f"\n⚡ {len(conflicts)} Terminkonflikte")
    for c in conflicts:
        print(f"  {c.primary_event.title} / {c.conflicting_event.title}: "
              f"{c.overlap_type}, {c.minutes_apart} min")


def run_cli(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(message)s")

    try:
        # Nur hier außen wird die Uhr gelesen
        now = parse_instant(args.now) if args.now else datetime.now(timezone.utc)
        year = args.year or now.year
        month = args.month or now.month
        cfg = load_config(args.config)
        calendar_input = load_calendar_input(args.input)
        engine = CalendarMonthEngine(calendar_input.family, cfg)
        data = engine.get_month_data(year, month, calendar_input.events, calendar_input.change_requests, now)
        conflicts = engine.detect_conflicts(calendar_input.events, args.window)
    except (OSError, ValueError) as e:
        logging.error(f"[KidSchedule] {e}")
        print(f"Fehler: {e}", file=sys.stderr)
        return 1

    if args.json:
        out = month_data_to_dict(data)
        out['conflicts'] = [conflict_to_dict(c) for c in conflicts]
        print(json.dumps(out, ensure_ascii=False, indent=2))
    else:
        _print_month(data, conflicts)

    if args.pdf:
        export_month_pdf(data, args.pdf)
        print(f"PDF gespeichert: {args.pdf}")
    if args.chart:
        family = calendar_input.family
        shares = custody_percentages(family)
        create_custody_chart(
            [shares.get(p.id, 0) for p in family.parents],
            [p.name for p in family.parents],
            args.chart,
            subtitle=family.schedule.name or None,
        )
        print(f"Diagramm gespeichert: {args.chart}")
    return 0


def main():
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
