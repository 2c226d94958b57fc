#!/usr/bin/env python3
"""
Bulk import script for outings.
Reads a CSV export (one outing per row) and adds the outings to the app.

Expected columns: date, pitcher, event_type, pitch_count, strikes, max_velo, notes
Dates may be YYYY-MM-DD or MM/DD/YYYY. Pitchers not on the roster are added.

Usage:
    python bulk_import_outings.py outings.csv [--yes]
"""

import argparse
import csv
import sys
from typing import Dict, List, Tuple

from dotenv import load_dotenv

load_dotenv()

from diamond_dash.config import DATA_DIR, DEFAULT_MAX_WEEKLY_PITCHES
from diamond_dash.models import Outing, Pitcher
from diamond_dash.storage import StorageManager, StorageError
from diamond_dash.utils import validate_outing_data, outing_fields_from_form


def read_rows(csv_path: str) -> List[Dict[str, str]]:
    with open(csv_path, newline='', encoding='utf-8-sig') as f:
        rows = []
        for row in csv.DictReader(f):
            cleaned = {(k or '').strip().lower(): (v or '').strip() for k, v in row.items()}
            cleaned['pitcher_name'] = cleaned.pop('pitcher', cleaned.get('pitcher_name', ''))
            rows.append(cleaned)
        return rows


def _outing_key(pitcher_name: str, date: str, event_type: str, pitch_count: int) -> Tuple:
    return (pitcher_name.lower(), date, event_type, pitch_count)


def import_outings(storage: StorageManager, rows: List[Dict[str, str]]) -> Dict[str, int]:
    """Import rows, skipping ones that already exist; returns counts"""
    existing_keys = set()
    for outing in storage.get_all_outings():
        existing_keys.add(_outing_key(outing.pitcher_name, outing.date, outing.event_type.value, outing.pitch_count))

    imported = 0
    skipped = 0
    failed = 0

    for line_number, row in enumerate(rows, start=2):
        errors = validate_outing_data(row)
        if errors:
            print(f"Line {line_number}: {'; '.join(errors)}")
            failed += 1
            continue

        try:
            fields = outing_fields_from_form(row)
            pitcher = storage.get_pitcher_by_name(row['pitcher_name'])
            if pitcher is None:
                pitcher = Pitcher(name=row['pitcher_name'], max_weekly_pitches=DEFAULT_MAX_WEEKLY_PITCHES)
                storage.save_pitcher(pitcher)
                print(f"Added {pitcher.name} to the roster")

            outing = Outing(pitcher_id=pitcher.id, pitcher_name=pitcher.name, **fields)
            key = _outing_key(pitcher.name, outing.date, outing.event_type.value, outing.pitch_count)
            if key in existing_keys:
                print(f"Skipping {pitcher.name} ({outing.date}) - already exists")
                skipped += 1
                continue

            storage.save_outing(outing)
            existing_keys.add(key)
            imported += 1
            print(f"Imported: {pitcher.name} ({outing.date}) - {outing.event_type.value}, {outing.pitch_count} pitches")
        except (StorageError, ValueError) as e:
            print(f"Line {line_number}: {e}")
            failed += 1

    return {'imported': imported, 'skipped': skipped, 'failed': failed}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import outings from a CSV file")
    parser.add_argument("csv_path")
    parser.add_argument("--data-dir", default=DATA_DIR)
    parser.add_argument("--yes", action="store_true", help="don't ask for confirmation")
    args = parser.parse_args()

    rows = read_rows(args.csv_path)
    print(f"{len(rows)} outings found in {args.csv_path}")

    if not args.yes:
        response = input("This will add outings to your app. Continue? (y/n): ")
        if response.lower() != 'y':
            print("Import cancelled.")
            sys.exit(0)

    counts = import_outings(StorageManager(args.data_dir), rows)
    print("=" * 70)
    print(f"Imported: {counts['imported']}  Skipped: {counts['skipped']}  Failed: {counts['failed']}")
    print("=" * 70)
    sys.exit(1 if counts['failed'] else 0)
