"""
Load sample cold-calling tabs (idempotent per tab: tabs that already hold rows
are left alone).

Usage:
  python scripts/seed_cold_calling.py [--reset]
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ocl.modules.cold_calling.models import ColdCallingRow  # noqa: E402
from app.ocl.modules.cold_calling.service import parse_row_fields  # noqa: E402
from scripts._db_utils import script_db_url, script_session  # noqa: E402

SAMPLE_TABS: dict[str, list[dict[str, str]]] = {
    "Master": [
        {
            "concernName": "Pradip - HO",
            "companyName": "KKB Projects Pvt. Ltd.",
            "destination": "SURAT",
            "phone1": "9825116690",
            "phone2": "9863226438",
            "sujata": "Call nhi",
            "followUpDate": "20 Nov",
            "rating": "5 Star",
            "broadcast": "YES",
        },
        {
            "concernName": "Balvinder Singh",
            "companyName": "Bharat Construction",
            "destination": "Nagaland",
            "phone1": "9373134178",
            "phone2": "",
            "sujata": "He left the",
            "followUpDate": "1 Dec",
            "rating": "5 Star",
            "broadcast": "NO",
        },
    ],
    "5 Star": [],
    "4 Star": [],
    "3 Star": [],
    "Red Zone": [],
    "Scrap": [],
    "Enq": [],
}


def seed(db_url: str, *, reset: bool = False) -> int:
    inserted = 0
    with script_session(db_url) as s:
        for tab_name, rows in SAMPLE_TABS.items():
            existing = s.query(ColdCallingRow).filter(ColdCallingRow.tab_name == tab_name)
            if reset:
                existing.delete(synchronize_session=False)
            elif existing.count():
                print(f"skip {tab_name!r}: already has rows")
                continue
            for n, payload in enumerate(rows, start=1):
                now = datetime.utcnow()
                s.add(ColdCallingRow(
                    tab_name=tab_name,
                    row_number=n,
                    created_at=now,
                    updated_at=now,
                    **parse_row_fields(payload, allow_row_number=False),
                ))
                inserted += 1
    return inserted


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset", action="store_true", help="delete existing rows of the sample tabs first")
    args = parser.parse_args()
    print(f"Inserted {seed(script_db_url(), reset=args.reset)} cold calling rows.")


if __name__ == "__main__":
    main()
