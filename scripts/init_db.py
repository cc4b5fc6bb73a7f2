#!/usr/bin/env python3
"""Initialize the history database and optionally seed it with visits from YAML."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from browserdb.config import configure_logging
from browserdb.db.database import Database
from browserdb.errors import HistoryError
from browserdb.models import Site, Visit, VisitType
from browserdb.services import HistoryService


def main():
    parser = argparse.ArgumentParser(description="Initialize the history database")
    parser.add_argument("--seed", type=str, help="YAML file with visits to record")
    parser.add_argument("--db-path", type=str, help="Override database path")
    args = parser.parse_args()

    configure_logging()
    db = Database(path=Path(args.db_path) if args.db_path else None)
    service = HistoryService(db)
    print(f"Database initialized at: {db.path}")

    if args.seed:
        _seed_visits(service, Path(args.seed))

    db.close()
    print("Done.")


def _seed_visits(service: HistoryService, path: Path):
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    for v in data.get("visits", []):
        try:
            site = Site(url=v["url"], title=v.get("title", ""))
            visit = Visit(site=site, type=VisitType[v.get("type", "link").upper()])
            if v.get("date"):
                date = v["date"]
                visit.date = date if isinstance(date, datetime) else datetime.fromisoformat(str(date))
            service.record_visit(visit)
            print(f"  Recorded visit: {site.url} ({visit.type.name.lower()})")
        except (KeyError, ValueError, HistoryError) as e:
            print(f"  Skipping {v.get('url', '?')}: {e}")


if __name__ == "__main__":
    main()
