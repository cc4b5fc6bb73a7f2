"""Quick check of database state: one line per site with its latest visit."""
import argparse
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from browserdb.config import configure_logging
from browserdb.db.database import Database
from browserdb.services import HistoryService

parser = argparse.ArgumentParser(description="Show the joined history view")
parser.add_argument("--db-path", type=str, help="Override database path")
parser.add_argument("--filter", type=str, help="Only urls containing this text")
parser.add_argument("--recent", action="store_true", help="Most recent visit first")
args = parser.parse_args()
configure_logging()

db = Database(path=Path(args.db_path) if args.db_path else None)
service = HistoryService(db)

print("=== Sites ===")
sites = service.sites(args.filter)
print(f"Total: {len(sites)}")

print("\n=== History ===")
rows = service.search(args.filter, recent_first=args.recent)
for r in rows:
    when = r.visit.date.strftime("%Y-%m-%d %H:%M:%S")
    print(f"  {r.site.id:>4} | {when} | {r.visit.type.name:<18} | {r.site.title[:30]:<30} | {r.site.url}")

db.close()
