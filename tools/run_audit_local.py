import argparse
import logging
import os
import sys

# Ensure repo root is on sys.path so `siteaudit` package imports resolve when
# running the script directly.
ROOT = os.path.dirname(os.path.dirname(__file__))
sys.path.insert(0, ROOT)

from siteaudit.container import Container
from siteaudit.db.engine import init_db


logging.basicConfig(level=logging.INFO)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run one site audit in the foreground and print its summary.")
    parser.add_argument("base_url")
    parser.add_argument("--name", default=None)
    parser.add_argument("--max-pages", type=int, default=50)
    parser.add_argument("--max-depth", type=int, default=3)
    parser.add_argument("--delay", type=int, default=200, help="politeness delay in ms")
    parser.add_argument("--ignore-robots", action="store_true")
    parser.add_argument("--database-url", default="sqlite://", help="defaults to a throwaway in-memory database")
    args = parser.parse_args(argv)

    container = Container()
    container.config.DATABASE_URL.from_value(args.database_url)
    init_db(container.db_engine())

    service = container.audit_service()
    payload = {
        "name": args.name or args.base_url,
        "baseUrl": args.base_url,
        "crawlSettings": {
            "maxPages": args.max_pages,
            "maxDepth": args.max_depth,
            "delay": args.delay,
            "respectRobotsTxt": not args.ignore_robots,
        },
    }
    # run the crawl loop inline instead of in the background
    run = service.start_audit(payload, launch=lambda fn, *a: fn(*a))
    run = service.get(run.run_id, include_pages=False)

    print(f"Audit {run.run_id} {run.status.value} in {run.duration_ms} ms")
    for key, value in run.summary.to_dict().items():
        print(f"  {key}: {value}")
    print("Issues:")
    for key, value in run.issues.to_dict().items():
        print(f"  {key}: {value}")
    return 0 if run.error is None else 1


if __name__ == '__main__':
    sys.exit(main())
