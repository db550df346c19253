"""Dropline management CLI.

Database schema management plus the supplier tracking sweep, which an
external scheduler (cron, K8s CronJob) runs periodically.

Usage:
    python src/manage.py setup-db                     # Create all tables
    python src/manage.py drop-db                      # Drop all tables
    python src/manage.py refresh-tracking             # One tracking sweep
    python src/manage.py refresh-tracking --interval 300
"""

import argparse
import sys
import time


def _domain():
    from dropship.domain import dropship

    dropship.init()
    return dropship


def setup_database():
    from dropship.utils.db import setup_db

    print("Initializing dropship domain...")
    domain = _domain()
    print("Creating database schema...")
    providers = setup_db(domain)
    print(f"  schema ready ({', '.join(providers) or 'no relational providers'}).")
    print("Done.")


def drop_database():
    from dropship.utils.db import drop_db

    print("Initializing dropship domain...")
    domain = _domain()
    print("Dropping database schema...")
    providers = drop_db(domain)
    print(f"  schema dropped ({', '.join(providers) or 'no relational providers'}).")
    print("Done.")


def refresh_tracking(interval: int | None = None):
    from dropship.supplier_order.tracking import refresh_pending_tracking

    domain = _domain()
    while True:
        try:
            with domain.domain_context():
                report = refresh_pending_tracking()
        except Exception as exc:
            if not interval:
                raise
            print(f"Tracking refresh failed: {exc!r}. Retrying in {interval}s.")
        else:
            print(f"Checked {report.checked}, refreshed {report.refreshed}, failed {report.failed}.")
        if not interval:
            return
        time.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Dropline management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    refresh_parser = subparsers.add_parser("refresh-tracking", help="Poll suppliers for tracking updates")
    refresh_parser.add_argument(
        "--interval",
        type=int,
        help="Keep running, sweeping every INTERVAL seconds (default: sweep once)",
    )

    args = parser.parse_args()

    from dropship.utils.logging import configure_logging

    configure_logging()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "refresh-tracking":
        refresh_tracking(args.interval)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
