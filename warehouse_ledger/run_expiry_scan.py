from __future__ import annotations

import argparse
from datetime import date

from warehouse_ledger.config import settings
from warehouse_ledger.db import SessionLocal, session_scope
from warehouse_ledger.logging_setup import setup_logging
from warehouse_ledger.services.alert_dispatcher import get_alert_dispatcher
from warehouse_ledger.services.expiry_scan_service import ScanResult, run_expiry_scan


def run_once(*, today: date | None = None) -> ScanResult | None:
    with session_scope(SessionLocal) as db:
        return run_expiry_scan(db, dispatcher=get_alert_dispatcher(), today=today or date.today())


def main() -> None:
    parser = argparse.ArgumentParser(description='Send expiry alerts for batches inside the notification horizon.')
    parser.add_argument(
        '--date',
        type=date.fromisoformat,
        default=None,
        help='Treat this ISO date (YYYY-MM-DD) as today. Defaults to the local date.',
    )
    args = parser.parse_args()

    setup_logging(settings)
    result = run_once(today=args.date)
    if result is None:
        print('Expiry scan skipped: another run is in progress')
        return
    if not result.active:
        print('Expiry scan skipped: notification policy is inactive')
        return
    print(
        f'Expiry scan complete: candidates={result.candidates}, sent={result.sent}, '
        f'skipped={result.skipped}, failed={result.failed}'
    )


if __name__ == '__main__':
    main()
