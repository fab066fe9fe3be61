from __future__ import annotations

import logging

from ledger_service.engine.ledger_replay import verify_ledger
from ledger_service.repositories.sql_ledger_store import SqlLedgerStore
from ledger_service.settings import configure_logging, get_settings

logger = logging.getLogger("verify_ledger")


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    if not settings.uses_sql:
        logger.error("LEDGER_DATABASE_URL is required to audit a persisted ledger.")
        return 2

    store = SqlLedgerStore()
    failures = 0
    accounts = store.list_accounts()
    for acc in accounts:
        check = verify_ledger(acc, store.list_transactions(acc.account_number))
        if check.ok:
            continue
        failures += 1
        logger.error(
            "account %s: stored=%s replayed=%s snapshot_mismatches=%d negative=%d",
            check.account_number,
            check.stored_balance,
            check.replayed_balance,
            len(check.snapshot_mismatches),
            len(check.negative_after),
        )

    logger.info("verified %d accounts, %d inconsistent", len(accounts), failures)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
