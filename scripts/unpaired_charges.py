"""Print offerings whose charge succeeded without a paired transfer.

Read-only report over the separate charge + transfer path; nothing is
compensated or retried.
"""

import argparse
import json

from domopay.common.config import get_settings
from domopay.common.db import build_engine, build_session_factory
from domopay.services.ledger.service import LedgerService


def main() -> None:
    """CLI entrypoint for the unpaired-charge report."""

    parser = argparse.ArgumentParser(description="List charges that have no paired transfer.")
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--limit", type=int, default=1000)
    args = parser.parse_args()

    database_url = args.database_url or get_settings().database_url
    ledger = LedgerService(build_session_factory(build_engine(database_url)))
    rows = [
        {
            "offering_id": o.id,
            "vendor_id": o.vendor_id,
            "amount": o.amount,
            "vendor_payout": o.amount_for_vendor(),
            "currency": o.currency,
            "stripe_charge_id": o.stripe_charge_id,
            "created_at": o.created_at.isoformat() if o.created_at else None,
        }
        for o in ledger.find_unpaired_charges(limit=args.limit)
    ]
    print(json.dumps({"unpaired_count": len(rows), "offerings": rows}, indent=2))


if __name__ == "__main__":
    main()
