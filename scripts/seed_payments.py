"""Seed demo wire payments into the database.

Usage:
    python scripts/seed_payments.py [--database-url URL] [--reset]

Creates the schema if needed and inserts a small set of payments covering
the reconciliation paths: exact matches (auto-cleared on the next listing),
PTP payments with mismatched amounts, and items flagged for review.
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import delete

from wire_recon.config import get_settings
from wire_recon.database import create_schema, get_engine, make_session_factory
from wire_recon.models import AuditLog, ContractAllocation, PaymentStatus, WirePayment


# (dba, expected, actual, ptp, status, days ago)
DEMO_PAYMENTS = [
    ("Blue Harbor Logistics", "12500.00", "12500.00", False, PaymentStatus.PENDING, 0),
    ("Cedar Point Dental", "4820.50", "4820.50", True, PaymentStatus.PENDING, 1),
    ("Northwind Auto Parts", "750.00", "750.00", False, PaymentStatus.PENDING, 1),
    ("Maple Street Bakery", "3000.00", "2950.00", True, PaymentStatus.PENDING, 2),
    ("Summit Fitness LLC", "1800.00", "1825.75", True, PaymentStatus.PENDING, 3),
    ("Riverbend Clinics", "9600.00", "9000.00", False, PaymentStatus.UNCLEARED, 4),
    (None, "15000.00", "15250.00", False, PaymentStatus.REVIEW_REQUIRED, 5),
    ("Golden Gate Printing", "2200.00", "1100.00", False, PaymentStatus.REVIEW_REQUIRED, 6),
]


def build_payments(today: date) -> list[WirePayment]:
    """Build the demo payment rows relative to `today`."""
    payments = []
    for dba, expected, actual, ptp, status, days_ago in DEMO_PAYMENTS:
        received = datetime.combine(
            today - timedelta(days=days_ago), datetime.min.time(), tzinfo=timezone.utc
        ) + timedelta(hours=9)
        payments.append(
            WirePayment(
                dba=dba,
                expected_amount=Decimal(expected),
                actual_amount=Decimal(actual),
                expected_date=today - timedelta(days=days_ago + 1),
                actual_date_received=received,
                ptp=ptp,
                status=status.value,
            )
        )
    return payments


async def seed_payments(database_url: str, reset: bool) -> None:
    """Create the schema and insert the demo payments."""
    print(f"Target database: {database_url.split('@')[1] if '@' in database_url else database_url}")

    engine = get_engine(database_url)
    try:
        await create_schema(engine)
        session_factory = make_session_factory(engine)

        async with session_factory() as session:
            if reset:
                await session.execute(delete(AuditLog))
                await session.execute(delete(ContractAllocation))
                await session.execute(delete(WirePayment))
                print("Removed existing payments")

            payments = build_payments(date.today())
            session.add_all(payments)
            await session.commit()

        print(f"\nSeeded {len(payments)} wire payments:")
        for payment in payments:
            print(
                f"  {payment.status:<16} {payment.dba or '(no DBA)':<24} "
                f"expected ${payment.expected_amount:>10} actual ${payment.actual_amount:>10}"
                f"{'  PTP' if payment.ptp else ''}"
            )
    finally:
        await engine.dispose()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed demo wire payments")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete all existing payments, allocations and audit logs first",
    )

    args = parser.parse_args()

    asyncio.run(seed_payments(args.database_url or get_settings().database_url, args.reset))


if __name__ == "__main__":
    main()
