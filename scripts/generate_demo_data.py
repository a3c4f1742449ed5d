#!/usr/bin/env python3
"""
Generate demo data for the savings tracker.

Creates two goals funded by a shared EUR account and a dedicated BTC wallet,
then runs one closed month and one executing month of deposits and
reallocations so every view of the API has something to show.
"""

import argparse
import random
import sys
import traceback
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Optional

# Add src/ to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from savings_tracker.app_context import AppContext
from savings_tracker.core.exceptions import ValidationError
from savings_tracker.core.timezone import month_label, parse_datetime_utc
from savings_tracker.domain.models import PeriodStatus, TrackedPair


def generate_demo_data(start: str, data_dir: Optional[Path] = None, seed: int = 7) -> None:
    """Populate a tracker database starting at the first day of `start`'s month."""
    random.seed(seed)
    ctx = AppContext(data_dir=data_dir)
    ctx.initialize()

    first_month = parse_datetime_utc(start).replace(day=1, hour=9, minute=0, second=0, microsecond=0)
    second_month = (first_month + timedelta(days=32)).replace(day=1)
    print(f"Data directory: {ctx.data_dir}")

    try:
        account = ctx.catalog.create_asset("Joint Account", "EUR")
        wallet = ctx.catalog.create_asset("Cold Wallet", "BTC")
        house = ctx.catalog.create_goal("House", "EUR", target_amount=Decimal("40000"))
        travel = ctx.catalog.create_goal("Travel", "USD", target_amount=Decimal("5000"))
    except ValidationError as e:
        print(f"✗ Demo data already present: {e.message}")
        return
    print("✓ Created 2 assets and 2 goals")

    # Opening position before the first tracked month
    opening = first_month - timedelta(days=3)
    ctx.allocations.record_deposit(account.asset_id, Decimal("6000"), at=opening, note="Opening balance")
    ctx.allocations.update_allocations(
        account.asset_id,
        {house.goal_id: Decimal("4000"), travel.goal_id: Decimal("1500")},
        at=opening + timedelta(hours=1),
    )
    ctx.allocations.record_deposit(wallet.asset_id, Decimal("0.05"), at=opening)
    ctx.allocations.update_allocations(wallet.asset_id, {house.goal_id: Decimal("0.05")}, at=opening + timedelta(hours=1))

    pairs = [
        TrackedPair(house.goal_id, account.asset_id),
        TrackedPair(travel.goal_id, account.asset_id),
        TrackedPair(house.goal_id, wallet.asset_id),
    ]

    for month_start in (first_month, second_month):
        period = ctx.periods.create_period(month_label(month_start), tracked_pairs=pairs, at=month_start)
        ctx.periods.start_tracking(period.period_id, at=month_start)

        # Salary, a BTC top-up (auto-tracked: the wallet is dedicated) and a reallocation
        salary = Decimal(random.randint(18, 25) * 100)
        ctx.allocations.record_deposit(account.asset_id, salary, at=month_start + timedelta(days=1), note="Salary")
        ctx.allocations.record_deposit(
            wallet.asset_id, Decimal("0.01"), at=month_start + timedelta(days=5), note="DCA"
        )
        current = {t.goal_id: t.amount for t in ctx.allocations.get_allocations(account.asset_id)}
        ctx.allocations.update_allocations(
            account.asset_id,
            {
                house.goal_id: current.get(house.goal_id, Decimal("0")) + salary * Decimal("0.6"),
                travel.goal_id: current.get(travel.goal_id, Decimal("0")) + salary * Decimal("0.3"),
            },
            at=month_start + timedelta(days=2),
        )
        print(f"✓ {period.label}: salary {salary} EUR, 0.01 BTC top-up")

        if month_start is first_month:
            ctx.periods.mark_complete(period.period_id, at=second_month - timedelta(seconds=1))
            print(f"✓ Closed {period.label}")

    # Summary
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    for period in ctx.periods.list_periods():
        print(f"{period.label}: {period.status.value}")
        if period.status == PeriodStatus.CLOSED:
            for goal_id, total in ctx.periods.get_closed_totals(period.period_id).items():
                print(f"  {goal_id[:8]}  {total.total:,.2f} {total.currency}  unconverted={total.unconverted}")

    ctx.close()
    print("\nYou can now:")
    print("  - View periods: GET /periods")
    print("  - View live totals: GET /periods/{period_id}/totals")
    print("  - View closed contributions: GET /periods/{period_id}/contributions")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--start", default="2024-01-01", help="First tracked month (any parseable date)")
    parser.add_argument("--data-dir", type=Path, default=None, help="Data directory (default ~/.savings-tracker)")
    args = parser.parse_args()
    try:
        generate_demo_data(args.start, data_dir=args.data_dir)
    except Exception as e:
        print(f"\n✗ Error: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)
