"""
Reconcile storefront orders into NetSuite sales orders.

Reads a JSON file holding one raw 3DCart order or a list of them and
processes them as a sequential batch. With --check-only the pre-creation
checks are run locally and nothing is sent to NetSuite:
- T1: Recomputed total matches the order amount (warning only)
- T2: Order has product lines
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from core.config import load_config
from core.errors import ValidationError
from core.models.canonical import SourceOrder
from core.observability import configure_logging, get_metrics
from reconciliation.engine import run_order_checks
from reconciliation.service import OrderSyncService


def load_orders(path: Path) -> List[Dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        # Storefront API responses wrap a single order in a list; files may not
        return [data]
    return list(data)


def check_orders(raw_orders: List[Dict[str, Any]], tolerance) -> int:
    """Print local check results; returns the number of blocked orders."""
    status_emoji = {"PASS": "✅", "WARN": "⚠️", "FAIL": "❌"}
    blocked = 0

    for raw in raw_orders:
        try:
            order = SourceOrder.from_payload(raw)
        except ValidationError as e:
            print(f"❌ Order {raw.get('OrderID', 'N/A')}: {e}")
            blocked += 1
            continue

        checks = run_order_checks(order, tolerance)
        print(f"\nOrder {order.order_id}")
        for check in checks:
            print(f"  {status_emoji[check.status.value]} [{check.check_id}] {check.message}")
        if any(c.status.value == "FAIL" for c in checks):
            blocked += 1

    return blocked


def print_batch(batch) -> None:
    print("=" * 60)
    print(f"BATCH {batch.batch_id}")
    print("=" * 60)
    for result in batch.results:
        marker = "✅" if result.success else "❌"
        detail = result.erp_order_id if result.success else f"{result.error_code}: {result.error_message}"
        print(f"{marker} {result.order_id:<12} {result.status.value:<15} {detail}")
        for warning in result.warnings:
            print(f"   ⚠️  {warning}")
    print("-" * 60)
    print(f"Total: {batch.total_orders}  Successful: {batch.successful}  Failed: {batch.failed}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Reconcile 3DCart orders into NetSuite")
    parser.add_argument("orders_file", type=Path, help="JSON file with one order or a list of orders")
    parser.add_argument("--check-only", action="store_true", help="Run local checks without calling NetSuite")
    parser.add_argument("--env-file", type=Path, help="Alternate .env file")
    parser.add_argument("--output", type=Path, help="Output JSON file for results")
    args = parser.parse_args()

    config = load_config(args.env_file)
    configure_logging(config.log_level, config.log_json)

    raw_orders = load_orders(args.orders_file)

    if args.check_only:
        blocked = check_orders(raw_orders, config.mapping.total_tolerance)
        sys.exit(1 if blocked else 0)

    issues = config.netsuite.validate()
    if issues:
        for issue in issues:
            print(f"❌ {issue}")
        sys.exit(2)

    service = OrderSyncService.from_config(config)
    batch = service.process_batch(raw_orders)
    print_batch(batch)

    if args.output:
        output_data = batch.to_dict()
        output_data["metrics"] = get_metrics().get_summary()
        args.output.write_text(json.dumps(output_data, indent=2, default=str), encoding="utf-8")
        print(f"\nResults written to {args.output}")

    sys.exit(1 if batch.failed else 0)


if __name__ == "__main__":
    main()
