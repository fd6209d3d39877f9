"""
Show whether storefront orders already exist in NetSuite.

Usage:
    python -m scripts.check_sync_status 1057113 1057114
"""

import argparse
import json
import sys
from pathlib import Path

from connectors.netsuite.ns_client import NSClient
from connectors.netsuite.sync_status import SyncStatusResolver
from core.config import load_config
from core.observability import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Check NetSuite sync status of 3DCart orders")
    parser.add_argument("order_ids", nargs="+", help="Storefront order ids")
    parser.add_argument("--env-file", type=Path, help="Alternate .env file")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    args = parser.parse_args()

    config = load_config(args.env_file)
    configure_logging(config.log_level, config.log_json)

    issues = config.netsuite.validate()
    if issues:
        for issue in issues:
            print(f"❌ {issue}")
        sys.exit(2)

    client = NSClient.from_settings(config.netsuite)
    try:
        resolver = SyncStatusResolver(client, config.mapping.source_prefix)
        statuses = resolver.check_batch(args.order_ids)
    finally:
        client.close()

    if args.json:
        print(json.dumps({k: v.to_dict() for k, v in statuses.items()}, indent=2, default=str))
        return

    for order_id, status in statuses.items():
        if status.is_error:
            print(f"⚠️  {order_id:<12} unknown ({status.error})")
        elif status.synced:
            print(f"✅ {order_id:<12} {status.erp_tranid or status.erp_id}  total={status.erp_total}  date={status.sync_date}")
        else:
            print(f"❌ {order_id:<12} not in NetSuite")


if __name__ == "__main__":
    main()
