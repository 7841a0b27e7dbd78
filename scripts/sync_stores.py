#!/usr/bin/env python3
"""
Sync the store mirror with the cijene.dev inventory API.
Usage: python scripts/sync_stores.py

Or with arguments:
python scripts/sync_stores.py --chain konzum
python scripts/sync_stores.py --backfill-only
"""

import asyncio
import argparse
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storemap.core.database import Database
from storemap.core.exceptions import StoreMapError
from storemap.core.http_client import close_http_client
from storemap.core.logger import setup_logging
from storemap.core.redis import close_redis_client, create_redis_client
from storemap.services.store_sync_service import build_store_sync_service


async def sync_stores(chain: str, sync: bool) -> bool:
    setup_logging()

    try:
        redis_client = await create_redis_client()
    except Exception as e:
        print(f"⚠️ Redis unavailable, running without a sync lock: {e}")
        redis_client = None

    try:
        async with Database() as db:
            service = build_store_sync_service(db, redis_client)
            result = await service.get_stores(chain=chain, sync=sync)
    except StoreMapError as e:
        print(f"❌ Sync failed: {e}")
        return False
    finally:
        await close_http_client()
        await close_redis_client()

    stats = result.stats
    print(f"✅ {stats.total} stores, {stats.geocoded} geocoded, {stats.missing_coordinates} without coordinates")
    print(f"   Backfill: {result.backfill.updated}/{result.backfill.attempted} updated")
    if result.reconcile is not None:
        r = result.reconcile
        print(f"   Sync: {r.added} added, {r.updated} updated, {r.removed} removed, {len(r.errors)} errors")
    if result.failed_chains:
        print(f"   Chains not fetched: {', '.join(result.failed_chains)}")
    return True


def main():
    parser = argparse.ArgumentParser(description="Sync stores from the cijene.dev API")
    parser.add_argument("--chain", default="all", help='Chain code or "all" (default: all)')
    parser.add_argument("--backfill-only", action="store_true", help="Only geocode stores missing coordinates")
    args = parser.parse_args()

    success = asyncio.run(sync_stores(args.chain, sync=not args.backfill_only))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
