"""
Store Verification Script

Checks the integrity of the relay's store after a simulation run.
Run from project root: python scripts/verify.py
"""

import asyncio
import json
import sys
from collections import Counter
from datetime import datetime

from lan_relay.core.config import get_settings
from lan_relay.database import open_store
from lan_relay.repositories import FloorPlanRepository, OrderRepository


async def verify_store() -> bool:
    """Report counts, duplicate ids and undecodable line items."""
    settings = get_settings()

    print("=" * 60)
    print("🔍 STORE VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 Store: {settings.store_url}")
    print("=" * 60)

    store = await open_store(settings.store_url)
    try:
        async with store.session() as session:
            sections, tables = await FloorPlanRepository(session).snapshot()
            orders = await OrderRepository(session).list_orders()
    finally:
        await store.dispose()

    print(f"\n📊 STATISTICS:")
    print(f"   Sections: {len(sections)}")
    print(f"   Tables: {len(tables)}")
    print(f"   Orders: {len(orders)}")

    ok = True

    duplicates = [oid for oid, n in Counter(o.id for o in orders).items() if n > 1]
    if duplicates:
        print(f"\n⚠️ {len(duplicates)} duplicate order IDs found!")
        ok = False
    else:
        print(f"\n✅ No duplicate order IDs")

    undecodable = []
    for order in orders:
        try:
            if not isinstance(OrderRepository.decode_items(order), list):
                undecodable.append(order.id)
        except json.JSONDecodeError:
            undecodable.append(order.id)
    if undecodable:
        print(f"⚠️ {len(undecodable)} orders with unreadable items: {undecodable[:5]}")
        ok = False
    else:
        print(f"✅ All order items decode")

    known_tables = {t.id for t in tables}
    orphans = [o.id for o in orders if o.table_id not in known_tables]
    if orphans:
        print(f"⚠️ {len(orphans)} orders for unknown tables")

    not_pending = [o.id for o in orders if o.status.value != "pending"]
    if not_pending:
        print(f"⚠️ {len(not_pending)} orders not pending")
        ok = False

    print(f"\n📋 RECENT ORDERS:")
    print("-" * 60)
    for order in orders[-5:]:
        print(f"   {order.id}  table={order.table_id}  total={order.total}  {order.status.value}")

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(verify_store()) else 1)
