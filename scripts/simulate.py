"""
Rush-Hour Simulation Script

Fires concurrent order submissions at a running relay to check that every
order is stored with its own id.
Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import random
import time
import argparse
from collections import Counter
from datetime import datetime, timezone
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 50

MENU_ITEMS = [
    {"name": "Masala Dosa", "price": 120},
    {"name": "Idli Sambar", "price": 80},
    {"name": "Medu Vada", "price": 60},
    {"name": "Filter Coffee", "price": 40},
    {"name": "Paneer Butter Masala", "price": 220},
    {"name": "Butter Naan", "price": 45},
]


def generate_random_items() -> list[dict]:
    """Generate random order line items."""
    items = []
    for _ in range(random.randint(1, 4)):
        item = random.choice(MENU_ITEMS).copy()
        item["qty"] = random.randint(1, 3)
        items.append(item)
    return items


def generate_order_payload(table_ids: list[str]) -> dict[str, Any]:
    """Generate a payload for /api/order as the customer app sends it."""
    items = generate_random_items()
    return {
        "tableId": random.choice(table_ids),
        "items": items,
        "total": sum(i["price"] * i["qty"] for i in items),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def send_order(
    client: httpx.AsyncClient,
    order_num: int,
    table_ids: list[str],
) -> dict[str, Any]:
    """Submit one order and time it."""
    payload = generate_order_payload(table_ids)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/order", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data.get("orderId"),
                "total": payload["total"],
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    """
    Run the rush-hour simulation.

    Args:
        num_orders: Number of orders to submit concurrently
    """
    print("=" * 70)
    print("🔥 RUSH-HOUR SIMULATION - CONCURRENT ORDERS")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        floor_plan = (await client.get(f"{API_BASE_URL}/api/floor-plan")).json()
        table_ids = [t["id"] for t in floor_plan["tables"]] or ["tab-1"]

        print(f"\n🚀 Firing orders across {len(table_ids)} tables...\n")
        tasks = [send_order(client, i + 1, table_ids) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    duplicate_ids = [oid for oid, n in Counter(r["order_id"] for r in successful).items() if n > 1]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Value: {sum(r['total'] for r in successful)}")

    if duplicate_ids:
        print(f"\n⚠️  Duplicate order ids returned: {duplicate_ids[:5]}")
    else:
        print(f"\n✅ All order ids distinct")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("Next: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "duplicate_ids": duplicate_ids,
        "total_time": total_time,
    }


async def check_health() -> bool:
    """Make sure the relay is up before firing orders."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health", timeout=5.0)
        except httpx.HTTPError as e:
            print(f"❌ Relay unreachable: {e}")
            return False
    return response.status_code == 200 and response.text == "OK"


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush-Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="Relay base URL")
    args = parser.parse_args()
    API_BASE_URL = args.url.rstrip("/")

    if not asyncio.run(check_health()):
        print("\n❌ Pre-flight health check failed. Is the relay running?")
        sys.exit(1)

    summary = asyncio.run(run_simulation(args.orders))
    sys.exit(1 if summary["failed"] or summary["duplicate_ids"] else 0)
