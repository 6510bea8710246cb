"""Seed the configured database with demo marketplace data.

Creates vendor accounts with purchase histories, suppliers, active groups
with members, and open purchase requests, so the API and the
recommendation CLI have something to work with.

Example:
    Seed the database named by ``MONGO_URL`` / ``MONGO_DATABASE``:
        $ python scripts/seed_demo_data.py

    Or with custom sizes and a fixed seed:
        $ python scripts/seed_demo_data.py --vendors 30 --groups 40 --seed 7
"""

import argparse
import random
from datetime import timedelta
from typing import Any, Dict, List

import pandas as pd
from passlib.context import CryptContext

from groupbuy.config import get_settings
from groupbuy.recommender.group_metrics import RandomGroupMetricsProvider
from groupbuy.recommender.pricing import generate_suggestions
from groupbuy.store.database import connect
from groupbuy.store.documents import (
    new_group_document,
    new_request_document,
    new_supplier_document,
    new_user_document,
    utcnow,
)
from groupbuy.store.membership import completion_percentage

# Default configuration constants
DEFAULT_NUM_VENDORS = 20
DEFAULT_NUM_SUPPLIERS = 5
DEFAULT_NUM_GROUPS = 25
DEFAULT_NUM_REQUESTS = 15
DEMO_PASSWORD = "demo1234"

# (product, category, market price per kg)
PRODUCTS = [
    ("Basmati Rice", "Grains & Cereals", 70),
    ("Wheat Flour", "Grains & Cereals", 38),
    ("Toor Dal", "Grains & Cereals", 95),
    ("Onion", "Vegetables", 30),
    ("Tomato", "Vegetables", 34),
    ("Potato", "Vegetables", 24),
    ("Banana", "Fruits", 45),
    ("Red Chilli Powder", "Spices", 260),
    ("Mustard Oil", "Oil & Ghee", 160),
    ("Paneer", "Dairy Products", 320),
]

CITIES = ["Delhi", "Mumbai", "Pune", "Jaipur", "Lucknow"]


def make_history(rng: random.Random, max_entries: int = 8) -> List[Dict[str, Any]]:
    history = []
    for _ in range(rng.randint(0, max_entries)):
        product, category, market = rng.choice(PRODUCTS)
        history.append({
            "product": product,
            "category": category,
            "quantity": rng.randint(2, 30),
            "price": round(market * rng.uniform(0.8, 1.0), 2),
            "date": utcnow() - timedelta(days=rng.randint(1, 90)),
        })
    return history


def seed(store, num_vendors: int, num_suppliers: int, num_groups: int, num_requests: int, seed: int) -> pd.DataFrame:
    """Insert demo documents and return one summary row per group.

    Args:
        store: Target store.
        num_vendors: Vendor accounts to create (password ``demo1234``).
        num_suppliers: Suppliers to create.
        num_groups: Active groups to create.
        num_requests: Open purchase requests to create.
        seed: Random seed for reproducible data.

    Returns:
        DataFrame with the category, product, price, savings, member count
        and completion of every seeded group.
    """
    rng = random.Random(seed)
    metrics = RandomGroupMetricsProvider(seed=seed)
    # One hash for every demo account
    password_hash = CryptContext(schemes=["bcrypt"], deprecated="auto").hash(DEMO_PASSWORD)

    vendors = []
    for i in range(num_vendors):
        user = new_user_document(
            name=f"Vendor {i + 1}",
            email=f"vendor{i + 1}@demo.groupbuy.in",
            phone=f"98{i + 10000000:08d}",
            password_hash=password_hash,
            business_name=f"Stall {i + 1}",
            business_type=rng.choice(["Chaat", "Tea Stall", "Dosa Cart", "Juice Bar"]),
        )
        user["profile"]["address"] = {"city": rng.choice(CITIES)}
        user["aiProfile"]["purchaseHistory"] = make_history(rng)
        user["aiProfile"]["preferences"]["organic"] = rng.random() < 0.3
        user["aiProfile"]["preferences"]["bulkDiscount"] = rng.random() < 0.5
        vendors.append(user)
    vendor_ids = store.users.insert_many(vendors).inserted_ids

    suppliers = []
    for i in range(num_suppliers):
        picks = rng.sample(PRODUCTS, 3)
        supplier = new_supplier_document({
            "name": f"Supplier {i + 1} Traders",
            "address": {"city": rng.choice(CITIES)},
            "categories": sorted({category for _, category, _ in picks}),
            "products": [
                {"name": name, "category": category, "currentPrice": round(market * 0.85, 2), "unit": "kg"}
                for name, category, market in picks
            ],
        })
        supplier["isVerified"] = rng.random() < 0.7
        suppliers.append(supplier)
    supplier_ids = store.suppliers.insert_many(suppliers).inserted_ids if suppliers else []

    rows = []
    for _ in range(num_groups):
        product, category, market = rng.choice(PRODUCTS)
        target = rng.choice([50, 100, 200, 500])
        price = round(market * rng.uniform(0.75, 0.95), 2)
        group = new_group_document(
            creator_id=rng.choice(vendor_ids),
            product_name=product,
            category=category,
            target_quantity=target,
            price_per_unit=price,
            market_price=market,
            ai_metrics=metrics.score({"productName": product, "category": category}),
            delivery_location={"address": rng.choice(CITIES)},
            supplier_id=rng.choice(supplier_ids) if supplier_ids else None,
        )

        current = 0
        for member_id in rng.sample(vendor_ids, rng.randint(0, min(5, len(vendor_ids)))):
            quantity = rng.randint(5, 40)
            if current + quantity > target:
                break
            group["members"].append({
                "user": member_id,
                "quantityNeeded": quantity,
                "joinedAt": utcnow(),
                "status": "active",
            })
            current += quantity
        group["currentQuantity"] = current
        group["completionPercentage"] = completion_percentage(current, target)
        store.groups.insert_one(group)

        rows.append({
            "category": category,
            "product": product,
            "price": price,
            "savings": group["savings"],
            "members": len(group["members"]),
            "completion": group["completionPercentage"],
        })

    for _ in range(num_requests):
        product, category, market = rng.choice(PRODUCTS)
        requester = rng.choice(vendors)
        quantity = rng.randint(5, 60)
        max_price = round(market * rng.uniform(0.8, 1.1), 2)
        fields = {
            "productName": product,
            "category": category,
            "quantity": quantity,
            "maxPrice": max_price,
            "urgency": rng.choice(["low", "medium", "high"]),
        }
        suggestions = generate_suggestions(requester, product, category, quantity, budget=max_price)
        store.requests.insert_one(new_request_document(requester["_id"], fields, suggestions))

    return pd.DataFrame(rows)


def main() -> None:
    """Main entry point for the seeding script."""
    parser = argparse.ArgumentParser(description="Seed the GroupBuy database with demo data")
    parser.add_argument("--vendors", type=int, default=DEFAULT_NUM_VENDORS)
    parser.add_argument("--suppliers", type=int, default=DEFAULT_NUM_SUPPLIERS)
    parser.add_argument("--groups", type=int, default=DEFAULT_NUM_GROUPS)
    parser.add_argument("--requests", type=int, default=DEFAULT_NUM_REQUESTS)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--drop", action="store_true", help="Drop existing collections first")
    args = parser.parse_args()

    if args.vendors <= 0:
        parser.error("--vendors must be positive")

    settings = get_settings()
    client, store = connect(settings.mongo)
    try:
        if args.drop:
            for name in ("users", "groups", "requests", "suppliers", "chats"):
                store.db.drop_collection(name)
        store.ensure_indexes()

        print(f"Seeding database '{settings.mongo.database}'...")
        df = seed(store, args.vendors, args.suppliers, args.groups, args.requests, args.seed)
    finally:
        client.close()

    # Print results summary
    print(f"\nData seeded successfully!")
    print(f"  Vendors: {args.vendors} (password: {DEMO_PASSWORD})")
    print(f"  Suppliers: {args.suppliers}")
    print(f"  Requests: {args.requests}")
    print(f"  Groups: {len(df)}")
    if not df.empty:
        print(f"\nGroups per category:")
        print(
            df.groupby("category")
            .agg(groups=("product", "size"), avg_savings=("savings", "mean"), avg_completion=("completion", "mean"))
            .round(1)
        )


if __name__ == "__main__":
    main()
