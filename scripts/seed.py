"""Database seeder for local development and demos."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from minishop.database import engine, async_session, Base
from minishop.models import Category, Product, User
from minishop.repositories import UserRepository
from minishop.security import hash_password

CATEGORIES = {
    "Electronics": ("Electronic devices and gadgets", ["Laptop", "Smartphone", "Headphones", "Tablet", "Monitor"]),
    "Clothing": ("Apparel and fashion items", ["T-Shirt", "Jeans", "Jacket", "Sneakers", "Scarf"]),
    "Books": ("Books and educational materials", ["Novel", "Cookbook", "Biography", "Atlas", "Poetry Collection"]),
    "Home & Kitchen": ("Home and kitchen appliances", ["Frying Pan", "Blender", "Desk Lamp", "Cushion", "Kettle"]),
    "Sports": ("Sports and outdoor equipment", ["Yoga Mat", "Football", "Tennis Racket", "Dumbbells", "Water Bottle"]),
}

ADMIN_ROLE = "Admin"


async def seed(products_per_category: int, admin_password: str):
    print(f"Seeding: {len(CATEGORIES)} categories, up to {products_per_category} products each, 1 admin")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        now = datetime.now(timezone.utc)

        categories = []
        for name, (description, _) in CATEGORIES.items():
            category = Category(name=name, description=description, created_at=now)
            session.add(category)
            categories.append(category)
        await session.flush()
        print(f"  Created {len(categories)} categories")

        total_products = 0
        for category in categories:
            _, product_names = CATEGORIES[category.name]
            for base_name in product_names[:products_per_category]:
                session.add(Product(
                    name=f"{base_name} {random.choice(['Basic', 'Plus', 'Pro'])}",
                    price=Decimal(random.randint(500, 150000)) / 100,
                    category_id=category.id,
                    created_at=now - timedelta(days=random.randint(0, 90)),
                ))
                total_products += 1
        await session.flush()
        print(f"  Created {total_products} products")

        users = UserRepository(session)
        admin = User(
            username="admin",
            email="admin@example.com",
            password_hash=hash_password(admin_password),
            created_at=now,
        )
        admin.roles.append(await users.get_or_create_role(ADMIN_ROLE))
        session.add(admin)

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Admin login: admin / {admin_password}")


def main():
    parser = argparse.ArgumentParser(description="Seed the minishop database")
    parser.add_argument(
        "--products-per-category", type=int, default=5,
        help="Sample products per category (max 5)",
    )
    parser.add_argument("--admin-password", default="Admin123!", help="Password for the admin account")
    args = parser.parse_args()
    asyncio.run(seed(args.products_per_category, args.admin_password))


if __name__ == "__main__":
    main()
