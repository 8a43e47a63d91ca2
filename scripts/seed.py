"""Database seeder: an admin, a few regular users, their ads and comments."""
import asyncio
import argparse
import base64
import random
import time

from app.config import settings
from app.database import engine, async_session, Base
from app.models import Ad, Comment, Role, User, utcnow
from app.security import hash_password
from app.storage import AD_NAMESPACE, LocalBlobStore

# 1x1 transparent PNG used as the image of every seeded ad.
PLACEHOLDER_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

ITEMS = ["Bike", "Sofa", "Laptop", "Guitar", "Camera", "Desk lamp", "Kettle", "Skis"]
DEFAULT_PASSWORD = "password123"


async def seed(num_users: int, ads_per_user: int):
    print(f"Seeding: 1 admin, {num_users} users, {num_users * ads_per_user} ads")
    start = time.perf_counter()
    blobs = LocalBlobStore(settings.UPLOAD_DIR)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        admin = User(
            email="admin@example.com",
            password_hash=hash_password(DEFAULT_PASSWORD),
            first_name="Admin",
            last_name="Admin",
            phone="+7 (900) 000-00-00",
            role=Role.ADMIN,
        )
        session.add(admin)

        users = []
        for i in range(num_users):
            user = User(
                email=f"user{i:02d}@example.com",
                password_hash=hash_password(DEFAULT_PASSWORD),
                first_name=f"User{i:02d}",
                last_name="Seeded",
                phone=f"+7 (900) 000-00-{i % 100:02d}",
                role=Role.USER,
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users) + 1} users")

        ads = []
        for user in users:
            for _ in range(ads_per_user):
                item = random.choice(ITEMS)
                ad = Ad(
                    title=f"{item} for sale",
                    description=f"Selling a used {item.lower()} in good condition",
                    price=random.randint(0, 50000),
                    image=blobs.save(PLACEHOLDER_PNG, AD_NAMESPACE, ".png"),
                    author_id=user.id,
                )
                session.add(ad)
                ads.append(ad)
        await session.flush()
        print(f"  Created {len(ads)} ads")

        total_comments = 0
        for ad in ads:
            for _ in range(random.randint(0, 3)):
                session.add(Comment(
                    text="Is this still available?",
                    ad_id=ad.id,
                    author_id=random.choice(users).id,
                    created_at=utcnow(),
                ))
                total_comments += 1
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Comments: {total_comments}")
    print(f"  Login: admin@example.com / {DEFAULT_PASSWORD}")


def main():
    parser = argparse.ArgumentParser(description="Seed the classifieds database")
    parser.add_argument("--users", type=int, default=5, help="Number of regular users")
    parser.add_argument("--ads-per-user", type=int, default=3, help="Ads created for each user")
    args = parser.parse_args()
    asyncio.run(seed(args.users, args.ads_per_user))


if __name__ == "__main__":
    main()
