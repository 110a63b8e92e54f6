"""
Coffee shop catalog and demo data.

The catalog is static; occupancy and reviews come from the stores.
Demo seeding gives a fresh development server a believable spread
of crowd levels (one shop per bucket, plus an empty one).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger

from coffeeworld.crowd.store import CheckInRecord, CheckInStore
from coffeeworld.exceptions import NotFoundError
from coffeeworld.storage.review_repository import ReviewRepository


@dataclass(frozen=True)
class CoffeeShop:
    id: str
    name: str
    address: str
    image: str
    rating: float
    review_count: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "image": self.image,
            "rating": self.rating,
            "review_count": self.review_count,
        }


COFFEE_SHOPS = [
    CoffeeShop(
        id="1",
        name="Brew Haven",
        address="123 Coffee Lane, Beantown",
        image="https://images.unsplash.com/photo-1559925393-8be0ec4767c8?w=800&q=80",
        rating=4.7,
        review_count=42,
    ),
    CoffeeShop(
        id="2",
        name="The Roasted Bean",
        address="456 Espresso Avenue, Brewville",
        image="https://images.unsplash.com/photo-1554118811-1e0d58224f24?w=800&q=80",
        rating=4.3,
        review_count=28,
    ),
    CoffeeShop(
        id="3",
        name="Morning Ritual",
        address="789 Latte Boulevard, Arabica",
        image="https://images.unsplash.com/photo-1600093463592-8e36ae95ef56?w=800&q=80",
        rating=4.9,
        review_count=64,
    ),
    CoffeeShop(
        id="4",
        name="Caffeine Culture",
        address="101 Mocha Street, Brewtown",
        image="https://images.unsplash.com/photo-1501339847302-ac426a4a7cbb?w=800&q=80",
        rating=4.5,
        review_count=37,
    ),
    CoffeeShop(
        id="5",
        name="Artisan Pours",
        address="202 Americano Road, Beanville",
        image="https://images.unsplash.com/photo-1498804103079-a6351b050096?w=800&q=80",
        rating=4.2,
        review_count=19,
    ),
    CoffeeShop(
        id="6",
        name="Third Wave Brews",
        address="303 Cappuccino Circle, Groundsville",
        image="https://images.unsplash.com/photo-1495474472287-4d71bcdd2085?w=800&q=80",
        rating=4.6,
        review_count=53,
    ),
]

_SHOPS_BY_ID = {shop.id: shop for shop in COFFEE_SHOPS}


# shop id -> minutes ago of each demo check-in
DEMO_CHECKIN_AGES: dict[str, list[int]] = {
    "1": [15, 25],                                           # Low
    "2": [10, 20, 30, 40, 50],                               # Moderate
    "3": [5, 15, 25, 35, 45, 50, 55, 60],                    # High
    "4": [10, 20, 30],                                       # Moderate
    "5": [5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55, 60],    # Very High
    "6": [],                                                 # empty
}

DEMO_REVIEWS = [
    ("1", "Coffee Lover", 5, "Great atmosphere and friendly staff! The coffee was excellent and they have a nice selection of pastries too."),
    ("2", "Bean Enthusiast", 3, "The coffee was mediocre, but the wifi is fast and it's a good place to work."),
    ("1", "Espresso Expert", 5, "Their espresso is the best in town! Rich and smooth with perfect crema. Highly recommend!"),
    ("1", "Morning Person", 4, "Great place to start the day. Their breakfast menu is limited but delicious. Coffee is strong just how I like it."),
    ("3", "Latte Artist", 5, "Beautiful latte art and the coffee tastes as good as it looks! Nice ambiance for meetings or catching up with friends."),
    ("4", "Coffee Critic", 3, "Decent coffee but overpriced. The service is friendly but slow during peak hours. The pastries are worth trying though!"),
    ("5", "Tea Lover", 4, "Even though I prefer tea, their coffee selection impressed me. The atmosphere is cozy and the staff is knowledgeable."),
    ("6", "Digital Nomad", 5, "Great place to work remotely. Fast wifi, plenty of outlets, and they don't mind if you stay for hours. Coffee is good too!"),
]


def list_shops() -> list[CoffeeShop]:
    return list(COFFEE_SHOPS)


def get_shop(shop_id: str) -> CoffeeShop:
    """
    Look up a shop.

    Raises:
        NotFoundError: Unknown shop id.
    """
    shop = _SHOPS_BY_ID.get(shop_id)
    if shop is None:
        raise NotFoundError("Coffee shop", shop_id)
    return shop


def seed_demo_checkins(store: CheckInStore, now: Optional[datetime] = None) -> int:
    """
    Populate a store with the demo occupancy.

    Skipped when any demo shop already has live occupancy. Records are
    appended oldest first so insertion order stays chronological.
    Returns the number of records added.
    """
    now = now or datetime.now(timezone.utc)

    if any(store.count_active(shop_id, now) for shop_id in DEMO_CHECKIN_AGES):
        return 0

    records = []
    for shop_id, ages in DEMO_CHECKIN_AGES.items():
        for i, minutes in enumerate(ages, start=1):
            records.append(
                CheckInRecord(
                    id=str(uuid.uuid4()),
                    subject_id=f"demo-user-{shop_id}-{i}",
                    location_id=shop_id,
                    occurred_at=now - timedelta(minutes=minutes),
                )
            )

    for record in sorted(records, key=lambda r: r.occurred_at):
        store.append(record)

    logger.info(f"Seeded {len(records)} demo check-ins")
    return len(records)


def seed_demo_reviews(repository: ReviewRepository) -> int:
    """Add demo reviews to an empty repository. Returns the number added."""
    if repository.count() > 0:
        return 0

    base = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    for i, (shop_id, user_name, rating, content) in enumerate(DEMO_REVIEWS, start=1):
        repository.create(
            review_id=f"demo-review-{i}",
            coffee_shop_id=shop_id,
            user_id=f"demo-user-{i}",
            user_name=user_name,
            content=content,
            rating=rating,
            created_at=base + timedelta(days=3 * i),
        )

    logger.info(f"Seeded {len(DEMO_REVIEWS)} demo reviews")
    return len(DEMO_REVIEWS)
