from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select

from koloa.app.core import config
from koloa.app.core.logging import configure_logging
from koloa.app.db.session import SessionLocal
from koloa.app.db.models.models_v1 import InventoryItem, User
from koloa.app.db.models.core_types import Role
from koloa.services.auth import find_user_by_pin, hash_pin, validate_pin

logger = logging.getLogger(__name__)

# (category, brand, name, weight, stock, min_stock, price)
DEMO_ITEMS = [
    ("tabaco", "Adalya", "Love 66", 50, 12, 5, Decimal("4.50")),
    ("tabaco", "Adalya", "Lady Killer", 50, 3, 5, Decimal("4.50")),
    ("tabaco", "Al Fakher", "Double Apple", 250, 0, 2, Decimal("16.00")),
    ("carbon", "Coco Nara", "Cubos 26mm", 1000, 8, 4, Decimal("9.90")),
]


def run_seed(with_demo_items: bool = True) -> None:
    db = SessionLocal()
    try:
        # 1) Admin: créé seulement si aucun admin n'existe
        admin = db.scalar(select(User).where(User.role == Role.admin))
        if not admin:
            code = validate_pin(config.ADMIN_PIN)
            if find_user_by_pin(db, code):
                raise RuntimeError("ADMIN_PIN is already used by another user")
            admin = User(name=config.ADMIN_NAME, pin_hash=hash_pin(code), role=Role.admin)
            db.add(admin)
            db.commit()
            logger.info("admin user %r created", admin.name)

        # 2) Produits de démonstration si l'inventaire est vide
        if with_demo_items and not db.scalar(select(InventoryItem.id).limit(1)):
            for category, brand, name, weight, stock, min_stock, price in DEMO_ITEMS:
                db.add(
                    InventoryItem(
                        category=category,
                        brand=brand,
                        name=name,
                        weight=weight,
                        stock=stock,
                        min_stock=min_stock,
                        price=price,
                    )
                )
            db.commit()
            logger.info("%d demo inventory items created", len(DEMO_ITEMS))

        logger.info("SEED OK: admin=%s", admin.name)
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging(config.LOG_LEVEL)
    run_seed()
