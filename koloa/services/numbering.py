"""
Numérotation des commandes.

Format : ORD-<année>-<seq>, seq sur 3 chiffres minimum, repart à 1 chaque
année. Le compteur est une ligne `order_sequences` par année, verrouillée et
incrémentée dans la transaction qui crée la commande : deux créations
concurrentes ne peuvent pas obtenir le même numéro.
"""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from koloa.app.db.models.models_v1 import Order, OrderSequence

ORDER_PREFIX = "ORD"


def year_prefix(year: int) -> str:
    return f"{ORDER_PREFIX}-{year}-"


def format_order_number(year: int, seq: int) -> str:
    return f"{year_prefix(year)}{seq:03d}"


def parse_sequence(order_number: str, year: int) -> int | None:
    prefix = year_prefix(year)
    if not order_number.startswith(prefix):
        return None
    suffix = order_number[len(prefix):]
    if not suffix.isdigit():
        return None
    return int(suffix)


def max_existing_sequence(db: Session, year: int) -> int:
    """Plus grand suffixe numérique déjà utilisé pour l'année (0 si aucun)."""
    numbers = (
        db.execute(select(Order.order_number).where(Order.order_number.startswith(year_prefix(year))))
        .scalars()
        .all()
    )
    seqs = [s for s in (parse_sequence(n, year) for n in numbers) if s is not None]
    return max(seqs, default=0)


def _lock_sequence(db: Session, year: int) -> OrderSequence | None:
    return (
        db.execute(select(OrderSequence).where(OrderSequence.year == year).with_for_update())
        .scalar_one_or_none()
    )


def next_order_number(db: Session, year: int | None = None) -> str:
    if year is None:
        year = datetime.now(timezone.utc).year

    seq = _lock_sequence(db, year)
    if seq is None:
        # Premier numéro de l'année: on part des commandes existantes
        seq = OrderSequence(year=year, last_value=max_existing_sequence(db, year))
        try:
            with db.begin_nested():
                db.add(seq)
        except IntegrityError:
            # une autre transaction a créé le compteur entre-temps
            seq = _lock_sequence(db, year)
            if seq is None:
                raise

    seq.last_value += 1
    db.flush()
    return format_order_number(year, seq.last_value)
