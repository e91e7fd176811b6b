from sqlalchemy import update
from sqlalchemy.orm import Session
from typing import Dict, Iterable

from .Medicine_model import Medicine


def get_active_medicines(db: Session, medicine_ids: Iterable[int]) -> Dict[int, Medicine]:
    """
    Active medicines keyed by id. Missing or inactive ids are simply absent.
    """
    ids = set(medicine_ids)
    if not ids:
        return {}
    medicines = db.query(Medicine).filter(
        Medicine.id.in_(ids),
        Medicine.is_active == True
    ).all()
    return {medicine.id: medicine for medicine in medicines}


def deduct_stock(db: Session, medicine_id: int, quantity: int) -> bool:
    """
    Decrement stock only if enough is left. Does not commit.
    Returns False when stock ran out since it was read.
    """
    result = db.execute(
        update(Medicine)
        .where(Medicine.id == medicine_id, Medicine.stock >= quantity)
        .values(stock=Medicine.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
