# backend/models/stock.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, event
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow
from services.errors import LedgerImmutable


class MovementType(str, enum.Enum):
    ENTRY = "entry"
    EXIT = "exit"
    ADJUSTMENT = "adjustment"
    INITIAL = "initial"


# Append-only ledger row. Product and user fields are snapshots taken at write time.
class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_reference = Column(String, nullable=False)
    product_designation = Column(String, nullable=False)

    movement_type = Column(String, nullable=False, index=True)
    # Always positive; direction comes from movement_type
    quantity = Column(Integer, nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    user_name = Column(String, nullable=False)

    reason = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=utcnow, index=True)

    product = relationship("Product")
    user = relationship("User")


@event.listens_for(StockMovement, "before_update")
def _refuse_update(mapper, connection, target):
    raise LedgerImmutable(f"Stock movement {target.id} is immutable")


@event.listens_for(StockMovement, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise LedgerImmutable(f"Stock movement {target.id} cannot be deleted")
