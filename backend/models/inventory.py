# backend/models/inventory.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow


class InventoryMode(str, enum.Enum):
    FULL = "full"
    CATEGORY = "category"
    ZONE = "zone"


class InventorySessionStatus(str, enum.Enum):
    OPEN = "open"
    VALIDATED = "validated"
    CANCELLED = "cancelled"


class CountStatus(str, enum.Enum):
    PENDING = "pending"
    COUNTED = "counted"
    VALIDATED = "validated"


# A physical stock count over the whole catalogue, one category or one zone
class InventorySession(Base):
    __tablename__ = "inventory_sessions"

    id = Column(Integer, primary_key=True, index=True)
    mode = Column(String, nullable=False, default=InventoryMode.FULL.value)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    storage_zone_id = Column(Integer, ForeignKey("storage_zones.id"), nullable=True)
    status = Column(String, nullable=False, default=InventorySessionStatus.OPEN.value, index=True)

    started_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    started_at = Column(DateTime, default=utcnow)
    closed_at = Column(DateTime, nullable=True)

    counts = relationship(
        "InventoryCount", back_populates="session",
        cascade="all, delete-orphan", order_by="InventoryCount.id",
    )


# One product line of a count; system_stock is the snapshot taken at session start
class InventoryCount(Base):
    __tablename__ = "inventory_counts"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("inventory_sessions.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    system_stock = Column(Integer, nullable=False)
    counted_stock = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default=CountStatus.PENDING.value)
    notes = Column(Text, nullable=True)

    session = relationship("InventorySession", back_populates="counts")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("session_id", "product_id", name="uq_inventorycount_session_product"),
    )

    @property
    def difference(self):
        if self.counted_stock is None:
            return 0
        return self.counted_stock - self.system_stock
