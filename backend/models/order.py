# backend/models/order.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# Purchase order placed by a manager for one product
class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_reference = Column(String, nullable=False)
    product_designation = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)

    ordered_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    ordered_by_name = Column(String, nullable=False)
    ordered_at = Column(DateTime, default=utcnow, index=True)

    status = Column(String, default=OrderStatus.PENDING.value, nullable=False, index=True)
    received_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    product = relationship("Product")
