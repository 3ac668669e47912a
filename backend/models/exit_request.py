# backend/models/exit_request.py
import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow


# Possible exit request states
class ExitRequestStatus(str, enum.Enum):
    PENDING = "pending"
    AWAITING_RECEPTION = "awaiting_reception"
    APPROVED = "approved"
    REJECTED = "rejected"


# A user's request to take stock out. Product fields are snapshots.
class ExitRequest(Base):
    __tablename__ = "exit_requests"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_reference = Column(String, nullable=False)
    product_designation = Column(String, nullable=False)
    product_photo = Column(String, nullable=True)

    quantity = Column(Integer, nullable=False)

    requested_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    requested_by_name = Column(String, nullable=False)
    requested_at = Column(DateTime, default=utcnow, index=True)

    status = Column(String, default=ExitRequestStatus.PENDING.value, nullable=False, index=True)
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    reason = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    product = relationship("Product")
    requester = relationship("User")


# Pick-list line created when an exit request is approved
class PendingExit(Base):
    __tablename__ = "pending_exits"

    id = Column(Integer, primary_key=True, index=True)
    exit_request_id = Column(Integer, ForeignKey("exit_requests.id"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_reference = Column(String, nullable=False)
    product_designation = Column(String, nullable=False)

    # Location snapshot at approval time
    storage_zone = Column(String, nullable=True)
    shelf = Column(Integer, nullable=True)
    position = Column(Integer, nullable=True)

    quantity = Column(Integer, nullable=False)
    requested_by = Column(String, nullable=False)
    added_at = Column(DateTime, default=utcnow, index=True)
