# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from database import Base
from utils.dates import utcnow

# Model Product
# A single catalogue article. Category, unit and storage zone are foreign keys;
# their display names are resolved at read time so a rename shows up everywhere.
# current_stock has no CHECK constraint: negative stock is a configurable policy.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String, unique=True, nullable=False, index=True)
    customer_reference = Column(String, nullable=True)
    designation = Column(String, nullable=False, index=True)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)

    # Location parts: zone.shelf.position
    storage_zone_id = Column(Integer, ForeignKey("storage_zones.id"), nullable=True, index=True)
    shelf = Column(Integer, nullable=True)
    position = Column(Integer, nullable=True)

    current_stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, CheckConstraint("min_stock >= 0"), nullable=False, default=0)
    max_stock = Column(Integer, CheckConstraint("max_stock >= 0"), nullable=False, default=0)
    unit_price = Column(Float, nullable=True)

    # Opaque photo reference, resolved by utils.storage
    photo = Column(String, nullable=True)

    supplier1 = Column(String, nullable=True)
    order_link1 = Column(String, nullable=True)
    supplier2 = Column(String, nullable=True)
    order_link2 = Column(String, nullable=True)
    supplier3 = Column(String, nullable=True)
    order_link3 = Column(String, nullable=True)

    deleted_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    category_ref = relationship("Category", lazy="joined")
    unit_ref = relationship("Unit", lazy="joined")
    zone_ref = relationship("StorageZone", lazy="joined")

    @property
    def category(self):
        return self.category_ref.name if self.category_ref else ""

    @property
    def unit(self):
        return self.unit_ref.abbreviation if self.unit_ref else ""

    @property
    def storage_zone(self):
        return self.zone_ref.name if self.zone_ref else None

    @property
    def location(self):
        if not self.zone_ref and self.shelf is None and self.position is None:
            return ""
        parts = [self.storage_zone or "", self.shelf, self.position]
        return ".".join("" if p is None else str(p) for p in parts)

    @property
    def is_deleted(self):
        return self.deleted_at is not None
