# backend/models/reference.py
from sqlalchemy import Column, Integer, String, Boolean
from database import Base


# Product category, referenced by products through category_id
class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)


# Unit of measure (pieces, metres, kilograms...)
class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    abbreviation = Column(String, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)


# Storage zone; first part of a product's zone.shelf.position location
class StorageZone(Base):
    __tablename__ = "storage_zones"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(String, nullable=True)
