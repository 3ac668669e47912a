# backend/schemas/reference.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CategoryIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CategoryPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class CategoryOut(ORMBase):
    id: int
    name: str
    description: Optional[str] = None


class UnitIn(BaseModel):
    name: str = Field(min_length=1)
    abbreviation: str = Field(min_length=1)
    is_default: bool = False


class UnitPatch(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    abbreviation: Optional[str] = Field(None, min_length=1)
    is_default: Optional[bool] = None


class UnitOut(ORMBase):
    id: int
    name: str
    abbreviation: str
    is_default: bool = False


# Zones share the category shape
StorageZoneIn = CategoryIn
StorageZonePatch = CategoryPatch
StorageZoneOut = CategoryOut
