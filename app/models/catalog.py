"""
Read-only view of the catalog tables owned by the content admin.

Prices are integers in paise. Only lookup lives in this service; course,
test series, ebook and study material management is done elsewhere.
"""
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class CatalogItemBase(SQLModel):
    title: str
    price: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Course(CatalogItemBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class TestSeries(CatalogItemBase, table=True):
    __tablename__ = "test_series"
    id: Optional[int] = Field(default=None, primary_key=True)


class Ebook(CatalogItemBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class StudyMaterial(CatalogItemBase, table=True):
    __tablename__ = "study_material"
    id: Optional[int] = Field(default=None, primary_key=True)
