# ===================================
# app/schemas/cpc.py
# ===================================
from typing import Optional
from pydantic import BaseModel, Field


class Correspondances(BaseModel):
    sh: Optional[str] = None
    citi: Optional[str] = None
    ctci: Optional[str] = None


class CpcCreate(BaseModel):
    code: str = Field(min_length=1, max_length=16, pattern=r"^\d+$")
    nom: str = Field(min_length=1)
    niveau: int = Field(ge=1, le=5)
    parent_code: Optional[str] = Field(None, max_length=16)
    correspondances: Optional[Correspondances] = None


class CpcUpdate(BaseModel):
    nom: Optional[str] = Field(None, min_length=1)
    niveau: Optional[int] = Field(None, ge=1, le=5)
    parent_code: Optional[str] = Field(None, max_length=16)
    correspondances: Optional[Correspondances] = None


class Cpc(BaseModel):
    id: int
    code: str
    nom: str
    niveau: int
    parent_code: Optional[str] = None
    correspondances: Optional[Correspondances] = None

    class Config:
        from_attributes = True


class CpcSelectOption(BaseModel):
    code: str
    nom: str

    class Config:
        from_attributes = True


class CpcQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    niveau: Optional[int] = Field(None, ge=1, le=5)
    search: Optional[str] = None


class BulkResult(BaseModel):
    created: int
    updated: int
