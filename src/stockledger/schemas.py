"""Pydantic schemas for API payloads."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Message(BaseModel):
    message: str


# -- accounts ---------------------------------------------------------------


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6, max_length=128)
    role: str = Field(default="staff", max_length=32)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime


# -- locations --------------------------------------------------------------


class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    short_code: str = Field(..., min_length=1, max_length=16)


class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    type: str = Field(default="internal")
    warehouse_id: Optional[int] = None


class LocationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    warehouse_id: Optional[int] = None


class WarehouseSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    short_code: str


class WarehouseRead(WarehouseSummary):
    created_at: datetime
    locations: List[LocationSummary] = Field(default_factory=list)


class LocationRead(LocationSummary):
    created_at: datetime
    warehouse: Optional[WarehouseSummary] = None


# -- catalog ----------------------------------------------------------------


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    sku: str = Field(..., min_length=1, max_length=64)
    category: Optional[str] = None
    barcode: Optional[str] = None
    cost: float = Field(default=0.0, allow_inf_nan=False)
    price: float = Field(default=0.0, allow_inf_nan=False)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    sku: Optional[str] = Field(None, min_length=1, max_length=64)
    category: Optional[str] = None
    barcode: Optional[str] = None
    cost: Optional[float] = Field(None, allow_inf_nan=False)
    price: Optional[float] = Field(None, allow_inf_nan=False)


class ProductRead(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


class ProductStock(ProductRead):
    on_hand: float
    free_to_use: float


class OperationTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    type: str
    sequence_code: str = Field(..., min_length=1, max_length=32)


class OperationTypeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    sequence_code: str


# -- operations -------------------------------------------------------------


class MoveCreate(BaseModel):
    product_id: int
    quantity: float = Field(..., allow_inf_nan=False, description="Must be strictly positive")
    location_src_id: int
    location_dest_id: int


class OperationCreate(BaseModel):
    operation_type_id: int
    moves: List[MoveCreate] = Field(default_factory=list)
    contact: Optional[str] = Field(None, max_length=255)
    scheduled_date: Optional[datetime] = None


class OperationUpdate(BaseModel):
    contact: Optional[str] = Field(None, max_length=255)
    scheduled_date: Optional[datetime] = None
    moves: Optional[List[MoveCreate]] = None


class MoveRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: float
    location_src_id: int
    location_dest_id: int
    status: str
    done_at: Optional[datetime] = None


class MoveWithProduct(MoveRead):
    product: ProductRead


class MoveDetail(MoveWithProduct):
    location_src: LocationSummary
    location_dest: LocationSummary


class OperationBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    operation_type_id: int
    contact: Optional[str] = None
    status: str
    scheduled_date: Optional[datetime] = None
    created_at: datetime
    done_at: Optional[datetime] = None
    operation_type: OperationTypeRead


class OperationRead(OperationBase):
    moves: List[MoveRead] = Field(default_factory=list)


class OperationListItem(OperationBase):
    moves: List[MoveWithProduct] = Field(default_factory=list)


class OperationDetail(OperationBase):
    moves: List[MoveDetail] = Field(default_factory=list)


# -- reporting --------------------------------------------------------------


class OperationRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    status: str
    operation_type: OperationTypeRead


class LedgerEntry(MoveDetail):
    operation: OperationRef


class StockLevel(BaseModel):
    product: ProductRead
    location: LocationSummary
    quantity: float


class OnHand(BaseModel):
    product_id: int
    location_id: Optional[int] = None
    on_hand: float
    reserved: float
    free_to_use: float


class OperationTypeStats(OperationTypeRead):
    pending_count: int
    late_count: int
    waiting_count: int


class DashboardStats(BaseModel):
    product_count: int
    operation_count: int
    pending_operations: int
    total_value: float
    operation_types: List[OperationTypeStats] = Field(default_factory=list)
