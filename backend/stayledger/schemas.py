# backend/stayledger/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, List, Any

from pydantic import BaseModel, Field, ConfigDict

from .models import PropertyType, ReportType, UserRole


# -------------------- Auth --------------------

class RegisterIn(BaseModel):
    username: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=200)
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None


class LoginIn(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    role: UserRole
    portfolio_id: int

    model_config = ConfigDict(from_attributes=True)


class RoleUpdateIn(BaseModel):
    role: UserRole


# -------------------- Invitations --------------------

class InvitationCreate(BaseModel):
    email: str = Field(min_length=3, max_length=200)
    role: UserRole = UserRole.standard_user
    # Defaults to the caller's portfolio.
    portfolio_id: Optional[int] = None


class InvitationOut(BaseModel):
    id: int
    portfolio_id: int
    invited_by: Optional[int] = None
    email: str
    role: UserRole
    token: str
    accepted: bool
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvitationPreviewOut(BaseModel):
    """What an invitee sees before signing in; carries no token."""

    email: str
    role: UserRole
    portfolio_id: int
    portfolio_name: str
    accepted: bool
    expired: bool
    expires_at: datetime


class PrincipalOut(BaseModel):
    user_id: int
    email: str
    role: str
    portfolio_id: int


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# -------------------- Owners / Listings --------------------

class OwnerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    email: str = Field(min_length=3, max_length=200)
    phone: Optional[str] = None
    markup_percentage: float = Field(default=15.0, ge=0)


class OwnerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    email: Optional[str] = Field(default=None, min_length=3, max_length=200)
    phone: Optional[str] = None
    markup_percentage: Optional[float] = Field(default=None, ge=0)


class OwnerOut(BaseModel):
    id: int
    portfolio_id: int
    name: str
    email: str
    phone: Optional[str] = None
    markup_percentage: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ListingCreate(BaseModel):
    owner_id: int
    name: str = Field(min_length=1, max_length=160)
    address: str = Field(min_length=1, max_length=255)
    property_type: PropertyType = PropertyType.apartment
    beds: Optional[int] = Field(default=None, ge=0)
    baths: Optional[float] = Field(default=None, ge=0)
    image: Optional[str] = None
    active: bool = True


class ListingUpdate(BaseModel):
    owner_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    property_type: Optional[PropertyType] = None
    beds: Optional[int] = Field(default=None, ge=0)
    baths: Optional[float] = Field(default=None, ge=0)
    image: Optional[str] = None
    active: Optional[bool] = None


class ListingOut(BaseModel):
    id: int
    portfolio_id: int
    owner_id: int
    name: str
    address: str
    property_type: str
    beds: Optional[int] = None
    baths: Optional[float] = None
    image: Optional[str] = None
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Inventory --------------------

class InventoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    category: str = Field(min_length=1, max_length=80)
    cost_price: float = Field(ge=0)
    default_markup: float = Field(default=15.0, ge=0)
    quantity: int = 0
    vendor: Optional[str] = None
    min_quantity: Optional[int] = Field(default=10, ge=0)


class InventoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=160)
    category: Optional[str] = Field(default=None, min_length=1, max_length=80)
    cost_price: Optional[float] = Field(default=None, ge=0)
    default_markup: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = None
    vendor: Optional[str] = None
    min_quantity: Optional[int] = Field(default=None, ge=0)


class InventoryOut(BaseModel):
    id: int
    portfolio_id: int
    name: str
    category: str
    cost_price: float
    default_markup: float
    quantity: int
    vendor: Optional[str] = None
    min_quantity: Optional[int] = None
    deleted: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RefillIn(BaseModel):
    inventory_id: int
    # Positivity is checked by the ledger so batch entries share one gate.
    quantity: int
    cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class BatchRefillIn(BaseModel):
    items: List[RefillIn] = Field(min_length=1)


class RefillOut(BaseModel):
    id: int
    inventory_id: int
    user_id: Optional[int] = None
    quantity: int
    cost: float
    notes: Optional[str] = None
    refill_date: datetime

    model_config = ConfigDict(from_attributes=True)


class RefillResultOut(BaseModel):
    item: InventoryOut
    refill: RefillOut


class BatchRefillOut(BaseModel):
    refilled: int
    items: List[InventoryOut]


# -------------------- Expenses --------------------

class ExpenseCreate(BaseModel):
    listing_id: int
    inventory_id: Optional[int] = None
    quantity_used: Optional[int] = Field(default=None, ge=0)
    total_cost: float = Field(ge=0)
    markup_percent: float = Field(default=15.0, ge=0)
    # Trusted as sent; derived from total_cost/markup_percent when omitted.
    billed_amount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseUpdate(BaseModel):
    listing_id: Optional[int] = None
    inventory_id: Optional[int] = None
    quantity_used: Optional[int] = Field(default=None, ge=0)
    total_cost: Optional[float] = Field(default=None, ge=0)
    markup_percent: Optional[float] = Field(default=None, ge=0)
    billed_amount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseOut(BaseModel):
    id: int
    portfolio_id: int
    listing_id: int
    owner_id: int
    inventory_id: Optional[int] = None
    quantity_used: Optional[int] = None
    total_cost: float
    markup_percent: float
    billed_amount: float
    notes: Optional[str] = None
    date: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Reports --------------------

class GenerateReportsIn(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    owner_ids: List[int] = Field(min_length=1)
    batch_title: str = Field(min_length=1, max_length=200)


class ReportOut(BaseModel):
    id: int
    portfolio_id: int
    batch_id: Optional[str] = None
    owner_id: Optional[int] = None
    name: str
    type: ReportType
    month: Optional[int] = None
    year: Optional[int] = None
    file_path: Optional[str] = None
    sent: bool
    notes: Optional[str] = None
    generated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportListOut(ReportOut):
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None


class BatchOut(BaseModel):
    id: str
    portfolio_id: int
    title: str
    notes: str
    month: int
    year: int
    generated_at: datetime
    reports: List[ReportOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class GenerateReportsOut(BaseModel):
    batch_id: str
    reports: List[ReportOut]
    failures: List[dict[str, Any]] = Field(default_factory=list)


class BatchNotesIn(BaseModel):
    notes: str = ""


class BatchNotesOut(BaseModel):
    batch_id: str
    notes: str


class EmailResultOut(BaseModel):
    report_id: int
    owner_id: Optional[int] = None
    success: bool
    message: str


class BatchEmailOut(BaseModel):
    batch_id: str
    success_count: int
    failure_count: int
    results: List[EmailResultOut]


# -------------------- Shopping lists --------------------

class ShoppingListCreate(BaseModel):
    name: str = Field(min_length=1, max_length=160)


class ShoppingListItemCreate(BaseModel):
    inventory_id: int
    quantity: int = Field(default=1, ge=1)


class ShoppingListItemUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, ge=1)
    completed: Optional[bool] = None


class ShoppingListItemOut(BaseModel):
    id: int
    shopping_list_id: int
    inventory_id: int
    quantity: int
    completed: bool
    created_at: datetime
    updated_at: datetime
    inventory_item: Optional[InventoryOut] = None

    model_config = ConfigDict(from_attributes=True)


class ShoppingListOut(BaseModel):
    id: int
    user_id: int
    name: str
    is_default: bool
    created_at: datetime
    updated_at: datetime
    items: List[ShoppingListItemOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ShoppingListRefillOut(BaseModel):
    refilled: int
    items: List[InventoryOut]


# -------------------- Activity / Dashboard --------------------

class ActivityOut(BaseModel):
    id: int
    user_id: int
    portfolio_id: Optional[int] = None
    action: str
    details: Optional[str] = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class ChartPointOut(BaseModel):
    month: str
    year: int
    expenses: float
    billed: float
    profit: float


class DashboardOut(BaseModel):
    total_owners: int
    total_listings: int
    total_inventory: int
    low_stock_count: int
    low_stock_items: List[InventoryOut]
    total_cost: float
    total_billed: float
    profit: float
    recent_activity: List[ActivityOut]
    recent_listings: List[ListingOut]
    chart: List[ChartPointOut]


class ListingExpensesOut(BaseModel):
    listing_id: int
    listing_name: str
    expenses: List[ExpenseOut]
    total: float


class ReportSummaryOut(BaseModel):
    total_expenses: float
    total_properties: int


class ReportDetailsOut(BaseModel):
    report: ReportOut
    owner: OwnerOut
    expenses: List[ExpenseOut]
    listings: List[ListingOut]
    inventory: dict[str, InventoryOut]
    expenses_by_listing: List[ListingExpensesOut]
    summary: ReportSummaryOut


class ItemCompleteIn(BaseModel):
    completed: bool
