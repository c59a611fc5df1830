from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic.alias_generators import to_camel

from .core.config import settings
from .models import AccountType, CategoryKind, TransactionKind


class ApiModel(BaseModel):
    """JSON crosses the wire in camelCase; Python code keeps snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrmModel(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class OkOut(ApiModel):
    ok: bool = True


class ErrorOut(ApiModel):
    message: str
    code: str | None = None


# ---- Accounts -----------------------------------------------------------


class AccountCreate(ApiModel):
    name: str = Field(max_length=100)
    # validated by the service so the error carries the InvalidAccountType tag
    type: str
    opening_balance: StrictInt = 0
    opening_date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=500)


class AccountUpdate(ApiModel):
    name: Optional[str] = Field(default=None, max_length=100)
    type: Optional[str] = None
    opening_balance: Optional[StrictInt] = None
    opening_date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class AccountOut(OrmModel):
    id: int
    name: str
    type: AccountType
    opening_balance: int
    opening_date: Optional[dt.date] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AccountBalanceOut(ApiModel):
    account_id: int
    balance: int


# ---- Categories ---------------------------------------------------------


class CategoryCreate(ApiModel):
    name: str = Field(max_length=100)
    description: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = Field(default=None, ge=0)
    icon: Optional[str] = Field(default=None, max_length=64)
    color: Optional[str] = Field(default=None, max_length=32)
    type: CategoryKind = CategoryKind.EXPENSE


class CategoryUpdate(ApiModel):
    """Scalar-only patch; re-parenting goes through ``move``."""

    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=64)
    color: Optional[str] = Field(default=None, max_length=32)
    type: Optional[CategoryKind] = None
    archived: Optional[bool] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CategoryMove(ApiModel):
    parent_id: Optional[int] = None


class CategoryReorder(ApiModel):
    parent_id: Optional[int] = None
    ordered_ids: list[StrictInt]


class CategoryOut(OrmModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int
    icon: Optional[str] = None
    color: Optional[str] = None
    type: CategoryKind
    archived: bool
    created_at: datetime
    updated_at: datetime


class CategoryTreeNode(CategoryOut):
    children: list[CategoryOut] = Field(default_factory=list)


class CategoryTreeOut(ApiModel):
    categories: list[CategoryTreeNode]


# ---- Transaction rules --------------------------------------------------


class RuleCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    pattern: str = Field(min_length=1, max_length=500)
    is_regex: bool = False
    case_sensitive: bool = False
    is_active: bool = True
    priority: Optional[int] = None
    category_id: Optional[int] = None
    kind: Optional[TransactionKind] = None


class RuleUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    pattern: Optional[str] = Field(default=None, min_length=1, max_length=500)
    is_regex: Optional[bool] = None
    case_sensitive: Optional[bool] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = None
    category_id: Optional[int] = None
    kind: Optional[TransactionKind] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class RuleOut(OrmModel):
    id: int
    name: str
    pattern: str
    is_regex: bool
    case_sensitive: bool
    is_active: bool
    priority: int
    category_id: Optional[int] = None
    kind: Optional[TransactionKind] = None
    created_at: datetime
    updated_at: datetime


class RuleReorder(ApiModel):
    ids: list[StrictInt]


class RuleTestIn(ApiModel):
    description: str


class RuleTestOut(ApiModel):
    rule: Optional[RuleOut] = None


# ---- Transactions -------------------------------------------------------


class TransactionCreate(ApiModel):
    account_id: int
    amount: StrictInt
    date: Optional[dt.date] = None
    description: str = Field(default="", max_length=1000)
    kind: Optional[TransactionKind] = None
    category_id: Optional[int] = None
    is_saving: bool = False
    notes: Optional[str] = None
    income_source_id: Optional[int] = None

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value):
        return "" if value is None else value


class TransactionUpdate(ApiModel):
    """Partial update. Presence is read from ``model_fields_set``:
    ``categoryId: null`` clears the category, an absent key leaves it alone."""

    account_id: Optional[int] = None
    amount: Optional[StrictInt] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    kind: Optional[TransactionKind] = None
    category_id: Optional[int] = None
    is_saving: Optional[bool] = None
    notes: Optional[str] = None
    income_source_id: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class TransactionOut(OrmModel):
    id: str
    date: dt.date
    amount: int
    kind: TransactionKind
    description: str
    is_saving: bool
    notes: Optional[str] = None
    account_id: int
    category_id: Optional[int] = None
    income_source_id: Optional[int] = None
    transfer_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


SortBy = Literal["date", "amount", "createdAt"]
SortDir = Literal["asc", "desc"]


class TransactionFilters(ApiModel):
    """List/group filters.

    ``category_id`` explicitly set to ``None`` means "uncategorized only";
    leaving it unset means "any category".
    """

    account_id: Optional[int] = None
    category_id: Optional[int] = None
    q: Optional[str] = None
    date_from: Optional[dt.date] = Field(default=None, alias="from")
    date_to: Optional[dt.date] = Field(default=None, alias="to")
    sort_by: SortBy = "date"
    sort_dir: SortDir = "desc"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)

    @property
    def uncategorized_only(self) -> bool:
        return "category_id" in self.model_fields_set and self.category_id is None


class TransactionListOut(ApiModel):
    items: list[TransactionOut]
    total: int
    page: int
    page_size: int


class CategoryGroupOut(ApiModel):
    category_id: Optional[int] = None
    count: int
    sum: int
    min_date: Optional[dt.date] = None
    max_date: Optional[dt.date] = None
    category_name: Optional[str] = None
    parent_name: Optional[str] = None
    color: Optional[str] = None
    items: list[TransactionOut] = Field(default_factory=list)


class GroupByCategoryOut(ApiModel):
    groups: list[CategoryGroupOut]


# ---- Transfers ----------------------------------------------------------


class TransferCreate(ApiModel):
    from_account_id: int
    to_account_id: int
    amount: StrictInt = Field(gt=0)
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = None


class TransferOut(ApiModel):
    transfer_id: str
    out_leg: TransactionOut = Field(alias="out")
    in_leg: TransactionOut = Field(alias="in")


class TransferListOut(ApiModel):
    items: list[TransactionOut]


class TransferConvert(ApiModel):
    tx_id: str
    to_account_id: int
    amount: Optional[StrictInt] = Field(default=None, gt=0)
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = None


class TransferConvertOut(ApiModel):
    transfer_id: str
    source: TransactionOut
    destination: TransactionOut
