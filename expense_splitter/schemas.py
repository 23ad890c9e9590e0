# expense_splitter/schemas.py
"""Request and response bodies of the JSON API. Fields travel in camelCase."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class GroupCreate(CamelModel):
    name: str
    description: Optional[str] = None
    currency: Optional[str] = None


class MemberAdd(CamelModel):
    user_id: Optional[int] = None
    email: Optional[str] = None
    username: Optional[str] = None


class MemberOut(CamelModel):
    user_id: int
    username: str
    role: Optional[str] = None


class GroupListItem(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    currency: str
    created_by_username: str
    role: str
    member_count: int
    expense_count: int
    has_unpaid_balance: bool


class RoleUpdate(CamelModel):
    role: str


class GroupOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    currency: str
    created_by: int
    created_at: datetime
    members: List[MemberOut] = []


class SplitIn(CamelModel):
    user_id: int
    amount: Decimal


class ExpenseCreate(CamelModel):
    group_id: int
    title: str
    amount: Decimal
    description: Optional[str] = None
    currency: Optional[str] = None
    member_ids: List[int]
    splits: Optional[List[SplitIn]] = None


class ExpenseUpdate(CamelModel):
    title: Optional[str] = None
    amount: Decimal
    description: Optional[str] = None
    member_ids: List[int]
    splits: Optional[List[SplitIn]] = None


class ShareOut(CamelModel):
    user_id: int
    share_amount: Decimal


class ExpenseOut(CamelModel):
    id: int
    group_id: int
    title: str
    amount: Decimal
    paid_by: int
    currency: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    shares: List[ShareOut] = []


class RecentExpenseOut(ExpenseOut):
    paid_by_username: str
    group_name: str


class BalanceOut(CamelModel):
    user_id: int
    username: str
    total_paid: Decimal
    total_owed: Decimal
    net_balance: Decimal


class SummaryOut(CamelModel):
    total_expenses: Decimal
    total_paid: Decimal
    is_balanced: bool
    creditors: List[BalanceOut]
    debtors: List[BalanceOut]


class TransferOut(CamelModel):
    from_user_id: int
    from_username: str
    to_user_id: int
    to_username: str
    amount: Decimal


class GroupBalancesOut(CamelModel):
    group_id: int
    members: List[MemberOut]
    balances: List[BalanceOut]
    summary: SummaryOut
    settlements: List[TransferOut]


class UserExpenseOut(CamelModel):
    expense_id: int
    title: str
    amount: Decimal
    paid_by: int
    paid_by_username: str
    share_amount: Decimal
    created_at: datetime


class UserTotalsOut(CamelModel):
    total_paid: Decimal
    total_owed: Decimal
    net_balance: Decimal


class UserBalanceOut(CamelModel):
    user_id: int
    group_id: int
    expenses: List[UserExpenseOut]
    balance: UserTotalsOut


class BalanceSummaryOut(CamelModel):
    total_owed_to_you: Decimal
    total_owed: Decimal
    net_balance: Decimal


class PaymentCreate(CamelModel):
    group_id: int
    payee_id: int
    amount: Decimal
    currency: Optional[str] = None
    notes: Optional[str] = None


class PaymentCreated(CamelModel):
    message: str
    payment_id: int


class PaymentOut(CamelModel):
    id: int
    amount: Decimal
    currency: str
    notes: Optional[str] = None
    payment_date: datetime
    payer_id: int
    payee_id: int
    payer_name: str
    payee_name: str
