from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

class Expense(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    title: str
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    paid_by: int = Field(foreign_key="user.id")
    currency: str = "USD"
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class ExpenseShare(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("expense_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    expense_id: int = Field(foreign_key="expense.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    share_amount: Decimal = Field(max_digits=12, decimal_places=2)
