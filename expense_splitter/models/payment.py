from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import Field, SQLModel

class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    payer_id: int = Field(foreign_key="user.id")
    payee_id: int = Field(foreign_key="user.id")
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    currency: str = "USD"
    notes: Optional[str] = None
    payment_date: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
