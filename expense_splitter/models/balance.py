from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

class Balance(SQLModel, table=True):
    """Stored net balance of one member in one group.

    Derived from the expense, share and payment records and safe to rebuild
    from them at any time.
    """
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="group.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    net_balance: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
