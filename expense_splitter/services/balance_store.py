# expense_splitter/services/balance_store.py
import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from expense_splitter.errors import PersistenceError
from expense_splitter.models.balance import Balance
from expense_splitter.services.balance_service import MemberBalance, compute_group_balances

logger = logging.getLogger(__name__)

def sync_balances(session: Session, group_id: int, balances: Sequence[MemberBalance]) -> None:
    """Overwrite the stored net balance of every member in one transaction."""
    now = datetime.utcnow()
    try:
        stored = {
            b.user_id: b
            for b in session.exec(select(Balance).where(Balance.group_id == group_id)).all()
        }
        for mb in balances:
            row = stored.get(mb.user_id)
            if row is None:
                row = Balance(group_id=group_id, user_id=mb.user_id)
            row.net_balance = mb.net_balance
            row.updated_at = now
            session.add(row)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Balance sync failed for group %s", group_id)
        raise PersistenceError(f"Could not store balances for group {group_id}") from e

def refresh_group_balances(session: Session, group_id: int) -> List[MemberBalance]:
    """Recompute a group's balances from its expenses and store them.

    A failed store write is logged and otherwise ignored: the expense change
    that triggered the refresh is already committed and the next read
    recomputes anyway.
    """
    balances = compute_group_balances(session, group_id)
    try:
        sync_balances(session, group_id, balances)
    except PersistenceError:
        logger.warning("Stored balances for group %s are stale until the next refresh", group_id)
    return balances
