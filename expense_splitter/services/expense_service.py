# expense_splitter/services/expense_service.py
"""Expense writes.

Every write validates first, stores the expense together with its shares in
one transaction, then recomputes and stores the balances of the whole group.
All of it runs under the group's lock.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from expense_splitter.config import DEFAULT_CURRENCY
from expense_splitter.errors import PersistenceError
from expense_splitter.models.expense import Expense, ExpenseShare
from expense_splitter.models.group import GroupMember
from expense_splitter.services.balance_store import refresh_group_balances
from expense_splitter.services.locks import group_lock
from expense_splitter.services.money import to_money
from expense_splitter.services.split_service import Split, validate_split

logger = logging.getLogger(__name__)

def group_member_ids(session: Session, group_id: int) -> List[int]:
    return list(session.exec(select(GroupMember.user_id).where(GroupMember.group_id == group_id)).all())

def get_shares(session: Session, expense_id: int) -> List[ExpenseShare]:
    return list(session.exec(select(ExpenseShare).where(ExpenseShare.expense_id == expense_id).order_by(ExpenseShare.id)).all())

def _write_shares(session: Session, expense_id: int, shares) -> None:
    for uid, share_amount in shares.items():
        session.add(ExpenseShare(expense_id=expense_id, user_id=uid, share_amount=share_amount))

def _commit(session: Session, action: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Failed to %s expense", action)
        raise PersistenceError(f"Failed to {action} expense") from e

def create_expense(
    session: Session,
    group_id: int,
    paid_by: int,
    title: str,
    amount,
    member_ids: Sequence[int],
    splits: Optional[Iterable[Split]] = None,
    description: Optional[str] = None,
    currency: Optional[str] = None,
) -> Tuple[Expense, List[ExpenseShare]]:
    with group_lock(group_id):
        shares = validate_split(amount, member_ids, group_member_ids(session, group_id), splits, paid_by)
        e = Expense(group_id=group_id, paid_by=paid_by, title=title.strip(), amount=to_money(amount),
                    description=(description or "").strip() or None, currency=currency or DEFAULT_CURRENCY)
        session.add(e)
        session.flush()
        _write_shares(session, e.id, shares)
        _commit(session, "create")
        logger.info("Expense %s created in group %s: %s split %d ways", e.id, group_id, e.amount, len(shares))
        refresh_group_balances(session, group_id)
        session.refresh(e)
        return e, get_shares(session, e.id)

def update_expense(
    session: Session,
    expense: Expense,
    title: Optional[str],
    amount,
    member_ids: Sequence[int],
    splits: Optional[Iterable[Split]] = None,
    description: Optional[str] = None,
) -> Tuple[Expense, List[ExpenseShare]]:
    group_id = expense.group_id
    with group_lock(group_id):
        shares = validate_split(amount, member_ids, group_member_ids(session, group_id), splits, expense.paid_by)
        for old in get_shares(session, expense.id):
            session.delete(old)
        session.flush()
        if title is not None:
            expense.title = title.strip()
        expense.amount = to_money(amount)
        expense.description = (description or "").strip() or None
        expense.updated_at = datetime.utcnow()
        session.add(expense)
        _write_shares(session, expense.id, shares)
        _commit(session, "update")
        logger.info("Expense %s updated in group %s", expense.id, group_id)
        refresh_group_balances(session, group_id)
        session.refresh(expense)
        return expense, get_shares(session, expense.id)

def delete_expense(session: Session, expense: Expense) -> None:
    group_id = expense.group_id
    expense_id = expense.id
    with group_lock(group_id):
        for sh in get_shares(session, expense_id):
            session.delete(sh)
        session.delete(expense)
        _commit(session, "delete")
        logger.info("Expense %s deleted from group %s", expense_id, group_id)
        refresh_group_balances(session, group_id)
