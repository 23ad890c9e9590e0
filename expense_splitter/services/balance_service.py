# expense_splitter/services/balance_service.py
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Iterable, List, NamedTuple, Sequence

from sqlmodel import Session, select

from expense_splitter.models.expense import Expense, ExpenseShare
from expense_splitter.models.group import GroupMember
from expense_splitter.models.payment import Payment
from expense_splitter.models.user import User
from expense_splitter.services.money import ZERO, TOLERANCE, is_zero

logger = logging.getLogger(__name__)

class Member(NamedTuple):
    user_id: int
    username: str

@dataclass
class MemberBalance:
    user_id: int
    username: str
    total_paid: Decimal = ZERO
    total_owed: Decimal = ZERO
    net_balance: Decimal = ZERO

@dataclass
class GroupSummary:
    total_expenses: Decimal
    total_paid: Decimal
    is_balanced: bool
    creditors: List[MemberBalance] = field(default_factory=list)
    debtors: List[MemberBalance] = field(default_factory=list)

def aggregate(members: Sequence[Member], expenses: Iterable[Expense], shares: Iterable[ExpenseShare]) -> List[MemberBalance]:
    """Total paid, total owed and net balance of every member, in member order.

    Expenses paid by, and shares owed by, users missing from ``members`` are
    left out with a warning; a member may have left the group after paying.
    """
    balances: Dict[int, MemberBalance] = {m.user_id: MemberBalance(m.user_id, m.username) for m in members}

    for e in expenses:
        payer = balances.get(e.paid_by)
        if payer is None:
            logger.warning("Expense %s paid by user %s who is not a group member; skipped", e.id, e.paid_by)
            continue
        payer.total_paid += e.amount

    for s in shares:
        debtor = balances.get(s.user_id)
        if debtor is None:
            logger.warning("Share of expense %s owed by user %s who is not a group member; skipped", s.expense_id, s.user_id)
            continue
        debtor.total_owed += s.share_amount

    for b in balances.values():
        b.net_balance = b.total_paid - b.total_owed
    return list(balances.values())

def replay_payments(balances: Sequence[MemberBalance], payments: Iterable[Payment]) -> List[MemberBalance]:
    """Shift net balances by recorded settlement payments.

    Totals paid and owed stay expense-only; a payment moves the payer's net
    balance up and the payee's down by its amount. Returns copies; the
    given balances are left as they are.
    """
    replayed = [replace(b) for b in balances]
    by_user = {b.user_id: b for b in replayed}
    for p in payments:
        payer, payee = by_user.get(p.payer_id), by_user.get(p.payee_id)
        if payer is None or payee is None:
            logger.warning("Payment %s involves a user who is not a group member; skipped", p.id)
            continue
        payer.net_balance += p.amount
        payee.net_balance -= p.amount
    return replayed

def summarize(balances: Sequence[MemberBalance]) -> GroupSummary:
    total_expenses = sum((b.total_owed for b in balances), ZERO)
    total_paid = sum((b.total_paid for b in balances), ZERO)
    creditors = [b for b in balances if b.net_balance > 0 and not is_zero(b.net_balance)]
    debtors = [b for b in balances if b.net_balance < 0 and not is_zero(b.net_balance)]
    creditors.sort(key=lambda b: b.net_balance, reverse=True)
    debtors.sort(key=lambda b: b.net_balance)
    is_balanced = abs(total_expenses - total_paid) < TOLERANCE
    if not is_balanced:
        # validated shares always add up to their expense, so this means bad data
        logger.error("Group totals do not match: expenses=%s paid=%s", total_expenses, total_paid)
    return GroupSummary(total_expenses, total_paid, is_balanced, creditors, debtors)

def get_members(session: Session, group_id: int) -> List[Member]:
    users = session.exec(
        select(User).join(GroupMember, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id).order_by(User.username)
    ).all()
    return [Member(u.id, u.username) for u in users]

def get_expenses_and_shares(session: Session, group_id: int):
    expenses = session.exec(select(Expense).where(Expense.group_id == group_id).order_by(Expense.created_at, Expense.id)).all()
    shares = session.exec(
        select(ExpenseShare).join(Expense, ExpenseShare.expense_id == Expense.id)
        .where(Expense.group_id == group_id).order_by(ExpenseShare.id)
    ).all()
    return expenses, shares

def compute_group_balances(session: Session, group_id: int) -> List[MemberBalance]:
    """Net balances of a group rebuilt from its expenses, shares and payments."""
    members = get_members(session, group_id)
    expenses, shares = get_expenses_and_shares(session, group_id)
    payments = session.exec(select(Payment).where(Payment.group_id == group_id).order_by(Payment.id)).all()
    return replay_payments(aggregate(members, expenses, shares), payments)
