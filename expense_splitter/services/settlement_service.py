# expense_splitter/services/settlement_service.py
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from expense_splitter.errors import InvalidAmount, InvalidMember, PersistenceError, SelfPayment
from expense_splitter.models.balance import Balance
from expense_splitter.models.payment import Payment
from expense_splitter.services.balance_service import MemberBalance
from expense_splitter.services.locks import group_lock
from expense_splitter.services.money import ZERO, TOLERANCE, to_money

logger = logging.getLogger(__name__)

@dataclass
class SuggestedTransfer:
    from_user_id: int
    from_username: str
    to_user_id: int
    to_username: str
    amount: Decimal

def _check_payment(payer_id: int, payee_id: int, amount: Decimal) -> None:
    if amount <= 0:
        raise InvalidAmount("Payment amount must be greater than 0")
    if payer_id == payee_id:
        raise SelfPayment("Payer and payee must be different users")

def apply_payment(balances: Dict[int, Decimal], payer_id: int, payee_id: int, amount) -> Dict[int, Decimal]:
    """Return a copy of ``balances`` with a payment applied.

    The payer moves up towards zero, the payee down towards zero. Users
    without an entry start from zero.
    """
    amount = to_money(amount)
    _check_payment(payer_id, payee_id, amount)
    updated = dict(balances)
    updated[payer_id] = updated.get(payer_id, ZERO) + amount
    updated[payee_id] = updated.get(payee_id, ZERO) - amount
    return updated

def _stored_balance(session: Session, group_id: int, user_id: int) -> Balance:
    row = session.exec(select(Balance).where(Balance.group_id == group_id, Balance.user_id == user_id)).first()
    if row is None:
        row = Balance(group_id=group_id, user_id=user_id, net_balance=ZERO)
    return row

def record_payment(
    session: Session,
    group_id: int,
    payer_id: int,
    payee_id: int,
    amount,
    currency: str = "USD",
    notes: Optional[str] = None,
    member_ids: Optional[Iterable[int]] = None,
) -> Payment:
    """Store a payment and shift the payer's and payee's stored balances.

    The payment row and both balance updates commit together or not at all.
    Stored balances are adjusted as they are; the group should have been
    refreshed at least once before payments are relied upon.
    """
    amount = to_money(amount)
    _check_payment(payer_id, payee_id, amount)
    if member_ids is not None:
        allowed = set(member_ids)
        for uid in (payer_id, payee_id):
            if uid not in allowed:
                raise InvalidMember(f"User {uid} is not a member of this group")

    with group_lock(group_id):
        try:
            payment = Payment(group_id=group_id, payer_id=payer_id, payee_id=payee_id,
                              amount=amount, currency=currency, notes=notes)
            session.add(payment)
            now = datetime.utcnow()
            current = {}
            rows = {}
            for uid in (payer_id, payee_id):
                rows[uid] = _stored_balance(session, group_id, uid)
                current[uid] = rows[uid].net_balance
            for uid, value in apply_payment(current, payer_id, payee_id, amount).items():
                rows[uid].net_balance = value
                rows[uid].updated_at = now
                session.add(rows[uid])
            session.commit()
            session.refresh(payment)
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Recording payment in group %s failed", group_id)
            raise PersistenceError("Failed to record payment") from e
    logger.info("Payment %s: user %s paid user %s %s %s", payment.id, payer_id, payee_id, amount, currency)
    return payment

def suggest_settlements(balances: Sequence[MemberBalance]) -> List[SuggestedTransfer]:
    names = {b.user_id: b.username for b in balances}
    creditors = [(b.user_id, b.net_balance) for b in balances if b.net_balance >= TOLERANCE]
    debtors = [(b.user_id, -b.net_balance) for b in balances if b.net_balance <= -TOLERANCE]
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)
    i = j = 0
    settlements = []
    while i < len(debtors) and j < len(creditors):
        debtor_id, debt_amt = debtors[i]
        creditor_id, cred_amt = creditors[j]
        pay = to_money(min(debt_amt, cred_amt))
        if pay > 0:
            settlements.append(SuggestedTransfer(debtor_id, names[debtor_id], creditor_id, names[creditor_id], pay))
        debt_amt -= pay
        cred_amt -= pay
        if debt_amt < TOLERANCE:
            i += 1
        else:
            debtors[i] = (debtor_id, debt_amt)
        if cred_amt < TOLERANCE:
            j += 1
        else:
            creditors[j] = (creditor_id, cred_amt)
    return settlements
