from fastapi import APIRouter, Depends, HTTPException
from typing import List
from sqlalchemy.orm import aliased
from sqlmodel import Session, select
from expense_splitter.db import get_session
from expense_splitter.errors import LedgerError
from expense_splitter.models.payment import Payment
from expense_splitter.models.user import User
from expense_splitter.routes.group import require_user, require_member, get_group_or_404
from expense_splitter.schemas import PaymentCreate, PaymentCreated, PaymentOut
from expense_splitter.services.expense_service import group_member_ids
from expense_splitter.services.settlement_service import record_payment

router = APIRouter(prefix="/payments", tags=["payments"])

@router.post("", status_code=201, response_model=PaymentCreated)
def create_payment(body: PaymentCreate, current_user = Depends(require_user), s: Session = Depends(get_session)):
    group = get_group_or_404(s, body.group_id)
    require_member(s, body.group_id, current_user["id"])
    try:
        p = record_payment(
            s, body.group_id, current_user["id"], body.payee_id, body.amount,
            currency=body.currency or group.currency, notes=body.notes,
            member_ids=group_member_ids(s, body.group_id),
        )
    except LedgerError as err:
        raise HTTPException(err.status_code, str(err))
    return PaymentCreated(message="Payment recorded successfully", payment_id=p.id)

@router.get("", response_model=List[PaymentOut])
def payment_history(group_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    get_group_or_404(s, group_id)
    require_member(s, group_id, current_user["id"])
    payer = aliased(User)
    payee = aliased(User)
    rows = s.exec(
        select(Payment, payer.username, payee.username)
        .join(payer, payer.id == Payment.payer_id)
        .join(payee, payee.id == Payment.payee_id)
        .where(Payment.group_id == group_id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
    ).all()
    return [
        PaymentOut(id=p.id, amount=p.amount, currency=p.currency, notes=p.notes, payment_date=p.payment_date,
                   payer_id=p.payer_id, payee_id=p.payee_id, payer_name=payer_name, payee_name=payee_name)
        for p, payer_name, payee_name in rows
    ]
