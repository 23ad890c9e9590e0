from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select
from expense_splitter.db import get_session
from expense_splitter.models.balance import Balance
from expense_splitter.models.expense import Expense, ExpenseShare
from expense_splitter.models.user import User
from expense_splitter.routes.group import require_user, require_member, get_group_or_404, list_members
from expense_splitter.schemas import (
    BalanceSummaryOut, GroupBalancesOut, UserBalanceOut, UserExpenseOut, UserTotalsOut,
)
from expense_splitter.services.balance_service import compute_group_balances, summarize
from expense_splitter.services.balance_store import refresh_group_balances
from expense_splitter.services.expense_service import group_member_ids
from expense_splitter.services.money import ZERO
from expense_splitter.services.settlement_service import suggest_settlements

router = APIRouter(prefix="/balances", tags=["balances"])

@router.get("/group/{group_id}", response_model=GroupBalancesOut)
def group_balances(group_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    get_group_or_404(s, group_id)
    require_member(s, group_id, current_user["id"])
    # recompute from the expense log rather than trusting the stored rows
    balances = refresh_group_balances(s, group_id)
    return GroupBalancesOut(
        group_id=group_id,
        members=list_members(s, group_id),
        balances=[asdict(b) for b in balances],
        summary=asdict(summarize(balances)),
        settlements=[asdict(t) for t in suggest_settlements(balances)],
    )

@router.get("/group/{group_id}/user/{user_id}", response_model=UserBalanceOut)
def user_balance(group_id: int, user_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    get_group_or_404(s, group_id)
    require_member(s, group_id, current_user["id"])
    if user_id not in group_member_ids(s, group_id):
        raise HTTPException(404, "User not found in group")

    rows = s.exec(
        select(Expense, ExpenseShare, User)
        .join(ExpenseShare, ExpenseShare.expense_id == Expense.id)
        .join(User, User.id == Expense.paid_by)
        .where(Expense.group_id == group_id, ExpenseShare.user_id == user_id)
        .order_by(Expense.created_at.desc(), Expense.id.desc())
    ).all()
    expenses = [
        UserExpenseOut(expense_id=e.id, title=e.title, amount=e.amount, paid_by=e.paid_by,
                       paid_by_username=payer.username, share_amount=sh.share_amount, created_at=e.created_at)
        for e, sh, payer in rows
    ]
    # same figures as the group view: expense totals, net shifted by payments
    mine = next(b for b in compute_group_balances(s, group_id) if b.user_id == user_id)
    return UserBalanceOut(
        user_id=user_id, group_id=group_id, expenses=expenses,
        balance=UserTotalsOut(total_paid=mine.total_paid, total_owed=mine.total_owed, net_balance=mine.net_balance),
    )

@router.get("/summary", response_model=BalanceSummaryOut)
def my_summary(current_user = Depends(require_user), s: Session = Depends(get_session)):
    stored = s.exec(select(Balance.net_balance).where(Balance.user_id == current_user["id"])).all()
    owed_to_you = sum((v for v in stored if v > 0), ZERO)
    you_owe = sum((v for v in stored if v < 0), ZERO)
    return BalanceSummaryOut(total_owed_to_you=owed_to_you, total_owed=abs(you_owe), net_balance=owed_to_you + you_owe)
