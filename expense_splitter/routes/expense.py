from fastapi import APIRouter, Depends, HTTPException
from typing import List
from sqlmodel import Session, select
from expense_splitter.db import get_session
from expense_splitter.errors import LedgerError
from expense_splitter.models.expense import Expense
from expense_splitter.models.group import Group, GroupMember
from expense_splitter.models.user import User
from expense_splitter.routes.group import require_user, require_member, get_group_or_404
from expense_splitter.schemas import ExpenseCreate, ExpenseOut, ExpenseUpdate, RecentExpenseOut, ShareOut
from expense_splitter.services import expense_service
from expense_splitter.services.split_service import Split

router = APIRouter(prefix="/expenses", tags=["expenses"])

def expense_out(e: Expense, shares) -> ExpenseOut:
    return ExpenseOut(**e.model_dump(), shares=[ShareOut(user_id=sh.user_id, share_amount=sh.share_amount) for sh in shares])

def to_splits(splits):
    if splits is None:
        return None
    return [Split(user_id=sp.user_id, amount=sp.amount) for sp in splits]

def get_expense_or_404(s: Session, expense_id: int) -> Expense:
    e = s.get(Expense, expense_id)
    if not e:
        raise HTTPException(404, "Expense not found")
    return e

def require_editor(s: Session, e: Expense, user_id: int) -> None:
    gm = require_member(s, e.group_id, user_id)
    if e.paid_by != user_id and gm.role != "owner":
        raise HTTPException(403, "Only the payer or the group owner can change this expense")

@router.post("", status_code=201, response_model=ExpenseOut)
def add_expense(body: ExpenseCreate, current_user = Depends(require_user), s: Session = Depends(get_session)):
    if not body.title.strip():
        raise HTTPException(400, "Title is required")
    get_group_or_404(s, body.group_id)
    require_member(s, body.group_id, current_user["id"])
    try:
        e, shares = expense_service.create_expense(
            s, body.group_id, current_user["id"], body.title, body.amount, body.member_ids,
            to_splits(body.splits), body.description, body.currency,
        )
    except LedgerError as err:
        raise HTTPException(err.status_code, str(err))
    return expense_out(e, shares)

@router.get("/group/{group_id}", response_model=List[ExpenseOut])
def list_group_expenses(group_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    get_group_or_404(s, group_id)
    require_member(s, group_id, current_user["id"])
    expenses = s.exec(select(Expense).where(Expense.group_id == group_id).order_by(Expense.created_at.desc(), Expense.id.desc())).all()
    return [expense_out(e, expense_service.get_shares(s, e.id)) for e in expenses]

@router.get("/recent", response_model=List[RecentExpenseOut])
def recent_expenses(limit: int = 10, current_user = Depends(require_user), s: Session = Depends(get_session)):
    rows = s.exec(
        select(Expense, User.username, Group.name)
        .join(GroupMember, GroupMember.group_id == Expense.group_id)
        .join(User, User.id == Expense.paid_by)
        .join(Group, Group.id == Expense.group_id)
        .where(GroupMember.user_id == current_user["id"])
        .order_by(Expense.created_at.desc(), Expense.id.desc())
        .limit(max(1, min(limit, 50)))
    ).all()
    return [
        RecentExpenseOut(**expense_out(e, expense_service.get_shares(s, e.id)).model_dump(), paid_by_username=payer, group_name=group)
        for e, payer, group in rows
    ]

@router.get("/{expense_id}", response_model=ExpenseOut)
def get_expense(expense_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    e = get_expense_or_404(s, expense_id)
    require_member(s, e.group_id, current_user["id"])
    return expense_out(e, expense_service.get_shares(s, e.id))

@router.put("/{expense_id}", response_model=ExpenseOut)
def edit_expense(expense_id: int, body: ExpenseUpdate, current_user = Depends(require_user), s: Session = Depends(get_session)):
    e = get_expense_or_404(s, expense_id)
    require_editor(s, e, current_user["id"])
    if body.title is not None and not body.title.strip():
        raise HTTPException(400, "Title cannot be empty")
    try:
        e, shares = expense_service.update_expense(
            s, e, body.title, body.amount, body.member_ids, to_splits(body.splits), body.description,
        )
    except LedgerError as err:
        raise HTTPException(err.status_code, str(err))
    return expense_out(e, shares)

@router.delete("/{expense_id}")
def delete_expense(expense_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    e = get_expense_or_404(s, expense_id)
    require_editor(s, e, current_user["id"])
    try:
        expense_service.delete_expense(s, e)
    except LedgerError as err:
        raise HTTPException(err.status_code, str(err))
    return {"message": "Expense deleted successfully"}
