from fastapi import APIRouter, Request, Depends, HTTPException
from typing import List
from sqlalchemy import func
from sqlmodel import Session, select
from expense_splitter.config import DEFAULT_CURRENCY
from expense_splitter.db import get_session
from expense_splitter.models.balance import Balance
from expense_splitter.models.expense import Expense
from expense_splitter.models.group import ROLES, Group, GroupMember
from expense_splitter.models.user import User
from expense_splitter.schemas import GroupCreate, GroupListItem, GroupOut, MemberAdd, MemberOut, RoleUpdate
from expense_splitter.services.balance_store import refresh_group_balances
from expense_splitter.services.locks import group_lock
from expense_splitter.services.money import is_zero

router = APIRouter(prefix="/groups", tags=["groups"])

def require_user(request: Request):
    user = request.session.get("user")
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    return user

def get_group_or_404(s: Session, group_id: int) -> Group:
    group = s.get(Group, group_id)
    if not group:
        raise HTTPException(404, "Group not found")
    return group

def require_member(s: Session, group_id: int, user_id: int) -> GroupMember:
    gm = find_member(s, group_id, user_id)
    if not gm:
        raise HTTPException(403, "Access denied")
    return gm

def require_role(s: Session, group_id: int, user_id: int, roles, detail="Insufficient permissions") -> GroupMember:
    gm = require_member(s, group_id, user_id)
    if gm.role not in roles:
        raise HTTPException(403, detail)
    return gm

def find_member(s: Session, group_id: int, user_id: int):
    return s.exec(select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)).first()

def list_members(s: Session, group_id: int):
    rows = s.exec(
        select(User, GroupMember).join(GroupMember, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id).order_by(User.username)
    ).all()
    return [MemberOut(user_id=u.id, username=u.username, role=gm.role) for u, gm in rows]

def group_out(s: Session, g: Group) -> GroupOut:
    return GroupOut(**g.model_dump(), members=list_members(s, g.id))

@router.get("", response_model=List[GroupListItem])
def list_groups(current_user = Depends(require_user), s: Session = Depends(get_session)):
    uid = current_user["id"]
    rows = s.exec(
        select(Group, GroupMember.role, User.username)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .join(User, User.id == Group.created_by)
        .where(GroupMember.user_id == uid)
        .order_by(Group.created_at.desc(), Group.id.desc())
    ).all()
    groups = []
    for g, role, creator in rows:
        member_count = s.exec(select(func.count()).select_from(GroupMember).where(GroupMember.group_id == g.id)).one()
        expense_count = s.exec(select(func.count()).select_from(Expense).where(Expense.group_id == g.id)).one()
        mine = s.exec(select(Balance).where(Balance.group_id == g.id, Balance.user_id == uid)).first()
        groups.append(GroupListItem(
            id=g.id, name=g.name, description=g.description, currency=g.currency,
            created_by_username=creator, role=role, member_count=member_count, expense_count=expense_count,
            has_unpaid_balance=mine is not None and not is_zero(mine.net_balance),
        ))
    return groups

@router.post("", status_code=201, response_model=GroupOut)
def create_group(body: GroupCreate, current_user = Depends(require_user), s: Session = Depends(get_session)):
    if not body.name.strip():
        raise HTTPException(400, "Group name is required")
    g = Group(name=body.name.strip(), description=(body.description or "").strip() or None,
              currency=body.currency or DEFAULT_CURRENCY, created_by=current_user["id"])
    s.add(g); s.commit(); s.refresh(g)
    s.add(GroupMember(group_id=g.id, user_id=current_user["id"], role="owner")); s.commit()
    s.refresh(g)
    return group_out(s, g)

@router.get("/{group_id}", response_model=GroupOut)
def view_group(group_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    group = get_group_or_404(s, group_id)
    require_member(s, group_id, current_user["id"])
    return group_out(s, group)

@router.post("/{group_id}/members", status_code=201, response_model=MemberOut)
def add_member(group_id: int, body: MemberAdd, current_user = Depends(require_user), s: Session = Depends(get_session)):
    get_group_or_404(s, group_id)
    require_role(s, group_id, current_user["id"], ("owner", "admin"))
    user = None
    if body.user_id is not None:
        user = s.get(User, body.user_id)
        if not user:
            raise HTTPException(404, "User not found")
    elif body.email:
        user = s.exec(select(User).where(User.email == body.email)).first()
        if not user:
            raise HTTPException(404, "No user with that email")
    elif body.username:
        # ad-hoc member without an account
        user = s.exec(select(User).where(User.username == body.username)).first()
        if not user:
            user = User(username=body.username)
            s.add(user); s.commit(); s.refresh(user)
    else:
        raise HTTPException(400, "userId, email or username is required")

    gm = find_member(s, group_id, user.id)
    if not gm:
        gm = GroupMember(group_id=group_id, user_id=user.id)
        s.add(gm); s.commit(); s.refresh(gm)
    return MemberOut(user_id=user.id, username=user.username, role=gm.role)

@router.delete("/{group_id}/members/{member_id}")
def remove_member(group_id: int, member_id: int, current_user = Depends(require_user), s: Session = Depends(get_session)):
    get_group_or_404(s, group_id)
    require_role(s, group_id, current_user["id"], ("owner", "admin"))
    gm = find_member(s, group_id, member_id)
    if not gm:
        raise HTTPException(404, "Member not found")
    if gm.role == "owner":
        raise HTTPException(400, "Cannot remove group owner")
    with group_lock(group_id):
        # past expenses stay; the member's paid and owed amounts drop out of the group view
        stale = s.exec(select(Balance).where(Balance.group_id == group_id, Balance.user_id == member_id)).first()
        if stale:
            s.delete(stale)
        s.delete(gm)
        s.commit()
        refresh_group_balances(s, group_id)
    return {"message": "Member removed successfully"}

@router.patch("/{group_id}/members/{member_id}/role")
def update_role(group_id: int, member_id: int, body: RoleUpdate, current_user = Depends(require_user), s: Session = Depends(get_session)):
    if body.role not in ROLES:
        raise HTTPException(400, "Invalid role")
    get_group_or_404(s, group_id)
    require_role(s, group_id, current_user["id"], ("owner",), "Only group owner can change roles")
    gm = find_member(s, group_id, member_id)
    if not gm:
        raise HTTPException(404, "Member not found")
    gm.role = body.role
    s.add(gm); s.commit()
    return {"message": "Role updated successfully"}
