# expense_splitter/services/split_service.py
"""Validation of a proposed expense split.

Shares are rounded to cents. Whatever rounding leaves over (the residual) is
put on one member so the shares of an expense always add up to its amount:
the payer when the payer takes part, otherwise the first member listed.
100.00 split three ways with the first member paying gives 33.34, 33.33,
33.33. A negative residual that is larger than that member's share is taken
from the following members in order, so no share drops below zero.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from expense_splitter.errors import EmptyMemberSet, InvalidAmount, InvalidMember, SplitMismatch
from expense_splitter.services.money import ZERO, TOLERANCE, to_money

@dataclass(frozen=True)
class Split:
    user_id: int
    amount: Decimal

def _unique(ids: Iterable[int]) -> List[int]:
    seen = set()
    out = []
    for uid in ids:
        if uid not in seen:
            seen.add(uid)
            out.append(uid)
    return out

def _absorb_residual(shares: Dict[int, Decimal], residual: Decimal, paid_by: Optional[int]) -> None:
    order = list(shares)
    if paid_by in shares:
        order.remove(paid_by)
        order.insert(0, paid_by)
    if residual >= 0:
        shares[order[0]] += residual
        return
    owed = -residual
    for uid in order:
        if owed <= 0:
            break
        take = min(shares[uid], owed)
        shares[uid] -= take
        owed -= take

def equal_split(total: Decimal, member_ids: Sequence[int], paid_by: Optional[int] = None) -> Dict[int, Decimal]:
    per_share = to_money(total / len(member_ids))
    shares = {uid: per_share for uid in member_ids}
    _absorb_residual(shares, total - per_share * len(member_ids), paid_by)
    return shares

def validate_split(
    total_amount,
    member_ids: Sequence[int],
    group_member_ids: Iterable[int],
    splits: Optional[Iterable[Split]] = None,
    paid_by: Optional[int] = None,
) -> Dict[int, Decimal]:
    """Check a proposed expense and return the share of every participant.

    ``splits`` of ``None`` means an equal split among ``member_ids``.
    Otherwise each entry carries a ``user_id`` and an ``amount``; members
    without an entry owe nothing and repeated entries for one user add up.
    Raises ``InvalidAmount``, ``EmptyMemberSet``, ``InvalidMember`` or
    ``SplitMismatch``. Nothing is written.
    """
    total = to_money(total_amount)
    if total <= 0:
        raise InvalidAmount("Amount must be greater than 0")

    members = _unique(member_ids)
    if not members:
        raise EmptyMemberSet("At least one member must be selected")

    allowed = set(group_member_ids)
    for uid in members:
        if uid not in allowed:
            raise InvalidMember(f"User {uid} is not a member of this group")

    if splits is None:
        return equal_split(total, members, paid_by)

    raw_sum = Decimal(0)
    shares = {uid: ZERO for uid in members}
    for split in splits:
        if split.user_id not in shares:
            raise InvalidMember(f"Split includes user {split.user_id} who is not part of this expense")
        amount = split.amount if isinstance(split.amount, Decimal) else Decimal(str(split.amount))
        if amount < 0:
            raise InvalidAmount("Split amounts cannot be negative")
        raw_sum += amount
        shares[split.user_id] += to_money(amount)

    if abs(raw_sum - total) > TOLERANCE:
        raise SplitMismatch(f"Sum of splits ({raw_sum}) must equal total amount ({total})")

    _absorb_residual(shares, total - sum(shares.values()), paid_by)
    return shares
