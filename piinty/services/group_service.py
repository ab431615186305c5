"""
Group mutations as pure transforms.

Every operation takes the current GroupState and returns a new one; the
input is never modified. Persisting or broadcasting the result is up to
the caller (see session_service).
"""

import bisect
import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple, Union

from piinty.models.base import utcnow
from piinty.models.pint import DebtEntry, GroupState, Ledger, Member
from piinty.utils.group_validation import (
    MIN_GROUP_MEMBERS,
    EntryNotFoundError,
    MemberNotFoundError,
    MinimumMembersError,
    validate_group_name,
    validate_member_id,
    validate_note,
)

logger = logging.getLogger(__name__)


def _as_member(member: Union[Member, str]) -> Member:
    if isinstance(member, Member):
        return member.model_copy(update={"id": validate_member_id(member.id)})
    return Member(id=validate_member_id(member))


def _with_bucket(
    state: GroupState, debtor: str, creditor: str, entries: Tuple[DebtEntry, ...]
) -> GroupState:
    ledger: Ledger = dict(state.ledger)
    if entries:
        ledger[(debtor, creditor)] = entries
    else:
        ledger.pop((debtor, creditor), None)
    return state.model_copy(update={"ledger": ledger})


def create_group(name: str, members: Iterable[Union[Member, str]] = ()) -> GroupState:
    """New group with a validated name; duplicate members are skipped."""
    state = GroupState(name=validate_group_name(name))
    for member in members:
        state = add_member(state, member)
    return state


def add_entry(
    state: GroupState,
    debtor: str,
    creditor: str,
    note: Optional[str] = "",
    photo_ref: Optional[str] = None,
    now: Optional[datetime] = None,
    entry_id: Optional[str] = None,
) -> GroupState:
    """
    Record that debtor owes creditor a pint.

    debtor == creditor is accepted; clients are expected to prevent it.
    The new entry lands after every entry with the same or an earlier
    created_at, so the bucket stays ordered.
    """
    entry = DebtEntry(
        id=entry_id,
        note=validate_note(note),
        created_at=now or utcnow(),
        paid=False,
        photo_ref=photo_ref or None,
    )
    bucket = state.bucket(debtor, creditor)
    position = bisect.bisect_right([e.created_at for e in bucket], entry.created_at)
    logger.debug(f"Adding pint {debtor}->{creditor} at position {position}")
    return _with_bucket(state, debtor, creditor, bucket[:position] + (entry,) + bucket[position:])


def find_entry_index(
    state: GroupState, debtor: str, creditor: str, entry_id: str
) -> Optional[int]:
    for index, entry in enumerate(state.bucket(debtor, creditor)):
        if entry.id is not None and entry.id == entry_id:
            return index
    return None


def _resolve_index(
    state: GroupState,
    debtor: str,
    creditor: str,
    index: Optional[int],
    entry_id: Optional[str],
) -> Optional[int]:
    if (index is None) == (entry_id is None):
        raise ValueError("Pass exactly one of index or entry_id")
    if entry_id is not None:
        return find_entry_index(state, debtor, creditor, entry_id)
    if 0 <= index < len(state.bucket(debtor, creditor)):
        return index
    return None


def set_paid(
    state: GroupState,
    debtor: str,
    creditor: str,
    paid: bool,
    index: Optional[int] = None,
    entry_id: Optional[str] = None,
) -> GroupState:
    """
    Set the paid flag of one entry, addressed by index or entry id.

    An unknown index or id is a no-op: the same state is returned.
    """
    position = _resolve_index(state, debtor, creditor, index, entry_id)
    if position is None:
        return state

    bucket = state.bucket(debtor, creditor)
    if bucket[position].paid == paid:
        return state
    updated = bucket[position].model_copy(update={"paid": paid})
    return _with_bucket(
        state, debtor, creditor, bucket[:position] + (updated,) + bucket[position + 1:]
    )


def most_recent_unpaid_index(state: GroupState, debtor: str, creditor: str) -> Optional[int]:
    """Index of the unpaid entry with the latest created_at; later position wins ties."""
    bucket = state.bucket(debtor, creditor)
    found = None
    for index, entry in enumerate(bucket):
        if not entry.paid and (found is None or entry.created_at >= bucket[found].created_at):
            found = index
    return found


def clear_most_recent_unpaid(state: GroupState, debtor: str, creditor: str) -> GroupState:
    """Mark the most recent unpaid pint paid; no-op when none is unpaid."""
    index = most_recent_unpaid_index(state, debtor, creditor)
    if index is None:
        return state
    return set_paid(state, debtor, creditor, True, index=index)


def remove_entry(state: GroupState, debtor: str, creditor: str, index: int) -> GroupState:
    """Delete one entry; an empty bucket is dropped from the ledger."""
    bucket = state.bucket(debtor, creditor)
    if not 0 <= index < len(bucket):
        raise EntryNotFoundError(f"No pint #{index} from {debtor} to {creditor}")
    return _with_bucket(state, debtor, creditor, bucket[:index] + bucket[index + 1:])


def add_member(state: GroupState, member: Union[Member, str]) -> GroupState:
    """Append a member; adding someone already present is a no-op."""
    new_member = _as_member(member)
    if state.has_member(new_member.id):
        return state
    return state.model_copy(update={"members": state.members + (new_member,)})


def remove_member(state: GroupState, member_id: str) -> GroupState:
    """
    Remove a member and every bucket where they are debtor or creditor.

    Raises MemberNotFoundError for someone not in the group and
    MinimumMembersError when fewer than MIN_GROUP_MEMBERS would remain.
    """
    if not state.has_member(member_id):
        raise MemberNotFoundError(f"{member_id} is not in this group")
    if len(state.members) - 1 < MIN_GROUP_MEMBERS:
        raise MinimumMembersError(f"Need at least {MIN_GROUP_MEMBERS} members")

    ledger: Ledger = {
        (debtor, creditor): entries
        for (debtor, creditor), entries in state.ledger.items()
        if member_id not in (debtor, creditor)
    }
    members = tuple(member for member in state.members if member.id != member_id)
    return state.model_copy(update={"members": members, "ledger": ledger})


def rename_group(state: GroupState, name: str) -> GroupState:
    return state.model_copy(update={"name": validate_group_name(name)})


def set_member_avatar(state: GroupState, member_id: str, avatar_url: Optional[str]) -> GroupState:
    """Point a member's avatar at a stored image; unchanged URL is a no-op."""
    if not state.has_member(member_id):
        raise MemberNotFoundError(f"{member_id} is not in this group")
    members = tuple(
        member.model_copy(update={"avatar_url": avatar_url}) if member.id == member_id else member
        for member in state.members
    )
    if members == state.members:
        return state
    return state.model_copy(update={"members": members})
