from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from piinty.core.auth import get_current_member
from piinty.db.session import get_group_store
from piinty.models.pint import DebtEntry, GroupState, Member
from piinty.repositories.base import GroupStore
from piinty.schemas.group import (
    GroupCreate,
    GroupRename,
    GroupResponse,
    GroupSummaryResponse,
    LeaderboardResponse,
    MatrixCellResponse,
    MemberAdd,
    MemberResponse,
    StandingResponse,
    TallyResponse,
)
from piinty.schemas.pint import BucketResponse, PintCreate, PintEntryResponse, PintPaidUpdate
from piinty.services import group_service
from piinty.services.ledger_service import BucketHistory, LedgerService, MemberTally, Standing
from piinty.services.session_service import GroupSession
from piinty.utils.group_validation import (
    EntryDeletionNotAllowedError,
    EntryNotFoundError,
    GroupNotFoundError,
    GroupOperationError,
    MemberNotFoundError,
    MinimumMembersError,
)

router = APIRouter()


def _http_error(exc: GroupOperationError) -> HTTPException:
    """Map a refused group operation onto an HTTP error."""
    if isinstance(exc, (GroupNotFoundError, MemberNotFoundError, EntryNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (MinimumMembersError, EntryDeletionNotAllowedError)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


def _member_response(member: Member) -> MemberResponse:
    return MemberResponse(id=member.id, display_name=member.label, avatar_url=member.avatar_url)


def _entry_response(entry: DebtEntry) -> PintEntryResponse:
    return PintEntryResponse(
        id=entry.id,
        note=entry.note,
        created_at=entry.created_at,
        paid=entry.paid,
        photo_ref=entry.photo_ref,
    )


def _bucket_response(history: BucketHistory) -> BucketResponse:
    return BucketResponse(
        debtor=history.debtor,
        creditor=history.creditor,
        entries=[_entry_response(entry) for entry in history.entries],
        unpaid_count=history.unpaid_count,
        paid_count=history.paid_count,
    )


def _tally_response(tally: MemberTally) -> TallyResponse:
    return TallyResponse(
        member_id=tally.member.id,
        display_name=tally.member.label,
        owes=tally.owes,
        owed=tally.owed,
    )


def _standing_response(standing: Standing) -> StandingResponse:
    return StandingResponse(
        member_id=standing.member.id,
        display_name=standing.member.label,
        count=standing.count,
    )


def _to_group_response(group_id: str, state: GroupState) -> GroupResponse:
    """Convert GroupState and its derived views to GroupResponse."""
    summary = LedgerService.summarize(state)
    return GroupResponse(
        id=group_id,
        name=state.name,
        members=[_member_response(m) for m in state.members],
        buckets=[
            _bucket_response(LedgerService.history(state, debtor, creditor))
            for debtor, creditor in state.ledger
        ],
        matrix=[
            [
                MatrixCellResponse(debtor=cell.debtor, creditor=cell.creditor, unpaid=cell.unpaid)
                for cell in row
            ]
            for row in summary.matrix
        ],
        tallies=[_tally_response(t) for t in summary.tallies],
        top_debtors=[_tally_response(t) for t in summary.top_debtors],
        top_creditors=[_tally_response(t) for t in summary.top_creditors],
        leaderboard=LeaderboardResponse(
            king=_standing_response(summary.leaderboard.king),
            clown=_standing_response(summary.leaderboard.clown),
        ) if summary.leaderboard else None,
    )


async def _open_session(group_id: str, store: GroupStore, member_id: str) -> GroupSession:
    """Load a group the caller belongs to; anyone else gets a 404."""
    session = GroupSession(store, group_id)
    try:
        state = await session.load()
    except GroupNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    if not state.has_member(member_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Group not found")
    return session


@router.get("/", response_model=List[GroupSummaryResponse])
async def list_groups(
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """List the groups the caller belongs to"""
    try:
        groups = await store.list_groups(member_id)
    except GroupOperationError as exc:
        raise _http_error(exc)
    return [GroupSummaryResponse(id=g.id, name=g.name, created_at=g.created_at) for g in groups]


@router.post("/", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_in: GroupCreate,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Create a group with the caller as first member"""
    try:
        state = group_service.create_group(group_in.name, [member_id])
        group_id = await store.create_group(state.name, state.members[0])
    except GroupOperationError as exc:
        raise _http_error(exc)

    session = await _open_session(group_id, store, member_id)
    return _to_group_response(group_id, session.state)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Get a group with its matrix, tallies and leaderboard"""
    session = await _open_session(group_id, store, member_id)
    return _to_group_response(group_id, session.state)


@router.patch("/{group_id}", response_model=GroupResponse)
async def rename_group(
    group_id: str,
    payload: GroupRename,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.rename(payload.name)
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)


@router.post("/{group_id}/members", response_model=GroupResponse)
async def add_member(
    group_id: str,
    payload: MemberAdd,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.add_member(payload.identifier.strip())
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)


@router.delete("/{group_id}/members/{removed_id}", response_model=GroupResponse)
async def remove_member(
    group_id: str,
    removed_id: str,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Remove a member and every pint they owe or are owed"""
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.remove_member(removed_id)
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)


@router.get("/{group_id}/pints/{debtor}/{creditor}", response_model=BucketResponse)
async def get_pint_history(
    group_id: str,
    debtor: str,
    creditor: str,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Every pint debtor owes creditor, oldest first"""
    session = await _open_session(group_id, store, member_id)
    return _bucket_response(LedgerService.history(session.state, debtor, creditor))


@router.post("/{group_id}/pints", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def add_pint(
    group_id: str,
    payload: PintCreate,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    if payload.debtor == payload.creditor:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A member cannot owe themselves a pint"
        )
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.add_entry(
            payload.debtor, payload.creditor, payload.note, payload.photo_ref
        )
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)


@router.post("/{group_id}/pints/{debtor}/{creditor}/clear", response_model=GroupResponse)
async def clear_pint(
    group_id: str,
    debtor: str,
    creditor: str,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Mark the most recent unpaid pint as paid"""
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.clear_most_recent_unpaid(debtor, creditor)
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)


@router.patch("/{group_id}/pints/{debtor}/{creditor}/{index}", response_model=GroupResponse)
async def set_pint_paid(
    group_id: str,
    debtor: str,
    creditor: str,
    index: int,
    payload: PintPaidUpdate,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Mark one pint paid or unpaid; an unknown index changes nothing"""
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.set_paid(debtor, creditor, index, payload.paid)
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)


@router.delete("/{group_id}/pints/{debtor}/{creditor}/{index}", response_model=GroupResponse)
async def remove_pint(
    group_id: str,
    debtor: str,
    creditor: str,
    index: int,
    member_id: str = Depends(get_current_member),
    store: GroupStore = Depends(get_group_store)
):
    """Delete a pint from the history (local storage only)"""
    session = await _open_session(group_id, store, member_id)
    try:
        state = await session.remove_entry(debtor, creditor, index)
    except GroupOperationError as exc:
        raise _http_error(exc)
    return _to_group_response(group_id, state)
