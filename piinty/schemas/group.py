"""Group, member and ledger view schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from piinty.schemas.pint import BucketResponse


class GroupCreate(BaseModel):
    name: str


class GroupRename(BaseModel):
    name: str


class MemberAdd(BaseModel):
    """Add a member by phone number, profile id or (local mode) name."""
    identifier: str


class MemberResponse(BaseModel):
    id: str
    display_name: str
    avatar_url: Optional[str] = None


class MatrixCellResponse(BaseModel):
    debtor: str
    creditor: str
    unpaid: Optional[int] = None  # null on the diagonal


class TallyResponse(BaseModel):
    member_id: str
    display_name: str
    owes: int
    owed: int


class StandingResponse(BaseModel):
    member_id: str
    display_name: str
    count: int


class LeaderboardResponse(BaseModel):
    king: StandingResponse
    clown: StandingResponse


class GroupSummaryResponse(BaseModel):
    id: str
    name: str
    created_at: Optional[datetime] = None


class GroupResponse(BaseModel):
    """A group with every derived view the group page shows."""
    id: str
    name: str
    members: List[MemberResponse]
    buckets: List[BucketResponse]
    matrix: List[List[MatrixCellResponse]]
    tallies: List[TallyResponse]
    top_debtors: List[TallyResponse]
    top_creditors: List[TallyResponse]
    leaderboard: Optional[LeaderboardResponse] = None
