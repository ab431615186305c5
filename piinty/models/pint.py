"""
Pint ledger model - who owes whom a pint.

Design principles:
- A bucket is the ordered run of entries for one directed (debtor, creditor) pair
- (A, B) and (B, A) are separate buckets and are never netted
- Buckets are ordered by created_at ascending
- Everything here is immutable: mutations build a new GroupState
"""

from datetime import datetime
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from piinty.models.base import as_utc, utcnow


PAIR_SEPARATOR = "->"

PairKey = Tuple[str, str]


class DebtEntry(BaseModel):
    """
    One recorded pint: the bucket's debtor owes its creditor a pint.

    Invariants:
    - paid is False at creation
    - created_at is timezone-aware UTC
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Stable id when backed by MongoDB, None for local entries
    id: Optional[str] = None

    note: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    paid: bool = False
    photo_ref: Optional[str] = None  # URL or data: URI

    @field_validator("created_at")
    @classmethod
    def _normalize_created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


Ledger = Dict[PairKey, Tuple[DebtEntry, ...]]


class Member(BaseModel):
    """A group member, identified by a name (local) or profile id (backend)."""
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.id


class GroupState(BaseModel):
    """Aggregate root: group name, ordered members and the ledger."""
    model_config = ConfigDict(frozen=True)

    name: str
    members: Tuple[Member, ...] = ()
    ledger: Ledger = Field(default_factory=dict)

    @property
    def member_ids(self) -> Tuple[str, ...]:
        return tuple(member.id for member in self.members)

    def has_member(self, member_id: str) -> bool:
        return member_id in self.member_ids

    def bucket(self, debtor: str, creditor: str) -> Tuple[DebtEntry, ...]:
        return self.ledger.get((debtor, creditor), ())


class GroupSummary(BaseModel):
    """A group as listed on the groups page."""
    id: str
    name: str
    created_at: Optional[datetime] = None


def pair_key(debtor: str, creditor: str) -> str:
    """Persisted key of a bucket, e.g. "Alice->Bob"."""
    return f"{debtor}{PAIR_SEPARATOR}{creditor}"


def split_pair_key(key: str) -> Optional[PairKey]:
    """Inverse of pair_key; None when the key is not a debtor->creditor pair."""
    if not isinstance(key, str):
        return None
    debtor, separator, creditor = key.partition(PAIR_SEPARATOR)
    if not separator or not debtor or not creditor:
        return None
    return debtor, creditor
