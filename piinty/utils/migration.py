"""
Migration of persisted pint data into the current ledger shape.

Two persisted shapes exist per "debtor->creditor" key:
- legacy: a plain count of pints, no per-pint data
- current: a list of pint entries

Each stored value is classified once into LegacyCount, EntrySequence or
Unrecognized, then migrated. Unrecognized data never raises: the bucket
degrades to "no pints recorded".
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from piinty.models.base import utcnow
from piinty.models.pint import (
    DebtEntry,
    GroupState,
    Ledger,
    Member,
    pair_key,
    split_pair_key,
)

logger = logging.getLogger(__name__)

# Larger stored counts are treated as corrupt rather than expanded
MAX_LEGACY_COUNT = 10_000


@dataclass(frozen=True)
class LegacyCount:
    count: int


@dataclass(frozen=True)
class EntrySequence:
    items: Sequence[Any]


@dataclass(frozen=True)
class Unrecognized:
    value: Any


BucketShape = Union[LegacyCount, EntrySequence, Unrecognized]


def classify_bucket(value: Any) -> BucketShape:
    """Decide which persisted shape a stored bucket value has."""
    if isinstance(value, bool):
        return Unrecognized(value)
    if isinstance(value, Real):
        try:
            number = float(value)
        except OverflowError:
            number = math.inf
        if math.isfinite(number) and 0 <= number <= MAX_LEGACY_COUNT:
            return LegacyCount(int(math.floor(number)))
        if math.isfinite(number) and number > MAX_LEGACY_COUNT:
            logger.warning(f"Legacy pint count {value} exceeds {MAX_LEGACY_COUNT}, ignoring it")
        return Unrecognized(value)
    if isinstance(value, (list, tuple)):
        return EntrySequence(value)
    return Unrecognized(value)


def _created_at_from_raw(value: Any, now: datetime) -> Any:
    if value is None:
        return now
    # Local storage kept Date.now() style epoch milliseconds
    if isinstance(value, Real) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
    return value


def _first_present(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if data.get(name) is not None:
            return data[name]
    return None


def entry_from_raw(item: Any, now: datetime) -> Optional[DebtEntry]:
    """Build a DebtEntry from one stored element, or None if it is unusable."""
    if isinstance(item, DebtEntry):
        return item
    if not isinstance(item, Mapping):
        logger.warning(f"Dropping pint entry of unexpected type {type(item).__name__}")
        return None

    entry_id = _first_present(item, "id", "_id")
    note = item.get("note")
    paid = item.get("paid")
    try:
        return DebtEntry(
            id=str(entry_id) if entry_id is not None else None,
            note=note if note is not None else "",
            created_at=_created_at_from_raw(
                _first_present(item, "created_at", "createdAt", "timestamp"), now
            ),
            paid=paid if paid is not None else False,
            photo_ref=_first_present(item, "photo_ref", "photoRef", "photo"),
        )
    except (ValidationError, OverflowError, OSError, ValueError) as exc:
        logger.warning(f"Dropping malformed pint entry: {exc}")
        return None


def migrate_bucket(value: Any, now: Optional[datetime] = None) -> List[DebtEntry]:
    """Migrate one stored bucket value into entries ordered by created_at."""
    now = now or utcnow()
    shape = classify_bucket(value)

    if isinstance(shape, LegacyCount):
        # The legacy format had no per-pint time, so they all share one
        return [DebtEntry(note="", created_at=now, paid=False) for _ in range(shape.count)]

    if isinstance(shape, EntrySequence):
        entries = [entry_from_raw(item, now) for item in shape.items]
        return sorted(
            (entry for entry in entries if entry is not None),
            key=lambda entry: entry.created_at,
        )

    if isinstance(shape, Unrecognized):
        logger.warning(
            f"Unrecognized pint bucket of type {type(shape.value).__name__}, treating as empty"
        )
        return []

    raise TypeError(f"Unhandled bucket shape: {shape!r}")


def migrate_ledger(raw: Any, now: Optional[datetime] = None) -> Ledger:
    """Migrate a stored {"debtor->creditor": value} mapping into a Ledger."""
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        logger.warning(f"Unrecognized ledger of type {type(raw).__name__}, treating as empty")
        return {}

    now = now or utcnow()
    ledger: Ledger = {}
    for key, value in raw.items():
        pair = key if isinstance(key, tuple) and len(key) == 2 else split_pair_key(key)
        if pair is None:
            logger.warning(f"Dropping pint bucket with unparseable key {key!r}")
            continue
        ledger[pair] = tuple(migrate_bucket(value, now))
    return ledger


def dump_entry(entry: DebtEntry) -> Dict[str, Any]:
    return entry.model_dump(mode="json", exclude_none=True)


def dump_ledger(ledger: Ledger) -> Dict[str, List[Dict[str, Any]]]:
    """JSON-ready form of a ledger, keyed by "debtor->creditor"."""
    return {
        pair_key(debtor, creditor): [dump_entry(entry) for entry in entries]
        for (debtor, creditor), entries in ledger.items()
    }


def member_from_raw(item: Any) -> Optional[Member]:
    if isinstance(item, Member):
        return item
    if isinstance(item, str):
        return Member(id=item.strip()) if item.strip() else None
    if isinstance(item, Mapping):
        member_id = _first_present(item, "id", "_id", "name", "display_name")
        if member_id is None or not str(member_id).strip():
            return None
        return Member(
            id=str(member_id).strip(),
            display_name=_first_present(item, "display_name", "displayName"),
            avatar_url=_first_present(item, "avatar_url", "avatarUrl"),
        )
    logger.warning(f"Dropping member of unexpected type {type(item).__name__}")
    return None


def state_from_payload(payload: Mapping[str, Any], now: Optional[datetime] = None) -> GroupState:
    """
    Build a GroupState from a whole stored group.

    Accepts both the local storage shape ({groupName, members, pints}) and
    the backend shape ({name, members, ledger}).
    """
    members: List[Member] = []
    seen = set()
    for item in payload.get("members") or []:
        member = member_from_raw(item)
        if member is not None and member.id not in seen:
            seen.add(member.id)
            members.append(member)

    raw_ledger = payload.get("pints")
    if raw_ledger is None:
        raw_ledger = payload.get("ledger")

    return GroupState(
        name=str(_first_present(payload, "name", "groupName") or ""),
        members=tuple(members),
        ledger=migrate_ledger(raw_ledger, now),
    )


def state_to_payload(state: GroupState) -> Dict[str, Any]:
    """Inverse of state_from_payload, in the local storage shape."""
    members: List[Any] = []
    for member in state.members:
        if member.display_name is None and member.avatar_url is None:
            members.append(member.id)
        else:
            members.append(member.model_dump(exclude_none=True))
    return {
        "groupName": state.name,
        "members": members,
        "pints": dump_ledger(state.ledger),
    }
