"""
GroupSession - sequences mutations against a GroupStore.

Policy: compute the new state from the latest committed one, await the
matching store write, and only then commit. A failed write leaves the
committed state untouched and the error goes to the caller. Mutations on
one session run one at a time, and with reload_after_write the group is
re-fetched after every write so the session never drifts from the store.
"""

import asyncio
import logging
from typing import Optional

from piinty.core.config import settings
from piinty.models.base import utcnow
from piinty.models.pint import DebtEntry, GroupState
from piinty.repositories.base import GroupStore
from piinty.services import group_service
from piinty.utils.group_validation import (
    EntryDeletionNotAllowedError,
    MemberNotFoundError,
    validate_note,
)
from piinty.utils.migration import state_from_payload

logger = logging.getLogger(__name__)


class GroupSession:
    def __init__(
        self,
        store: GroupStore,
        group_id: str,
        reload_after_write: Optional[bool] = None,
    ):
        self.store = store
        self.group_id = group_id
        self.reload_after_write = (
            settings.RELOAD_AFTER_WRITE if reload_after_write is None else reload_after_write
        )
        self._state: Optional[GroupState] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> GroupState:
        if self._state is None:
            raise RuntimeError("Group session used before load()")
        return self._state

    async def _fetch(self) -> GroupState:
        payload = await self.store.fetch_group(self.group_id)
        return state_from_payload(payload)

    async def load(self) -> GroupState:
        async with self._lock:
            self._state = await self._fetch()
            return self._state

    async def _commit(self, new_state: GroupState) -> GroupState:
        if self.reload_after_write:
            new_state = await self._fetch()
        self._state = new_state
        return new_state

    def _require_member(self, member_id: str) -> None:
        if not self.state.has_member(member_id):
            raise MemberNotFoundError(f"{member_id} is not in this group")

    async def add_entry(
        self,
        debtor: str,
        creditor: str,
        note: Optional[str] = "",
        photo_ref: Optional[str] = None,
    ) -> GroupState:
        async with self._lock:
            self._require_member(debtor)
            self._require_member(creditor)
            entry = DebtEntry(
                note=validate_note(note),
                created_at=utcnow(),
                paid=False,
                photo_ref=photo_ref or None,
            )
            stored = await self.store.insert_entry(self.group_id, debtor, creditor, entry)
            new_state = group_service.add_entry(
                self.state,
                debtor,
                creditor,
                note=stored.note,
                photo_ref=stored.photo_ref,
                now=stored.created_at,
                entry_id=stored.id,
            )
            logger.info(f"Pint added in {self.group_id}: {debtor} owes {creditor}")
            return await self._commit(new_state)

    async def _write_paid(self, debtor: str, creditor: str, index: int, paid: bool) -> GroupState:
        state = self.state
        new_state = group_service.set_paid(state, debtor, creditor, paid, index=index)
        if new_state is state:
            return state

        entry = state.bucket(debtor, creditor)[index]
        await self.store.update_entry_paid(self.group_id, debtor, creditor, index, entry, paid)
        logger.info(
            f"Pint {debtor}->{creditor} #{index} in {self.group_id} marked "
            f"{'paid' if paid else 'unpaid'}"
        )
        return await self._commit(new_state)

    async def set_paid(self, debtor: str, creditor: str, index: int, paid: bool) -> GroupState:
        """Unknown index: nothing to do, the current state comes back."""
        async with self._lock:
            return await self._write_paid(debtor, creditor, index, paid)

    async def clear_most_recent_unpaid(self, debtor: str, creditor: str) -> GroupState:
        async with self._lock:
            index = group_service.most_recent_unpaid_index(self.state, debtor, creditor)
            if index is None:
                return self.state
            return await self._write_paid(debtor, creditor, index, True)

    async def remove_entry(self, debtor: str, creditor: str, index: int) -> GroupState:
        async with self._lock:
            if not self.store.supports_entry_deletion:
                raise EntryDeletionNotAllowedError(
                    "Pints are kept for history; mark it paid instead"
                )
            state = self.state
            new_state = group_service.remove_entry(state, debtor, creditor, index)
            entry = state.bucket(debtor, creditor)[index]
            await self.store.delete_entry(self.group_id, debtor, creditor, index, entry)
            logger.info(f"Pint {debtor}->{creditor} #{index} removed from {self.group_id}")
            return await self._commit(new_state)

    async def add_member(self, identifier: str) -> GroupState:
        async with self._lock:
            member = await self.store.resolve_member(identifier)
            state = self.state
            new_state = group_service.add_member(state, member)
            if new_state is state:
                return state
            await self.store.insert_member(self.group_id, member)
            logger.info(f"{member.label} joined {self.group_id}")
            return await self._commit(new_state)

    async def remove_member(self, member_id: str) -> GroupState:
        async with self._lock:
            new_state = group_service.remove_member(self.state, member_id)
            await self.store.delete_member(self.group_id, member_id)
            logger.info(f"{member_id} left {self.group_id}")
            return await self._commit(new_state)

    async def rename(self, name: str) -> GroupState:
        async with self._lock:
            new_state = group_service.rename_group(self.state, name)
            await self.store.update_group_name(self.group_id, new_state.name)
            logger.info(f"Group {self.group_id} renamed to {new_state.name!r}")
            return await self._commit(new_state)
