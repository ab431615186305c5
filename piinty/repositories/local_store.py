"""
LocalGroupStore - groups kept in a single JSON file.

This is the standalone variant: members are plain names, pints are
addressed by their position in the bucket, and deleting a pint from the
history is allowed. The file maps group id to the stored group
({groupName, members, pints}); older files with per-pair counts are
upgraded by the migration on load and rewritten in the current shape on
the next write.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from piinty.models.pint import DebtEntry, GroupState, GroupSummary, Member
from piinty.repositories.base import GroupStore
from piinty.services import group_service
from piinty.utils.group_validation import (
    GroupNotFoundError,
    MemberNotFoundError,
    validate_member_id,
)
from piinty.utils.migration import state_from_payload, state_to_payload

logger = logging.getLogger(__name__)

DEFAULT_GROUP_ID = "pint-tracker-data"
DEFAULT_GROUP = {
    "groupName": "The Pub Crew",
    "members": ["Alice", "Bob", "Charlie"],
    "pints": {},
}


class LocalGroupStore(GroupStore):
    """JSON-file group store."""

    supports_entry_deletion = True

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.error(f"Failed to parse saved data in {self.path}: {exc}")
            return {}
        if not isinstance(document, dict):
            logger.error(f"Saved data in {self.path} is not an object, ignoring it")
            return {}
        return document

    def _write(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def _load_state(self, document: Dict[str, Any], group_id: str) -> GroupState:
        payload = document.get(group_id)
        if not isinstance(payload, dict):
            raise GroupNotFoundError("Group not found")
        return state_from_payload(payload)

    def _apply(self, group_id: str, change: Callable[[GroupState], GroupState]) -> None:
        document = self._read()
        state = change(self._load_state(document, group_id))
        document[group_id] = state_to_payload(state)
        self._write(document)

    async def fetch_group(self, group_id: str) -> Dict[str, Any]:
        document = self._read()
        if group_id not in document and group_id == DEFAULT_GROUP_ID:
            logger.info(f"Seeding default group in {self.path}")
            document[group_id] = dict(DEFAULT_GROUP)
            self._write(document)
        payload = document.get(group_id)
        if not isinstance(payload, dict):
            raise GroupNotFoundError("Group not found")
        return payload

    async def list_groups(self, member_id: str) -> List[GroupSummary]:
        summaries = []
        for group_id, payload in self._read().items():
            if not isinstance(payload, dict):
                continue
            state = state_from_payload(payload)
            if state.has_member(member_id):
                summaries.append(GroupSummary(id=group_id, name=state.name))
        return list(reversed(summaries))

    async def create_group(self, name: str, creator: Member) -> str:
        group_id = uuid.uuid4().hex
        document = self._read()
        document[group_id] = state_to_payload(group_service.create_group(name, [creator]))
        self._write(document)
        return group_id

    async def resolve_member(self, identifier: str) -> Member:
        return Member(id=validate_member_id(identifier))

    async def insert_entry(
        self, group_id: str, debtor: str, creditor: str, entry: DebtEntry
    ) -> DebtEntry:
        self._apply(group_id, lambda state: group_service.add_entry(
            state,
            debtor,
            creditor,
            note=entry.note,
            photo_ref=entry.photo_ref,
            now=entry.created_at,
        ))
        return entry

    async def update_entry_paid(
        self,
        group_id: str,
        debtor: str,
        creditor: str,
        index: int,
        entry: DebtEntry,
        paid: bool,
    ) -> None:
        self._apply(group_id, lambda state: group_service.set_paid(
            state, debtor, creditor, paid, index=index
        ))

    async def delete_entry(
        self, group_id: str, debtor: str, creditor: str, index: int, entry: DebtEntry
    ) -> None:
        self._apply(group_id, lambda state: group_service.remove_entry(
            state, debtor, creditor, index
        ))

    async def insert_member(self, group_id: str, member: Member) -> None:
        self._apply(group_id, lambda state: group_service.add_member(state, member))

    async def delete_member(self, group_id: str, member_id: str) -> None:
        self._apply(group_id, lambda state: group_service.remove_member(state, member_id))

    async def update_group_name(self, group_id: str, name: str) -> None:
        self._apply(group_id, lambda state: group_service.rename_group(state, name))

    async def update_avatar(self, member_id: str, avatar_url: str) -> Member:
        document = self._read()
        found = False
        for group_id, payload in document.items():
            if not isinstance(payload, dict):
                continue
            state = state_from_payload(payload)
            if not state.has_member(member_id):
                continue
            found = True
            document[group_id] = state_to_payload(
                group_service.set_member_avatar(state, member_id, avatar_url)
            )
        if not found:
            raise MemberNotFoundError(f"{member_id} is not in any group")

        self._write(document)
        return Member(id=member_id, avatar_url=avatar_url)
