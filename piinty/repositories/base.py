"""
GroupStore - the persistence collaborator behind a group session.

Reads hand back the raw stored payload; migrating it into a GroupState is
the caller's job. Writes mirror the mutations one to one. Durable stores
address entries by their stable id, the local store by list index.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from piinty.models.pint import DebtEntry, GroupSummary, Member


class GroupStore(ABC):
    """Persistence operations for groups, members and pints."""

    # Durable stores keep pint history and only flip the paid flag
    supports_entry_deletion: bool = False

    @abstractmethod
    async def fetch_group(self, group_id: str) -> Dict[str, Any]:
        """Whole stored group; raises GroupNotFoundError if it does not exist."""

    @abstractmethod
    async def list_groups(self, member_id: str) -> List[GroupSummary]:
        """Groups the member belongs to, newest first."""

    @abstractmethod
    async def create_group(self, name: str, creator: Member) -> str:
        """Create a group with the creator as its first member; returns its id."""

    @abstractmethod
    async def resolve_member(self, identifier: str) -> Member:
        """Turn what a user typed into a Member; raises MemberNotFoundError."""

    @abstractmethod
    async def insert_entry(
        self, group_id: str, debtor: str, creditor: str, entry: DebtEntry
    ) -> DebtEntry:
        """Store a new pint; returns it with its stable id when the store assigns one."""

    @abstractmethod
    async def update_entry_paid(
        self,
        group_id: str,
        debtor: str,
        creditor: str,
        index: int,
        entry: DebtEntry,
        paid: bool,
    ) -> None:
        ...

    @abstractmethod
    async def delete_entry(
        self, group_id: str, debtor: str, creditor: str, index: int, entry: DebtEntry
    ) -> None:
        ...

    @abstractmethod
    async def insert_member(self, group_id: str, member: Member) -> None:
        ...

    @abstractmethod
    async def delete_member(self, group_id: str, member_id: str) -> None:
        """Remove the membership and every pint naming the member."""

    @abstractmethod
    async def update_group_name(self, group_id: str, name: str) -> None:
        ...

    @abstractmethod
    async def update_avatar(self, member_id: str, avatar_url: str) -> Member:
        """Set the member's avatar everywhere they appear; returns the updated Member."""
