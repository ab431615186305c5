"""Group and pint validation utilities."""
from typing import Optional

from piinty.models.pint import PAIR_SEPARATOR


NOTE_MAX_LENGTH = 100
GROUP_NAME_MAX_LENGTH = 50
MIN_GROUP_MEMBERS = 2


class GroupOperationError(Exception):
    """A group operation was refused because its precondition does not hold."""
    pass


class InvalidGroupNameError(GroupOperationError):
    pass


class InvalidNoteError(GroupOperationError):
    pass


class InvalidMemberError(GroupOperationError):
    pass


class MinimumMembersError(GroupOperationError):
    """Removing the member would leave fewer than MIN_GROUP_MEMBERS."""
    pass


class MemberNotFoundError(GroupOperationError):
    pass


class EntryNotFoundError(GroupOperationError):
    pass


class EntryDeletionNotAllowedError(GroupOperationError):
    """The store keeps pint history; mark the pint paid instead."""
    pass


class GroupNotFoundError(GroupOperationError):
    pass


class PhotoRejectedError(GroupOperationError):
    pass


def validate_group_name(name: Optional[str]) -> str:
    """
    Validate a group name and return it stripped.

    Rules:
    - must not be empty or whitespace only
    - at most GROUP_NAME_MAX_LENGTH characters after stripping
    """
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidGroupNameError("Group name cannot be empty")
    if len(trimmed) > GROUP_NAME_MAX_LENGTH:
        raise InvalidGroupNameError(
            f"Group name is longer than {GROUP_NAME_MAX_LENGTH} characters"
        )
    return trimmed


def validate_note(note: Optional[str]) -> str:
    """Strip a pint note and check it fits NOTE_MAX_LENGTH."""
    trimmed = (note or "").strip()
    if len(trimmed) > NOTE_MAX_LENGTH:
        raise InvalidNoteError(f"Note is longer than {NOTE_MAX_LENGTH} characters")
    return trimmed


def validate_member_id(member_id: Optional[str]) -> str:
    trimmed = (member_id or "").strip()
    if not trimmed:
        raise InvalidMemberError("Member name cannot be empty")
    # Ids are joined into "debtor->creditor" bucket keys
    if PAIR_SEPARATOR in trimmed:
        raise InvalidMemberError(f"Member name cannot contain '{PAIR_SEPARATOR}'")
    return trimmed
