"""
GroupRepository - groups, memberships and pints in MongoDB.

Collections:
- groups:        {_id, name, created_by, created_at, updated_at}
- group_members: {group_id, user_id, joined_at}  (unique on group_id + user_id)
- profiles:      {_id, display_name, phone_number, avatar_url}
- pints:         {_id, group_id, from_user_id, to_user_id, note, paid, photo, created_at}

Pints are never deleted one by one: paying a pint flips its paid flag so
the history survives.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from piinty.models.pint import DebtEntry, GroupSummary, Member, pair_key
from piinty.repositories.base import GroupStore
from piinty.utils.group_validation import (
    EntryDeletionNotAllowedError,
    EntryNotFoundError,
    GroupNotFoundError,
    MemberNotFoundError,
)

logger = logging.getLogger(__name__)


def _group_oid(group_id: str) -> ObjectId:
    if not ObjectId.is_valid(group_id):
        raise GroupNotFoundError("Group not found")
    return ObjectId(group_id)


def _member_oid(member_id: str) -> ObjectId:
    if not ObjectId.is_valid(member_id):
        raise MemberNotFoundError(f"Unknown member {member_id}")
    return ObjectId(member_id)


class GroupRepository(GroupStore):
    """MongoDB-backed group store."""

    supports_entry_deletion = False

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.groups = db["groups"]
        self.members = db["group_members"]
        self.profiles = db["profiles"]
        self.pints = db["pints"]

    async def fetch_group(self, group_id: str) -> Dict[str, Any]:
        """
        Load a group in the backend payload shape.

        Returns:
        {
            "name": group name,
            "members": [{"id", "display_name", "avatar_url"}] in join order,
            "ledger": {"<debtor id>-><creditor id>": [pint, ...]} oldest first
        }
        """
        oid = _group_oid(group_id)
        group = await self.groups.find_one({"_id": oid})
        if not group:
            raise GroupNotFoundError("Group not found")

        memberships = await self.members.find({"group_id": oid}).sort("joined_at", 1).to_list(None)
        user_ids = [m["user_id"] for m in memberships]
        profiles = await self.profiles.find({"_id": {"$in": user_ids}}).to_list(None)
        profiles_by_id = {p["_id"]: p for p in profiles}

        members = [
            {
                "id": str(user_id),
                "display_name": profiles_by_id.get(user_id, {}).get("display_name"),
                "avatar_url": profiles_by_id.get(user_id, {}).get("avatar_url"),
            }
            for user_id in user_ids
        ]

        ledger: Dict[str, List[Dict[str, Any]]] = {}
        docs = await self.pints.find({"group_id": oid}).sort("created_at", 1).to_list(None)
        for doc in docs:
            key = pair_key(str(doc["from_user_id"]), str(doc["to_user_id"]))
            ledger.setdefault(key, []).append({
                "id": str(doc["_id"]),
                "note": doc.get("note") or "",
                "created_at": doc.get("created_at"),
                "paid": doc.get("paid"),
                "photo_ref": doc.get("photo"),
            })

        return {"name": group["name"], "members": members, "ledger": ledger}

    async def list_groups(self, member_id: str) -> List[GroupSummary]:
        # Only profile ids can hold memberships
        if not ObjectId.is_valid(member_id):
            return []
        memberships = await self.members.find({"user_id": ObjectId(member_id)}).to_list(None)
        group_ids = [m["group_id"] for m in memberships]
        if not group_ids:
            return []

        cursor = self.groups.find({"_id": {"$in": group_ids}}).sort("created_at", -1)
        groups = await cursor.to_list(None)
        return [
            GroupSummary(id=str(g["_id"]), name=g["name"], created_at=g.get("created_at"))
            for g in groups
        ]

    async def create_group(self, name: str, creator: Member) -> str:
        creator_oid = _member_oid(creator.id)
        now = datetime.now(timezone.utc)
        result = await self.groups.insert_one({
            "name": name,
            "created_by": creator_oid,
            "created_at": now,
            "updated_at": now,
        })
        await self.members.insert_one({
            "group_id": result.inserted_id,
            "user_id": creator_oid,
            "joined_at": now,
        })
        logger.info(f"Created group {result.inserted_id} for {creator.id}")
        return str(result.inserted_id)

    async def resolve_member(self, identifier: str) -> Member:
        """Find a profile by phone number, falling back to its id."""
        profile = await self.profiles.find_one({"phone_number": identifier})
        if not profile and ObjectId.is_valid(identifier):
            profile = await self.profiles.find_one({"_id": ObjectId(identifier)})
        if not profile:
            raise MemberNotFoundError("No user with that phone number")

        return Member(
            id=str(profile["_id"]),
            display_name=profile.get("display_name"),
            avatar_url=profile.get("avatar_url"),
        )

    async def insert_entry(
        self, group_id: str, debtor: str, creditor: str, entry: DebtEntry
    ) -> DebtEntry:
        doc = {
            "group_id": _group_oid(group_id),
            "from_user_id": _member_oid(debtor),
            "to_user_id": _member_oid(creditor),
            "note": entry.note,
            "paid": entry.paid,
            "created_at": entry.created_at,
        }
        if entry.photo_ref:
            doc["photo"] = entry.photo_ref

        result = await self.pints.insert_one(doc)
        return entry.model_copy(update={"id": str(result.inserted_id)})

    async def update_entry_paid(
        self,
        group_id: str,
        debtor: str,
        creditor: str,
        index: int,
        entry: DebtEntry,
        paid: bool,
    ) -> None:
        if entry.id is None or not ObjectId.is_valid(entry.id):
            raise EntryNotFoundError("Pint has no stored id")

        result = await self.pints.update_one(
            {"_id": ObjectId(entry.id), "group_id": _group_oid(group_id)},
            {"$set": {"paid": paid, "updated_at": datetime.now(timezone.utc)}}
        )
        if result.matched_count == 0:
            raise EntryNotFoundError("Pint not found")

    async def delete_entry(
        self, group_id: str, debtor: str, creditor: str, index: int, entry: DebtEntry
    ) -> None:
        raise EntryDeletionNotAllowedError("Pints are kept for history; mark it paid instead")

    async def insert_member(self, group_id: str, member: Member) -> None:
        try:
            await self.members.insert_one({
                "group_id": _group_oid(group_id),
                "user_id": _member_oid(member.id),
                "joined_at": datetime.now(timezone.utc),
            })
        except DuplicateKeyError:
            logger.info(f"{member.id} is already a member of {group_id}")

    async def delete_member(self, group_id: str, member_id: str) -> None:
        group_oid = _group_oid(group_id)
        member_oid = _member_oid(member_id)

        # Pints before the membership, so a partial failure can be retried
        result = await self.pints.delete_many({
            "group_id": group_oid,
            "$or": [{"from_user_id": member_oid}, {"to_user_id": member_oid}]
        })
        await self.members.delete_one({"group_id": group_oid, "user_id": member_oid})
        logger.info(f"Removed {member_id} from {group_id} with {result.deleted_count} pints")

    async def update_group_name(self, group_id: str, name: str) -> None:
        result = await self.groups.update_one(
            {"_id": _group_oid(group_id)},
            {"$set": {"name": name, "updated_at": datetime.now(timezone.utc)}}
        )
        if result.matched_count == 0:
            raise GroupNotFoundError("Group not found")

    async def update_avatar(self, member_id: str, avatar_url: str) -> Member:
        profile = await self.profiles.find_one_and_update(
            {"_id": _member_oid(member_id)},
            {"$set": {"avatar_url": avatar_url, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        if not profile:
            raise MemberNotFoundError(f"Unknown member {member_id}")

        logger.info(f"Updated avatar of {member_id}")
        return Member(
            id=str(profile["_id"]),
            display_name=profile.get("display_name"),
            avatar_url=profile.get("avatar_url"),
        )
