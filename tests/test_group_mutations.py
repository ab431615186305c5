"""
Tests for group mutations.

Every mutation must return a new state and leave its input untouched.
"""

import pytest

from piinty.models.pint import Member
from piinty.services import group_service
from piinty.services.ledger_service import member_tallies
from piinty.utils.group_validation import (
    EntryNotFoundError,
    InvalidGroupNameError,
    InvalidMemberError,
    InvalidNoteError,
    MemberNotFoundError,
    MinimumMembersError,
)
from piinty.utils.migration import state_from_payload, state_to_payload
from tests.helpers import at


def test_add_entry_appends_unpaid_entry(pub_crew):
    state = group_service.add_entry(
        pub_crew, "Alice", "Bob", "  lost bet  ", photo_ref="/photos/a.jpg", now=at(1)
    )

    (entry,) = state.bucket("Alice", "Bob")
    assert entry.note == "lost bet"
    assert entry.paid is False
    assert entry.created_at == at(1)
    assert entry.photo_ref == "/photos/a.jpg"
    assert pub_crew.ledger == {}


def test_add_entry_keeps_bucket_ordered(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", "late", now=at(10))
    state = group_service.add_entry(state, "Alice", "Bob", "early", now=at(1))
    state = group_service.add_entry(state, "Alice", "Bob", "same time", now=at(10))

    assert [e.note for e in state.bucket("Alice", "Bob")] == ["early", "late", "same time"]


def test_add_entry_allows_self_pair(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Alice", now=at(1))
    assert len(state.bucket("Alice", "Alice")) == 1


def test_add_entry_rejects_long_note(pub_crew):
    with pytest.raises(InvalidNoteError):
        group_service.add_entry(pub_crew, "Alice", "Bob", "x" * 101)

    assert len(group_service.add_entry(pub_crew, "Alice", "Bob", "x" * 100).bucket("Alice", "Bob")) == 1


def test_pairs_are_directional(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", now=at(1))
    state = group_service.add_entry(state, "Bob", "Alice", now=at(2))

    assert len(state.bucket("Alice", "Bob")) == 1
    assert len(state.bucket("Bob", "Alice")) == 1


def test_set_paid_by_index_and_back(pub_crew):
    before = group_service.add_entry(pub_crew, "Alice", "Bob", now=at(1))

    paid = group_service.set_paid(before, "Alice", "Bob", True, index=0)
    assert paid.bucket("Alice", "Bob")[0].paid is True
    assert before.bucket("Alice", "Bob")[0].paid is False

    unpaid = group_service.set_paid(paid, "Alice", "Bob", False, index=0)
    assert unpaid.bucket("Alice", "Bob")[0].paid is False


def test_set_paid_by_entry_id(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", now=at(1), entry_id="p1")
    state = group_service.add_entry(state, "Alice", "Bob", now=at(2), entry_id="p2")

    state = group_service.set_paid(state, "Alice", "Bob", True, entry_id="p2")

    assert [e.paid for e in state.bucket("Alice", "Bob")] == [False, True]
    assert group_service.find_entry_index(state, "Alice", "Bob", "p2") == 1
    assert group_service.find_entry_index(state, "Alice", "Bob", "nope") is None


@pytest.mark.parametrize("index", [1, 5, -1])
def test_set_paid_unknown_index_is_a_no_op(pub_crew, index):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", now=at(1))

    assert group_service.set_paid(state, "Alice", "Bob", True, index=index) is state
    assert group_service.set_paid(state, "Bob", "Alice", True, index=0) is state
    assert group_service.set_paid(state, "Alice", "Bob", True, entry_id="missing") is state


def test_set_paid_needs_exactly_one_address(pub_crew):
    with pytest.raises(ValueError):
        group_service.set_paid(pub_crew, "Alice", "Bob", True)
    with pytest.raises(ValueError):
        group_service.set_paid(pub_crew, "Alice", "Bob", True, index=0, entry_id="p1")


def test_clear_marks_most_recent_unpaid(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", "old", now=at(1))
    state = group_service.add_entry(state, "Alice", "Bob", "new", now=at(5))

    state = group_service.clear_most_recent_unpaid(state, "Alice", "Bob")
    assert [(e.note, e.paid) for e in state.bucket("Alice", "Bob")] == [("old", False), ("new", True)]

    state = group_service.clear_most_recent_unpaid(state, "Alice", "Bob")
    assert all(e.paid for e in state.bucket("Alice", "Bob"))


def test_clear_breaks_timestamp_ties_by_position(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", "first", now=at(1))
    state = group_service.add_entry(state, "Alice", "Bob", "second", now=at(1))

    state = group_service.clear_most_recent_unpaid(state, "Alice", "Bob")

    assert [e.paid for e in state.bucket("Alice", "Bob")] == [False, True]


def test_clear_without_unpaid_is_a_no_op(pub_crew):
    assert group_service.clear_most_recent_unpaid(pub_crew, "Alice", "Bob") is pub_crew

    state = group_service.add_entry(pub_crew, "Alice", "Bob", now=at(1))
    state = group_service.set_paid(state, "Alice", "Bob", True, index=0)
    assert group_service.clear_most_recent_unpaid(state, "Alice", "Bob") is state


def test_remove_entry(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", "a", now=at(1))
    state = group_service.add_entry(state, "Alice", "Bob", "b", now=at(2))

    state = group_service.remove_entry(state, "Alice", "Bob", 0)
    assert [e.note for e in state.bucket("Alice", "Bob")] == ["b"]

    state = group_service.remove_entry(state, "Alice", "Bob", 0)
    assert ("Alice", "Bob") not in state.ledger


def test_remove_entry_out_of_range_raises(pub_crew):
    state = group_service.add_entry(pub_crew, "Alice", "Bob", now=at(1))

    with pytest.raises(EntryNotFoundError):
        group_service.remove_entry(state, "Alice", "Bob", 1)
    with pytest.raises(EntryNotFoundError):
        group_service.remove_entry(state, "Alice", "Bob", -1)
    assert len(state.bucket("Alice", "Bob")) == 1


def test_add_member(pub_crew):
    state = group_service.add_member(pub_crew, "Dave")
    assert state.member_ids == ("Alice", "Bob", "Charlie", "Dave")
    assert pub_crew.member_ids == ("Alice", "Bob", "Charlie")

    state = group_service.add_member(state, Member(id="Erin", display_name="Erin P"))
    assert state.members[-1].label == "Erin P"


def test_add_existing_member_is_a_no_op(pub_crew):
    assert group_service.add_member(pub_crew, "Bob") is pub_crew
    assert group_service.add_member(pub_crew, Member(id="Bob", display_name="Bobby")) is pub_crew


def test_add_blank_member_rejected(pub_crew):
    with pytest.raises(InvalidMemberError):
        group_service.add_member(pub_crew, "   ")


def test_remove_member_from_two_member_group_rejected(pub_crew):
    pair = group_service.remove_member(pub_crew, "Charlie")

    with pytest.raises(MinimumMembersError):
        group_service.remove_member(pair, "Bob")
    assert pair.member_ids == ("Alice", "Bob")


def test_remove_member_purges_only_their_buckets(pub_crew):
    state = pub_crew
    for minute, (debtor, creditor) in enumerate(
        [("Alice", "Bob"), ("Bob", "Alice"), ("Charlie", "Alice"), ("Bob", "Charlie"), ("Charlie", "Charlie")]
    ):
        state = group_service.add_entry(state, debtor, creditor, now=at(minute))

    after = group_service.remove_member(state, "Charlie")

    assert after.member_ids == ("Alice", "Bob")
    assert set(after.ledger) == {("Alice", "Bob"), ("Bob", "Alice")}
    assert after.bucket("Alice", "Bob") == state.bucket("Alice", "Bob")
    assert after.bucket("Bob", "Alice") == state.bucket("Bob", "Alice")
    assert len(state.ledger) == 5


def test_remove_unknown_member_rejected(pub_crew):
    with pytest.raises(MemberNotFoundError):
        group_service.remove_member(pub_crew, "Dave")


def test_remove_member_does_not_match_substrings(pub_crew):
    state = group_service.add_member(pub_crew, "Al")
    state = group_service.add_entry(state, "Alice", "Bob", now=at(1))

    after = group_service.remove_member(state, "Al")

    assert ("Alice", "Bob") in after.ledger


@pytest.mark.parametrize("name", ["", "   ", None, "x" * 51])
def test_rename_group_rejects_bad_names(pub_crew, name):
    with pytest.raises(InvalidGroupNameError):
        group_service.rename_group(pub_crew, name)
    assert pub_crew.name == "The Pub Crew"


def test_rename_group_strips_name(pub_crew):
    state = group_service.rename_group(pub_crew, "  Friday Crew ")
    assert state.name == "Friday Crew"
    assert pub_crew.name == "The Pub Crew"


def test_create_group():
    state = group_service.create_group(" Darts Club ", ["Alice", "Bob", "Alice"])

    assert state.name == "Darts Club"
    assert state.member_ids == ("Alice", "Bob")
    assert state.ledger == {}

    with pytest.raises(InvalidGroupNameError):
        group_service.create_group("", ["Alice"])


@pytest.mark.parametrize("name", ["Al->ice", "->", "Bob-> "])
def test_member_names_with_pair_separator_rejected(pub_crew, name):
    with pytest.raises(InvalidMemberError):
        group_service.add_member(pub_crew, name)
    with pytest.raises(InvalidMemberError):
        group_service.create_group("Darts Club", [name])


def test_member_names_survive_a_reload(pub_crew):
    state = group_service.add_member(pub_crew, "Al-ice>")
    state = group_service.add_entry(state, "Al-ice>", "Bob", now=at(1))

    reloaded = state_from_payload(state_to_payload(state))

    assert set(reloaded.ledger) == {("Al-ice>", "Bob")}
    tallies = {t.member.id: t.owes for t in member_tallies(reloaded.members, reloaded.ledger)}
    assert tallies["Al-ice>"] == 1


def test_set_member_avatar(pub_crew):
    state = group_service.set_member_avatar(pub_crew, "Bob", "/photos/bob.png")

    assert state.members[1].avatar_url == "/photos/bob.png"
    assert state.members[1].label == "Bob"
    assert pub_crew.members[1].avatar_url is None
    assert group_service.set_member_avatar(state, "Bob", "/photos/bob.png") is state

    with pytest.raises(MemberNotFoundError):
        group_service.set_member_avatar(pub_crew, "Dave", "/photos/dave.png")
