"""
Ledger aggregation - derived views over a group's pints.

Only unpaid entries count. A self-pair cell is "not applicable" (None),
which is distinct from a real pair with zero pints.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from piinty.models.pint import DebtEntry, GroupState, Ledger, Member


@dataclass(frozen=True)
class MatrixCell:
    debtor: str
    creditor: str
    unpaid: Optional[int]  # None for a member against themselves


@dataclass(frozen=True)
class BucketHistory:
    debtor: str
    creditor: str
    entries: Tuple[DebtEntry, ...]
    unpaid_count: int
    paid_count: int


@dataclass(frozen=True)
class MemberTally:
    member: Member
    owes: int   # unpaid pints this member owes (debtor side)
    owed: int   # unpaid pints owed to this member (creditor side)


@dataclass(frozen=True)
class Standing:
    member: Member
    count: int


@dataclass(frozen=True)
class Leaderboard:
    king: Standing   # most pints owed to them
    clown: Standing  # most pints they owe


@dataclass(frozen=True)
class LedgerSummary:
    matrix: List[List[MatrixCell]]
    tallies: List[MemberTally]
    top_debtors: List[MemberTally]
    top_creditors: List[MemberTally]
    leaderboard: Optional[Leaderboard]


def _unpaid(entries: Sequence[DebtEntry]) -> int:
    return sum(1 for entry in entries if not entry.paid)


def unpaid_count(ledger: Ledger, debtor: str, creditor: str) -> Optional[int]:
    """Matrix cell: unpaid pints debtor owes creditor, None for a self-pair."""
    if debtor == creditor:
        return None
    return _unpaid(ledger.get((debtor, creditor), ()))


def build_matrix(members: Sequence[Member], ledger: Ledger) -> List[List[MatrixCell]]:
    """Rows are debtors, columns creditors, both in member order."""
    return [
        [
            MatrixCell(
                debtor=debtor.id,
                creditor=creditor.id,
                unpaid=unpaid_count(ledger, debtor.id, creditor.id),
            )
            for creditor in members
        ]
        for debtor in members
    ]


def bucket_history(ledger: Ledger, debtor: str, creditor: str) -> BucketHistory:
    entries = tuple(ledger.get((debtor, creditor), ()))
    unpaid = _unpaid(entries)
    return BucketHistory(
        debtor=debtor,
        creditor=creditor,
        entries=entries,
        unpaid_count=unpaid,
        paid_count=len(entries) - unpaid,
    )


def member_tallies(members: Sequence[Member], ledger: Ledger) -> List[MemberTally]:
    """
    Debtor-side and creditor-side unpaid counts for every member.

    Members with nothing recorded get zeros. Self-pairs and buckets naming
    someone outside the member list are not counted.
    """
    owes = {member.id: 0 for member in members}
    owed = {member.id: 0 for member in members}

    for (debtor, creditor), entries in ledger.items():
        if debtor == creditor or debtor not in owes or creditor not in owed:
            continue
        count = _unpaid(entries)
        owes[debtor] += count
        owed[creditor] += count

    return [
        MemberTally(member=member, owes=owes[member.id], owed=owed[member.id])
        for member in members
    ]


def rank_debtors(tallies: Sequence[MemberTally]) -> List[MemberTally]:
    """Who owes most first; sorted() is stable so ties keep member order."""
    return sorted(tallies, key=lambda tally: tally.owes, reverse=True)


def rank_creditors(tallies: Sequence[MemberTally]) -> List[MemberTally]:
    """Who is owed most first; ties keep member order."""
    return sorted(tallies, key=lambda tally: tally.owed, reverse=True)


def leaderboard(members: Sequence[Member], ledger: Ledger) -> Optional[Leaderboard]:
    """
    King and clown, or None when nobody owes or is owed anything.

    The first member in list order reaching the maximum wins.
    """
    tallies = member_tallies(members, ledger)
    if not tallies:
        return None

    king = tallies[0]
    clown = tallies[0]
    for tally in tallies[1:]:
        if tally.owed > king.owed:
            king = tally
        if tally.owes > clown.owes:
            clown = tally

    if king.owed == 0 and clown.owes == 0:
        return None

    return Leaderboard(
        king=Standing(member=king.member, count=king.owed),
        clown=Standing(member=clown.member, count=clown.owes),
    )


class LedgerService:
    @staticmethod
    def summarize(state: GroupState) -> LedgerSummary:
        """All derived views the group page shows."""
        tallies = member_tallies(state.members, state.ledger)
        return LedgerSummary(
            matrix=build_matrix(state.members, state.ledger),
            tallies=tallies,
            top_debtors=rank_debtors(tallies),
            top_creditors=rank_creditors(tallies),
            leaderboard=leaderboard(state.members, state.ledger),
        )

    @staticmethod
    def history(state: GroupState, debtor: str, creditor: str) -> BucketHistory:
        return bucket_history(state.ledger, debtor, creditor)
