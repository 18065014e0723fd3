from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


LAMPORTS_PER_SOL = 1_000_000_000

# Placeholder node for history the snapshot does not retain, and for votes
# that point outside the rendered topology.
UNKNOWN_SLOT = "..."


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def format_sol(lamports: int) -> str:
    """Plain decimal SOL amount, never in exponent notation."""
    whole, frac = divmod(lamports, LAMPORTS_PER_SOL)
    if not frac:
        return str(whole)
    return f"{whole}.{frac:09d}".rstrip("0")


def stake_percent(stake: int, total_stake: int) -> float:
    """Stake as a percentage of total_stake, 0.0 when nothing is staked."""
    if total_stake <= 0:
        return 0.0
    return stake / total_stake * 100.0


class InconsistentSnapshotError(ValueError):
    """Raised when a validator's recorded total stake differs between chain states."""

    def __init__(self, validator: str, expected: int, found: int):
        self.validator = validator
        self.expected = expected
        self.found = found
        super().__init__(
            f"inconsistent total stake for validator {validator}: "
            f"expected {expected}, found {found}"
        )


@dataclass(frozen=True)
class Vote:
    slot: int
    confirmation_count: int


@dataclass(frozen=True)
class VoteState:
    node_pubkey: str
    votes: Tuple[Vote, ...] = ()
    root_slot: Optional[int] = None

    @property
    def last_vote(self) -> Optional[Vote]:
        return self.votes[-1] if self.votes else None

    def history_lines(self) -> List[str]:
        return [f"slot {vote.slot} (conf={vote.confirmation_count})" for vote in self.votes]


# Used for vote accounts whose state could not be decoded; it never votes.
EMPTY_VOTE_STATE = VoteState(node_pubkey="11111111111111111111111111111111")


@dataclass(frozen=True)
class ChainState:
    """A bank: ledger state at one slot, linked to its parent by slot number."""

    slot: int
    epoch: int
    parent_slot: Optional[int]
    leader: str
    transaction_count: int
    # vote account address -> (stake, vote state)
    vote_accounts: Dict[str, Tuple[int, VoteState]] = field(default_factory=dict)

    @property
    def total_stake(self) -> int:
        return sum(stake for stake, _ in self.vote_accounts.values())

    def sorted_vote_accounts(self) -> List[Tuple[str, int, VoteState]]:
        return [
            (address, stake, vote_state)
            for address, (stake, vote_state) in sorted(self.vote_accounts.items())
        ]


@dataclass(frozen=True)
class LastVote:
    slot: int
    vote_state: VoteState
    stake: int
    total_stake: int


@dataclass
class Node:
    slot: int
    epoch: int
    leader: str
    # None when the parent is not part of the snapshot
    transactions: Optional[int] = None
    is_tip: bool = False
    votes: int = 0
    stake: int = 0
    total_stake: Optional[int] = None


@dataclass(frozen=True)
class Edge:
    child: int
    # None for the dangling edge into unretained history
    parent: Optional[int]
    distance: int = 1
    epoch_crossing: bool = False

    @property
    def gap(self) -> int:
        return self.distance - 1 if self.distance > 1 else 0

    def sort_key(self) -> Tuple[int, int]:
        return (self.child, -1 if self.parent is None else self.parent)


@dataclass
class FoldedGraph:
    nodes: Dict[int, Node] = field(default_factory=dict)
    edges: Dict[Tuple[int, Optional[int]], Edge] = field(default_factory=dict)

    def __contains__(self, slot: int) -> bool:
        return slot in self.nodes

    def sorted_nodes(self) -> List[Node]:
        return [self.nodes[slot] for slot in sorted(self.nodes)]

    def sorted_edges(self) -> List[Edge]:
        return sorted(self.edges.values(), key=Edge.sort_key)


@dataclass
class AbsentBucket:
    votes: int = 0
    stake: int = 0
    lowest_slot: Optional[int] = None
    # denominator taken from the absent vote with the lowest slot
    total_stake: int = 0

    @property
    def percent(self) -> float:
        return stake_percent(self.stake, self.total_stake)


class VoteAccountMode(Enum):
    DISABLED = "disabled"
    LAST_ONLY = "last-only"
    WITH_HISTORY = "with-history"

    @property
    def is_enabled(self) -> bool:
        return self is not VoteAccountMode.DISABLED

    @classmethod
    def parse(cls, text: str) -> "VoteAccountMode":
        for mode in cls:
            if mode.value == text:
                return mode
        valid = ", ".join(mode.value for mode in cls)
        raise ValueError(f"invalid vote account mode {text!r} (expected one of: {valid})")


@dataclass(frozen=True)
class GraphConfig:
    include_all_votes: bool = False
    vote_account_mode: VoteAccountMode = VoteAccountMode.DISABLED
