"""Factories for building chain states in tests."""

from typing import Dict, List, Optional, Sequence, Tuple

from models import ChainState, Vote, VoteState

TOTAL_STAKE = 300

# validator -> (stake, vote slots oldest first)
SCENARIO_VALIDATORS: Dict[str, Tuple[int, List[int]]] = {
    "V1": (100, [0, 5, 10]),
    "V2": (150, [0, 5, 8]),
    "V3": (50, [20]),
}


def make_vote_state(
    validator: str, slots: Sequence[int], root_slot: Optional[int] = None
) -> VoteState:
    votes = tuple(
        Vote(slot=slot, confirmation_count=len(slots) - i) for i, slot in enumerate(slots)
    )
    return VoteState(node_pubkey=validator, votes=votes, root_slot=root_slot)


def make_chain(
    slot: int,
    parent: Optional[int],
    epoch: int = 0,
    transaction_count: int = 0,
    validators: Optional[Dict[str, Tuple[int, Sequence[int]]]] = None,
    leader: str = "leader",
) -> ChainState:
    vote_accounts = {}
    for validator, (stake, slots) in (validators or {}).items():
        vote_accounts[f"vote-{validator}"] = (stake, make_vote_state(validator, slots))
    return ChainState(
        slot=slot,
        epoch=epoch,
        parent_slot=parent,
        leader=leader,
        transaction_count=transaction_count,
        vote_accounts=vote_accounts,
    )


def scenario_chains() -> List[ChainState]:
    """0 -> 5 -> 10 -> 12 and 0 -> 5 -> 8, every validator in every chain."""
    links = [(0, None), (5, 0), (8, 5), (10, 5), (12, 10)]
    return [
        make_chain(slot, parent, transaction_count=slot * 10, validators=SCENARIO_VALIDATORS)
        for slot, parent in links
    ]
