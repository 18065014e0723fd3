import logging
from typing import Dict, Iterable, List

from fork_tree import (
    find_common_ancestor,
    find_fork_tips,
    get_ancestors,
    index_chain_states,
    walk_fork_chains,
)
from models import (
    AbsentBucket,
    ChainState,
    FoldedGraph,
    InconsistentSnapshotError,
    LastVote,
)

logger = logging.getLogger(__name__)


def collect_last_votes(chain_states: Iterable[ChainState]) -> Dict[str, LastVote]:
    """
    Search every chain state, dead branches included, for the highest-slot
    vote made by each validator.
    """
    last_votes: Dict[str, LastVote] = {}

    for chain in sorted(chain_states, key=lambda c: c.slot):
        total_stake = chain.total_stake

        for _, stake, vote_state in chain.sorted_vote_accounts():
            last_vote = vote_state.last_vote
            if last_vote is None:
                continue

            validator = vote_state.node_pubkey
            current = last_votes.get(validator)

            if current is not None and current.total_stake != total_stake:
                raise InconsistentSnapshotError(validator, current.total_stake, total_stake)

            if current is None or current.slot < last_vote.slot:
                last_votes[validator] = LastVote(
                    slot=last_vote.slot,
                    vote_state=vote_state,
                    stake=stake,
                    total_stake=total_stake,
                )

    return dict(sorted(last_votes.items()))


def account_votes(graph: FoldedGraph, last_votes: Dict[str, LastVote]) -> AbsentBucket:
    """
    Attribute each validator's stake to the node holding its last vote.
    Votes whose slot is not in the graph are gathered in the absent bucket.
    Last votes on one slot must share a total stake, else the node has no
    single denominator and InconsistentSnapshotError is raised.
    """
    absent = AbsentBucket()

    for validator in sorted(last_votes):
        last_vote = last_votes[validator]
        node = graph.nodes.get(last_vote.slot)

        if node is not None:
            if node.total_stake is None:
                node.total_stake = last_vote.total_stake
            elif node.total_stake != last_vote.total_stake:
                raise InconsistentSnapshotError(validator, node.total_stake, last_vote.total_stake)
            node.votes += 1
            node.stake += last_vote.stake
            continue

        if absent.lowest_slot is None or last_vote.slot < absent.lowest_slot:
            absent.lowest_slot = last_vote.slot
            absent.total_stake = last_vote.total_stake
        absent.votes += 1
        absent.stake += last_vote.stake

    return absent


def summarize_forks(
    tips: List[int], arena: Dict[int, ChainState], last_votes: Dict[str, LastVote]
) -> List[Dict]:
    """Per tip: chain length and the stake whose last vote lies on that chain."""
    summaries = []

    for tip in tips:
        chain = get_ancestors(tip, arena)
        chain.add(tip)
        voters = [v for v in last_votes.values() if v.slot in chain]
        summaries.append({
            "tip": tip,
            "length": len(chain),
            "votes": len(voters),
            "stake": sum(v.stake for v in voters),
        })

    summaries.sort(key=lambda s: (-s["stake"], s["tip"]))
    return summaries


def analyze_snapshot(chain_states: Iterable[ChainState]) -> Dict:
    """Run tip resolution, walking and vote accounting over one snapshot."""
    chain_states = list(chain_states)
    arena = index_chain_states(chain_states)

    tips = find_fork_tips(chain_states)
    last_votes = collect_last_votes(chain_states)
    graph, all_votes = walk_fork_chains(arena, tips)
    absent = account_votes(graph, last_votes)

    visited_stake = sum(node.stake for node in graph.nodes.values())

    logger.info(
        "%d forks, %d nodes, %d validators voting, %d absent",
        len(tips), len(graph.nodes), len(last_votes), absent.votes,
    )

    return {
        "tips": tips,
        "graph": graph,
        "last_votes": last_votes,
        "all_votes": all_votes,
        "absent": absent,
        "num_forks": len(tips),
        "total_validators": len(last_votes),
        "visited_stake": visited_stake,
        "divergence_slot": find_common_ancestor(tips, arena),
        "fork_summaries": summarize_forks(tips, arena, last_votes),
    }
