import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from models import ChainState, Edge, FoldedGraph, Node, VoteState

logger = logging.getLogger(__name__)

# validator identity -> voted slot -> first vote state seen containing that vote
AllVotes = Dict[str, Dict[int, VoteState]]


def index_chain_states(chain_states: Iterable[ChainState]) -> Dict[int, ChainState]:
    """Index chain states by slot; parent links are then plain slot lookups."""
    return {chain.slot: chain for chain in chain_states}


def get_parent(slot: int, arena: Dict[int, ChainState]) -> Optional[int]:
    """Parent slot of a chain state, or None if the snapshot does not retain it."""
    parent = arena[slot].parent_slot
    if parent is None or parent == slot or parent not in arena:
        return None
    return parent


def get_ancestors(slot: int, arena: Dict[int, ChainState]) -> Set[int]:
    """Get all ancestors of a chain state."""
    ancestors = set()
    current = slot

    while current in arena:
        parent = get_parent(current, arena)
        if parent is None or parent in ancestors:
            break
        ancestors.add(parent)
        current = parent

    return ancestors


def find_fork_tips(chain_states: Iterable[ChainState]) -> List[int]:
    """
    Find the chain states that are not an ancestor of any other chain state.
    Returns tip slots in ascending order.
    """
    arena = index_chain_states(chain_states)
    tips = set(arena)

    for slot in arena:
        tips -= get_ancestors(slot, arena)

    logger.debug("resolved %d tips from %d chain states", len(tips), len(arena))
    return sorted(tips)


def find_common_ancestor(tips: List[int], arena: Dict[int, ChainState]) -> Optional[int]:
    """Find the most recent slot shared by the chains of every tip."""
    if len(tips) < 2:
        return None  # No forks if only one tip

    common = get_ancestors(tips[0], arena)
    common.add(tips[0])

    for tip in tips[1:]:
        chain = get_ancestors(tip, arena)
        chain.add(tip)
        common &= chain

    return max(common) if common else None


def _record_all_votes(chain: ChainState, all_votes: AllVotes) -> None:
    for _, _, vote_state in chain.sorted_vote_accounts():
        if not vote_state.votes:
            continue
        validator_votes = all_votes.setdefault(vote_state.node_pubkey, {})
        for vote in vote_state.votes:
            validator_votes.setdefault(vote.slot, vote_state)


def walk_fork_chains(
    arena: Dict[int, ChainState], tips: List[int]
) -> Tuple[FoldedGraph, AllVotes]:
    """
    Walk every tip back to the oldest retained chain state, folding the
    chains into one graph. Slots shared by several tips become one node.
    """
    graph = FoldedGraph()
    all_votes: AllVotes = {}

    for tip in sorted(tips):
        slot = tip
        first = True

        while True:
            chain = arena[slot]
            _record_all_votes(chain, all_votes)

            parent = get_parent(slot, arena)

            if slot not in graph.nodes:
                graph.nodes[slot] = Node(
                    slot=slot,
                    epoch=chain.epoch,
                    leader=chain.leader,
                    transactions=(
                        chain.transaction_count - arena[parent].transaction_count
                        if parent is not None
                        else None
                    ),
                    is_tip=first,
                )
            first = False

            if parent is None:
                if slot > 0:
                    graph.edges[(slot, None)] = Edge(child=slot, parent=None)
                break

            parent_chain = arena[parent]
            graph.edges[(slot, parent)] = Edge(
                child=slot,
                parent=parent,
                distance=slot - parent,
                epoch_crossing=chain.epoch > parent_chain.epoch,
            )
            slot = parent

    logger.debug(
        "walked %d tips into %d nodes and %d edges",
        len(tips), len(graph.nodes), len(graph.edges),
    )
    return graph, all_votes
