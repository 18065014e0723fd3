"""Graphviz DOT serialization of a folded fork graph.

Output is deterministic: nodes are emitted by slot, edges by (child, parent)
and validator annotations by validator identity then slot.
"""

from typing import Dict, Iterable, List

from analysis import analyze_snapshot
from fork_tree import AllVotes
from models import (
    UNKNOWN_SLOT,
    AbsentBucket,
    ChainState,
    Edge,
    FoldedGraph,
    GraphConfig,
    LastVote,
    Node,
    VoteAccountMode,
    format_sol,
    lamports_to_sol,
    stake_percent,
)


def format_node(node: Node) -> str:
    label = f"{node.slot} (epoch {node.epoch})\\nleader: {node.leader}"
    if node.transactions is not None:
        label += f"\\ntransactions: {node.transactions}"
    if node.votes:
        label += (
            f"\\nvotes: {node.votes}, stake: {lamports_to_sol(node.stake):.1f} SOL "
            f"({stake_percent(node.stake, node.total_stake or 0):.1f}%)"
        )
    style = "filled," if node.is_tip else ""
    return f'    "{node.slot}"[label="{label}",style="{style}"];'


def format_edge(edge: Edge) -> str:
    if edge.parent is None:
        return f'    "{edge.child}" -> "{UNKNOWN_SLOT}"[dir=back];'

    if edge.gap:
        link_label = f'label="{edge.gap} slots",color=red'
    else:
        link_label = "color=blue"
    penwidth = 5 if edge.epoch_crossing else 1
    return f'    "{edge.child}" -> "{edge.parent}"[{link_label},dir=back,penwidth={penwidth}];'


def format_absent(absent: AbsentBucket) -> str:
    return (
        f'    "{UNKNOWN_SLOT}"[label="{UNKNOWN_SLOT}\\nvotes: {absent.votes}, '
        f"stake: {lamports_to_sol(absent.stake):.1f} SOL {absent.percent:.1f}%\"];"
    )


def _target(slot: int, graph: FoldedGraph) -> str:
    return str(slot) if slot in graph else UNKNOWN_SLOT


def format_last_vote(
    validator: str, last_vote: LastVote, graph: FoldedGraph, mode: VoteAccountMode
) -> List[str]:
    vote_state = last_vote.vote_state

    if mode is VoteAccountMode.WITH_HISTORY:
        history = "vote history:\\n" + "\\n".join(vote_state.history_lines())
    elif mode is VoteAccountMode.LAST_ONLY:
        latest = vote_state.last_vote
        history = f"last vote slot: {latest.slot if latest else 'none'}"
    else:
        return []

    return [
        f'  "last vote {validator}"[shape=box,label="Latest validator vote: {validator}'
        f"\\nstake: {format_sol(last_vote.stake)} SOL"
        f"\\nroot slot: {vote_state.root_slot or 0}\\n{history}\"];",
        f'  "last vote {validator}" -> "{_target(last_vote.slot, graph)}"'
        f'[style=dashed,label="latest vote"];',
    ]


def format_all_votes(
    all_votes: AllVotes, last_votes: Dict[str, LastVote], graph: FoldedGraph
) -> List[str]:
    lines = []

    for validator in sorted(all_votes):
        last_vote = last_votes.get(validator)
        for vote_slot in sorted(all_votes[validator]):
            # the latest vote already has its own annotation
            if last_vote is not None and vote_slot == last_vote.slot:
                continue
            vote_state = all_votes[validator][vote_slot]
            history = "\\n".join(vote_state.history_lines())
            lines.append(
                f'  "{validator} vote {vote_slot}"[shape=box,style=dotted,'
                f'label="validator vote: {validator}\\nroot slot: {vote_state.root_slot or 0}'
                f'\\nvote history:\\n{history}"];'
            )
            lines.append(
                f'  "{validator} vote {vote_slot}" -> "{_target(vote_slot, graph)}"'
                f'[style=dotted,label="vote"];'
            )

    return lines


def assemble_graph(
    graph: FoldedGraph,
    last_votes: Dict[str, LastVote],
    absent: AbsentBucket,
    all_votes: AllVotes,
    config: GraphConfig,
) -> str:
    dot = ["digraph {"]

    dot.append("  subgraph cluster_banks {")
    dot.append("    style=invis")
    dot.extend(format_node(node) for node in graph.sorted_nodes())
    dot.extend(format_edge(edge) for edge in graph.sorted_edges())
    dot.append("  }")

    if config.vote_account_mode.is_enabled:
        for validator in sorted(last_votes):
            dot.extend(
                format_last_vote(validator, last_votes[validator], graph, config.vote_account_mode)
            )

    if absent.votes > 0:
        dot.append(format_absent(absent))

    if config.include_all_votes:
        dot.extend(format_all_votes(all_votes, last_votes, graph))

    dot.append("}")
    return "\n".join(dot)


def graph_forks(chain_states: Iterable[ChainState], config: GraphConfig = GraphConfig()) -> str:
    """Build the DOT description of every fork in a snapshot."""
    analysis = analyze_snapshot(chain_states)
    return assemble_graph(
        analysis["graph"],
        analysis["last_votes"],
        analysis["absent"],
        analysis["all_votes"],
        config,
    )
