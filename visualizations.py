import plotly.graph_objects as go
from typing import Dict, List

from models import UNKNOWN_SLOT, FoldedGraph, lamports_to_sol, stake_percent


def format_stake(lamports: int) -> str:
    """Format stake in SOL with K/M suffixes for readability."""
    sol = lamports_to_sol(lamports)
    if sol >= 1_000_000:
        return f"{sol / 1_000_000:.2f}M SOL"
    elif sol >= 1_000:
        return f"{sol / 1_000:.2f}K SOL"
    else:
        return f"{sol:.1f} SOL"


EDGE_COLORS = {
    "direct": "#3498DB",
    "skipped": "#E74C3C",
    "unknown": "#95A5A6",
}


def assign_lanes(graph: FoldedGraph, tips: List[int]) -> Dict[int, int]:
    """Give every node the lane of the first tip (by slot) whose chain reaches it."""
    parents = {edge.child: edge.parent for edge in graph.edges.values() if edge.parent is not None}
    lanes = {}

    for lane, tip in enumerate(sorted(tips)):
        slot = tip
        while slot is not None and slot not in lanes:
            lanes[slot] = lane
            slot = parents.get(slot)

    return lanes


def create_fork_graph_figure(analysis: Dict) -> go.Figure:
    """Create an interactive view of the folded fork graph, one lane per tip."""
    graph = analysis["graph"]
    lanes = assign_lanes(graph, analysis["tips"])
    fig = go.Figure()

    # Edges first so nodes draw on top
    for edge in graph.sorted_edges():
        if edge.parent is None:
            x = [edge.child, edge.child - 1]
            y = [lanes[edge.child], lanes[edge.child]]
            color = EDGE_COLORS["unknown"]
            dash = "dot"
        else:
            x = [edge.child, edge.parent]
            y = [lanes[edge.child], lanes[edge.parent]]
            color = EDGE_COLORS["skipped"] if edge.gap else EDGE_COLORS["direct"]
            dash = "solid"

        fig.add_trace(go.Scatter(
            x=x,
            y=y,
            mode="lines",
            line=dict(color=color, width=5 if edge.epoch_crossing else 1, dash=dash),
            hoverinfo="skip",
            showlegend=False,
        ))

    nodes = graph.sorted_nodes()
    hover_text = []
    for node in nodes:
        text = f"<b>Slot {node.slot}</b> (epoch {node.epoch})<br>"
        text += f"Leader: {node.leader[:16]}<br>"
        if node.transactions is not None:
            text += f"Transactions: {node.transactions}<br>"
        if node.votes:
            pct = stake_percent(node.stake, node.total_stake or 0)
            text += f"Votes: {node.votes}, stake: {format_stake(node.stake)} ({pct:.1f}%)"
        hover_text.append(text)

    fig.add_trace(go.Scatter(
        x=[node.slot for node in nodes],
        y=[lanes[node.slot] for node in nodes],
        mode="markers+text",
        marker=dict(
            size=[14 + min(node.votes, 10) * 3 for node in nodes],
            color=["#2C3E50" if node.is_tip else "white" for node in nodes],
            line=dict(width=2, color="#2C3E50"),
        ),
        text=[str(node.slot) for node in nodes],
        textposition="top center",
        hovertext=hover_text,
        hoverinfo="text",
        showlegend=False,
    ))

    fig.update_layout(
        title="Fork Graph",
        xaxis_title="Slot",
        yaxis_title="Fork",
        height=500,
        hovermode="closest",
        yaxis=dict(tickmode="linear", tick0=0, dtick=1),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
    )

    return fig


def create_stake_by_slot_chart(analysis: Dict) -> go.Figure:
    """Bar chart of last-vote stake per slot, with absent votes as a final bar."""
    voted = [node for node in analysis["graph"].sorted_nodes() if node.votes]
    absent = analysis["absent"]

    labels = [str(node.slot) for node in voted]
    values = [lamports_to_sol(node.stake) for node in voted]
    colors = ["#45B7D1"] * len(voted)
    hover = [
        f"Slot {node.slot}<br>{node.votes} votes<br>{format_stake(node.stake)}"
        for node in voted
    ]

    if absent.votes:
        labels.append(UNKNOWN_SLOT)
        values.append(lamports_to_sol(absent.stake))
        colors.append(EDGE_COLORS["unknown"])
        hover.append(
            f"Absent<br>{absent.votes} votes<br>{format_stake(absent.stake)} ({absent.percent:.1f}%)"
        )

    fig = go.Figure(data=[go.Bar(
        x=labels,
        y=values,
        marker=dict(color=colors),
        hovertext=hover,
        hoverinfo="text",
    )])

    fig.update_layout(
        title="Last Vote Stake by Slot",
        xaxis_title="Slot",
        yaxis_title="Stake (SOL)",
        xaxis=dict(type="category"),
        height=350,
    )

    return fig


def create_fork_stake_pie(analysis: Dict) -> go.Figure:
    """Pie chart of the stake whose last vote lies on each fork."""
    summaries = [s for s in analysis["fork_summaries"] if s["stake"] > 0]

    fig = go.Figure(data=[go.Pie(
        labels=[f"Fork @ {s['tip']}" for s in summaries],
        values=[lamports_to_sol(s["stake"]) for s in summaries],
        textinfo="label+percent",
        hovertemplate="%{label}: %{value:.1f} SOL<br>%{percent}",
    )])

    fig.update_layout(
        title="Stake per Fork",
        height=350,
        showlegend=False,
    )

    return fig
