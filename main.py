import json
from typing import Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

from analysis import analyze_snapshot
from dot import assemble_graph
from models import GraphConfig, InconsistentSnapshotError, VoteAccountMode, lamports_to_sol, stake_percent
from snapshot import SnapshotError, parse_snapshot
from visualizations import (
    create_fork_graph_figure,
    create_fork_stake_pie,
    create_stake_by_slot_chart,
    format_stake,
)

st.set_page_config(page_title="Fork Graph", layout="wide", page_icon="🔱")


@st.cache_data(ttl=300)  # Cache snapshots for 5 minutes
def fetch_snapshot_document(url: str) -> Optional[Dict]:
    """Cached fetch of a raw snapshot document."""
    try:
        response = requests.get(url, timeout=30)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        st.error(f"Failed to fetch snapshot: {e}")
        return None


def validator_rows(analysis: Dict) -> List[Dict]:
    rows = []
    for validator, last_vote in analysis["last_votes"].items():
        rows.append({
            "validator": validator,
            "last_vote_slot": last_vote.slot,
            "stake_sol": lamports_to_sol(last_vote.stake),
            "stake_pct": round(stake_percent(last_vote.stake, last_vote.total_stake), 1),
            "root_slot": last_vote.vote_state.root_slot,
            "on_graph": last_vote.slot in analysis["graph"],
        })
    return rows


def main():
    st.title("🔱 Fork Graph")
    st.markdown("*Competing forks and the stake behind each validator's last vote*")

    with st.sidebar:
        st.header("⚙️ Settings")

        snapshot_url = st.text_input("Snapshot URL", help="HTTP endpoint serving a snapshot document")
        uploaded = st.file_uploader("...or snapshot file", type=["json"])

        st.markdown("---")

        include_all_votes = st.checkbox("Include all votes", value=False)
        vote_account_mode = st.selectbox(
            "Vote account mode",
            options=list(VoteAccountMode),
            format_func=lambda mode: mode.value,
        )

        st.markdown("---")

        analyze_button = st.button("🔍 Analyze", type="primary", use_container_width=True)

    if not analyze_button:
        return

    if uploaded is not None:
        try:
            document = json.load(uploaded)
        except ValueError as e:
            st.error(f"Invalid snapshot file: {e}")
            return
    elif snapshot_url:
        with st.spinner("Fetching snapshot..."):
            document = fetch_snapshot_document(snapshot_url)
        if document is None:
            return
    else:
        st.warning("Provide a snapshot URL or file")
        return

    config = GraphConfig(include_all_votes=include_all_votes, vote_account_mode=vote_account_mode)

    try:
        analysis = analyze_snapshot(parse_snapshot(document))
    except (SnapshotError, InconsistentSnapshotError) as e:
        st.error(str(e))
        return

    absent = analysis["absent"]

    st.markdown("## 📊 Fork Overview")

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        if analysis["num_forks"] <= 1:
            st.metric("✅ Fork Status", "Unified", help="A single chain tip")
        else:
            st.metric("⚠️ Fork Count", analysis["num_forks"], help="Number of chain tips")

    with col2:
        st.metric("🗳️ Validators", analysis["total_validators"], help="Validators with a recorded vote")

    with col3:
        divergence = analysis["divergence_slot"]
        st.metric("🔀 Divergence Slot", divergence if divergence is not None else "-")

    with col4:
        st.metric(
            "❓ Absent Stake",
            format_stake(absent.stake),
            f"{absent.votes} votes ({absent.percent:.1f}%)" if absent.votes else None,
            delta_color="off",
            help="Stake whose last vote is outside the rendered forks",
        )

    st.markdown("---")

    tab1, tab2, tab3 = st.tabs(["🌳 Fork Graph", "📈 Stake by Slot", "🥧 Stake per Fork"])

    with tab1:
        st.plotly_chart(create_fork_graph_figure(analysis), use_container_width=True)

    with tab2:
        st.plotly_chart(create_stake_by_slot_chart(analysis), use_container_width=True)

    with tab3:
        st.plotly_chart(create_fork_stake_pie(analysis), use_container_width=True)

    st.markdown("## 🔍 Fork Details")

    if analysis["fork_summaries"]:
        df = pd.DataFrame(analysis["fork_summaries"])
        df["stake"] = df["stake"].map(format_stake)
        st.dataframe(df, use_container_width=True, hide_index=True)

    with st.expander("📋 Validator Last Votes", expanded=False):
        rows = validator_rows(analysis)
        if rows:
            st.dataframe(
                pd.DataFrame(rows).sort_values(["last_vote_slot", "validator"]),
                use_container_width=True,
                hide_index=True,
            )
        else:
            st.caption("No validator has a recorded vote")

    dot = assemble_graph(
        analysis["graph"],
        analysis["last_votes"],
        absent,
        analysis["all_votes"],
        config,
    )
    st.download_button("💾 Download DOT", dot, file_name="forks.dot", mime="text/vnd.graphviz")


if __name__ == "__main__":
    main()
