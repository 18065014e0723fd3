import json
import logging
from pathlib import Path
from typing import Dict, List

import requests

from models import EMPTY_VOTE_STATE, ChainState, Vote, VoteState

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """Raised for snapshot documents that cannot be turned into chain states."""


def parse_vote_state(data) -> VoteState:
    if data is None:
        return EMPTY_VOTE_STATE

    votes = tuple(
        Vote(slot=int(vote["slot"]), confirmation_count=int(vote.get("confirmation_count", 0)))
        for vote in data.get("votes", [])
    )
    root_slot = data.get("root_slot")
    return VoteState(
        node_pubkey=data["node_pubkey"],
        votes=votes,
        root_slot=int(root_slot) if root_slot is not None else None,
    )


def parse_chain_state(data: Dict) -> ChainState:
    vote_accounts = {}
    for address, account in (data.get("vote_accounts") or {}).items():
        vote_accounts[address] = (
            int(account.get("stake", 0)),
            parse_vote_state(account.get("vote_state")),
        )

    parent_slot = data.get("parent_slot")
    return ChainState(
        slot=int(data["slot"]),
        epoch=int(data.get("epoch", 0)),
        parent_slot=int(parent_slot) if parent_slot is not None else None,
        leader=data.get("leader", "unknown"),
        transaction_count=int(data.get("transaction_count", 0)),
        vote_accounts=vote_accounts,
    )


def parse_snapshot(document: Dict) -> List[ChainState]:
    """Turn a snapshot document into chain states, rejecting duplicate slots."""
    if not isinstance(document, dict) or not isinstance(document.get("chain_states"), list):
        raise SnapshotError("snapshot must be an object with a 'chain_states' list")

    chain_states = []
    seen = set()

    for i, data in enumerate(document["chain_states"]):
        try:
            chain = parse_chain_state(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(f"invalid chain state at index {i}: {e!r}") from e

        if chain.slot in seen:
            raise SnapshotError(f"duplicate chain state for slot {chain.slot}")
        seen.add(chain.slot)
        chain_states.append(chain)

    logger.debug("parsed %d chain states", len(chain_states))
    return chain_states


def load_snapshot(path: str) -> List[ChainState]:
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotError(f"{path} is not valid JSON: {e}") from e
    return parse_snapshot(document)


def fetch_snapshot(url: str, timeout: int = 30) -> List[ChainState]:
    """Fetch a snapshot document over HTTP."""
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    try:
        document = response.json()
    except ValueError as e:
        raise SnapshotError(f"{url} did not return JSON: {e}") from e
    return parse_snapshot(document)


def open_snapshot(source: str) -> List[ChainState]:
    """Load chain states from a file path or an http(s) URL."""
    if source.startswith(("http://", "https://")):
        return fetch_snapshot(source)
    return load_snapshot(source)
