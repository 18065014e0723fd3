"""
Fork graph CLI entry point.

Render the competing forks of a ledger snapshot, with the stake behind each
validator's last vote.

Usage::

    fork-graph snapshot.json forks.pdf
    fork-graph http://localhost:8899/snapshot forks.dot --include-all-votes
    fork-graph snapshot.json forks.png --vote-account-mode with-history
"""

import argparse
import logging
import sys
from typing import List, Optional

import requests

from dot import graph_forks
from models import GraphConfig, InconsistentSnapshotError, VoteAccountMode
from render import write_graph
from snapshot import SnapshotError, open_snapshot

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_SNAPSHOT = 1
EXIT_SINK_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fork-graph",
        description="Create a Graphviz rendering of the forks in a ledger snapshot",
    )
    parser.add_argument("snapshot", help="Snapshot JSON file path or http(s) URL")
    parser.add_argument(
        "output",
        help="Output file; .dot writes raw text, any other extension is rendered by graphviz",
    )
    parser.add_argument(
        "--include-all-votes",
        action="store_true",
        help="Include all votes in the graph",
    )
    parser.add_argument(
        "--vote-account-mode",
        type=VoteAccountMode.parse,
        default=VoteAccountMode.DISABLED,
        metavar="{" + ",".join(mode.value for mode in VoteAccountMode) + "}",
        help="Specify if and how to graph vote accounts (default: disabled)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )
    return parser


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = GraphConfig(
        include_all_votes=args.include_all_votes,
        vote_account_mode=args.vote_account_mode,
    )

    try:
        chain_states = open_snapshot(args.snapshot)
        dot = graph_forks(chain_states, config)
    except (SnapshotError, InconsistentSnapshotError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_BAD_SNAPSHOT
    except (OSError, requests.RequestException) as e:
        logger.error("Unable to read snapshot %s: %s", args.snapshot, e)
        print(f"Unable to read snapshot {args.snapshot}: {e}", file=sys.stderr)
        return EXIT_BAD_SNAPSHOT

    result = write_graph(dot, args.output)
    if not result.ok:
        print(f"Unable to write {result.path}: {result.message or result.status}", file=sys.stderr)
        return EXIT_SINK_FAILED

    print(f"Wrote {result.path}")
    return EXIT_OK


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
