"""Tests for the fork-graph command."""

import json

import pytest

import cli
from models import VoteAccountMode
from render import RenderResult

DOCUMENT = {
    "chain_states": [
        {"slot": 0, "parent_slot": None, "leader": "L", "vote_accounts": {
            "va": {"stake": 10, "vote_state": {"node_pubkey": "V", "votes": [{"slot": 0}]}},
        }},
        {"slot": 1, "parent_slot": 0, "leader": "L", "vote_accounts": {
            "va": {"stake": 10, "vote_state": {"node_pubkey": "V", "votes": [{"slot": 1}]}},
        }},
    ]
}


@pytest.fixture
def snapshot_path(tmp_path):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return str(path)


def test_parser_defaults():
    args = cli.build_parser().parse_args(["s.json", "out.dot"])

    assert args.include_all_votes is False
    assert args.vote_account_mode is VoteAccountMode.DISABLED


def test_parser_vote_account_mode():
    args = cli.build_parser().parse_args(["s.json", "out.dot", "--vote-account-mode", "with-history"])
    assert args.vote_account_mode is VoteAccountMode.WITH_HISTORY

    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["s.json", "out.dot", "--vote-account-mode", "all"])


def test_writes_dot_file(snapshot_path, tmp_path, capsys):
    output = tmp_path / "forks.dot"

    assert cli.run([snapshot_path, str(output), "--vote-account-mode", "last-only"]) == cli.EXIT_OK

    dot = output.read_text(encoding="utf-8")
    assert dot.startswith("digraph {")
    assert '"last vote V" -> "1"' in dot
    assert "Wrote" in capsys.readouterr().out


def test_inconsistent_snapshot_exits(tmp_path, capsys):
    document = json.loads(json.dumps(DOCUMENT))
    document["chain_states"][1]["vote_accounts"]["other"] = {"stake": 5, "vote_state": None}
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(document), encoding="utf-8")

    assert cli.run([str(path), str(tmp_path / "forks.dot")]) == cli.EXIT_BAD_SNAPSHOT
    assert "validator V" in capsys.readouterr().err


def test_missing_snapshot_exits(tmp_path):
    assert cli.run([str(tmp_path / "nope.json"), str(tmp_path / "forks.dot")]) == cli.EXIT_BAD_SNAPSHOT


def test_sink_failure_exits(snapshot_path, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(
        cli, "write_graph",
        lambda dot, path: RenderResult(path, ok=False, status=1, message="dot failed"),
    )

    assert cli.run([snapshot_path, str(tmp_path / "forks.pdf")]) == cli.EXIT_SINK_FAILED
    assert "dot failed" in capsys.readouterr().err


def test_undecodable_snapshot_exits(tmp_path, capsys):
    path = tmp_path / "snapshot.json"
    path.write_bytes(b'{"chain_states": [{"slot": 0, "leader": "\xff\xfe"}]}')

    assert cli.run([str(path), str(tmp_path / "forks.dot")]) == cli.EXIT_BAD_SNAPSHOT
    assert "Error:" in capsys.readouterr().err
