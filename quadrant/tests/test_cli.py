"""
Tests for the command-line interface.
"""

import json

import pytest

from ..cli import main


class TestCli:
    def test_validate(self, capsys):
        main(["validate"])

        out = capsys.readouterr().out
        assert "catalog: ok" in out
        assert "deck: ok" in out

    def test_play_reports_outcome(self, capsys):
        """Each turn prints a line, then the outcome."""
        main(["play", "--seed", "3", "--turns", "2"])

        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0].startswith("Turn ")
        assert lines[-1] in ("Victory!", "Defeat.") or lines[-1].startswith("Stopped after 2 turns")

    def test_snapshot_is_json(self, capsys):
        main(["snapshot", "--seed", "3", "--turns", "1"])

        data = json.loads(capsys.readouterr().out)
        assert data["turn"] >= 2 or data["game_over"]
        assert data["action_history"][0]["action_type"] == "setup_game"

    def test_no_command(self, capsys):
        with pytest.raises(SystemExit):
            main([])

        assert "usage" in capsys.readouterr().out
