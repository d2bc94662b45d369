"""
CLI Tests - Verify the command-line host.
"""

import json

from diskscan.orchestrator import main


class TestMain:
    """Tests for the diskscan CLI entry point."""

    def test_text_report(self, test_config, three_files, capsys):
        """The default output is a rendered tree per scan."""
        assert main([str(three_files), "--max-depth", "3", "--top-children", "2"]) == 0

        out = capsys.readouterr().out
        lines = out.splitlines()
        assert lines[0].endswith("flat/")
        assert "50 B" in lines[0]
        assert any(line.endswith("c.bin") for line in lines)
        assert any(line.endswith("… 1 more") for line in lines)

    def test_sorted_text_report(self, test_config, three_files, capsys):
        """--sort name lists children alphabetically instead of by size."""
        assert main([str(three_files), "--top-children", "0", "--sort", "name"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert [line.rsplit(" ", 1)[-1] for line in lines[1:4]] == ["a.bin", "b.bin", "c.bin"]

    def test_json_events(self, test_config, three_files, capsys):
        """--json prints every event as a JSON line, ending with scan_done."""
        assert main([str(three_files), "--json"]) == 0

        events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert events[-1]["event"] == "scan_done"
        assert events[-1]["payload"]["root"]["size"] == 60
        assert {e["event"] for e in events} <= {"scan_progress", "scan_done"}

    def test_progress_bars(self, test_config, nested_tree, capsys):
        """--progress renders to stderr and leaves the report intact."""
        assert main([str(nested_tree), "--progress", "--max-depth", "0"]) == 0

        captured = capsys.readouterr()
        assert "565 B" in captured.out.splitlines()[0]
        assert "scan " in captured.err

    def test_no_existing_paths(self, test_config, temp_dir, capsys):
        """Exit status 1 when no path was accepted."""
        assert main([str(temp_dir / "missing")]) == 1
        assert "No existing paths" in capsys.readouterr().err
