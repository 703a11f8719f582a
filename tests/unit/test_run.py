"""Tests for the command line runner."""

import sys

from image_suggestions import run


def run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["image-suggestions", *args])
    return run.main()


class TestMain:
    """Test run.main."""

    def test_load_directory_then_counts(self, monkeypatch, capsys, tmp_path, db_path, scenario_tsv, large_tsv):
        """Should load every file, then report per-partition counts."""
        config = tmp_path / "missing.yaml"
        assert run_main(
            monkeypatch, "--config", str(config), "--db", str(db_path),
            "--data-dir", str(scenario_tsv.parent),
        ) == 0

        assert run_main(monkeypatch, "--config", str(config), "--db", str(db_path), "--counts") == 0
        out = capsys.readouterr().out
        assert "arwiki\t2\t1" in out
        assert "enwiki\t30\t20" in out

    def test_load_single_file(self, monkeypatch, tmp_path, db_path, scenario_tsv):
        assert run_main(
            monkeypatch, "--config", str(tmp_path / "missing.yaml"), "--db", str(db_path),
            "--file", str(scenario_tsv), "--partition", "testwiki",
        ) == 0

    def test_bad_file_fails(self, monkeypatch, tmp_path, db_path, write_tsv):
        """Should exit non-zero when the file cannot be loaded."""
        path = write_tsv("arwiki.tsv", ["1\tbroken"])
        assert run_main(
            monkeypatch, "--config", str(tmp_path / "missing.yaml"), "--db", str(db_path),
            "--file", str(path),
        ) == 1

    def test_empty_store_counts(self, monkeypatch, capsys, tmp_path, db_path):
        assert run_main(
            monkeypatch, "--config", str(tmp_path / "missing.yaml"), "--db", str(db_path), "--counts",
        ) == 0
        assert "No partitions loaded." in capsys.readouterr().out
