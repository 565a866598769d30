"""
tests/test_cli.py
=================
End-to-end tests for the ``splitscan`` command, run through typer's
CliRunner against files written to tmp_path.

Tree set used throughout: the two-lineage example ``((A,Q1),(B,C));``
which yields A,Q1 = 1 and B,Q1 = 0.
"""

import os
import sys

import pytest
from typer.testing import CliRunner

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from splitscan import __version__
from splitscan.cli import app

runner = CliRunner()

EXPECTED_CSV = "lineage,query,matches\nA,Q1,1\nB,Q1,0\n"


@pytest.fixture
def treeset(tmp_path):
    path = tmp_path / "trees.nwk"
    path.write_text("((A,Q1),(B,C));\n(A,Q1,(B,C))\n")
    return path


def write_config(tmp_path, lineages="[B, A]", output=None, backend=None):
    lines = [f"lineages: {lineages}", "queries: [Q1]"]
    options = []
    if output is not None:
        options.append(f"  output: '{output}'")
    if backend is not None:
        options.append(f"  backend: {backend}")
    if options:
        lines.append("options:")
        lines.extend(options)
    path = tmp_path / "run.yaml"
    path.write_text("\n".join(lines) + "\n")
    return path


class TestRun:
    def test_writes_csv(self, tmp_path, treeset):
        out = tmp_path / "out.csv"
        config = write_config(tmp_path, output=out)
        result = runner.invoke(app, ["--treeset", str(treeset), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert "Results written to" in result.output
        assert out.read_text() == "lineage,query,matches\nA,Q1,2\nB,Q1,0\n"

    def test_output_option_overrides_config(self, tmp_path, treeset):
        config = write_config(tmp_path, output=tmp_path / "ignored.csv")
        out = tmp_path / "chosen.csv"
        result = runner.invoke(
            app, ["-t", str(treeset), "-c", str(config), "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert out.exists()
        assert not (tmp_path / "ignored.csv").exists()

    @pytest.mark.parametrize("backend", ["python", "cpu-parallel"])
    def test_backend_option(self, tmp_path, backend):
        treeset = tmp_path / "one.nwk"
        treeset.write_text("((A,Q1),(B,C));\n")
        out = tmp_path / "out.csv"
        config = write_config(tmp_path)
        result = runner.invoke(
            app,
            ["-t", str(treeset), "-c", str(config), "-o", str(out), "-b", backend],
        )
        assert result.exit_code == 0, result.output
        assert out.read_text() == EXPECTED_CSV

    def test_backend_from_config(self, tmp_path, treeset):
        out = tmp_path / "out.csv"
        config = write_config(tmp_path, output=out, backend="python")
        result = runner.invoke(app, ["-t", str(treeset), "-c", str(config), "-q"])
        assert result.exit_code == 0, result.output
        assert "Results written to" not in result.output
        assert out.exists()

    def test_show_splits(self, tmp_path, treeset):
        out = tmp_path / "out.csv"
        config = write_config(tmp_path, output=out)
        result = runner.invoke(
            app, ["-t", str(treeset), "-c", str(config), "--show-splits"]
        )
        assert result.exit_code == 0, result.output


class TestErrors:
    def test_missing_output(self, tmp_path, treeset):
        config = write_config(tmp_path)
        result = runner.invoke(app, ["-t", str(treeset), "-c", str(config)])
        assert result.exit_code == 1
        assert "No output file" in result.output

    def test_label_not_in_trees(self, tmp_path, treeset):
        config = write_config(tmp_path, lineages="[A, Z]", output=tmp_path / "o.csv")
        result = runner.invoke(app, ["-t", str(treeset), "-c", str(config)])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert not (tmp_path / "o.csv").exists()

    def test_invalid_config(self, tmp_path, treeset):
        config = write_config(tmp_path, lineages="[A, A]", output=tmp_path / "o.csv")
        result = runner.invoke(app, ["-t", str(treeset), "-c", str(config)])
        assert result.exit_code == 1
        assert "Duplicate" in result.output

    def test_malformed_yaml(self, tmp_path, treeset):
        config = tmp_path / "run.yaml"
        config.write_text("lineages: [A, B\nqueries: [Q1]\n")
        result = runner.invoke(
            app, ["-t", str(treeset), "-c", str(config), "-o", str(tmp_path / "o.csv")]
        )
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid YAML" in result.output

    def test_malformed_tree(self, tmp_path):
        treeset = tmp_path / "bad.nwk"
        treeset.write_text("((A,Q1),(B,C);\n")
        config = write_config(tmp_path, output=tmp_path / "o.csv")
        result = runner.invoke(app, ["-t", str(treeset), "-c", str(config)])
        assert result.exit_code == 1

    def test_missing_treeset(self, tmp_path):
        config = write_config(tmp_path, output=tmp_path / "o.csv")
        result = runner.invoke(
            app, ["-t", str(tmp_path / "absent.nwk"), "-c", str(config)]
        )
        assert result.exit_code == 2

    def test_unknown_backend(self, tmp_path, treeset):
        config = write_config(tmp_path, output=tmp_path / "o.csv")
        result = runner.invoke(
            app, ["-t", str(treeset), "-c", str(config), "-b", "cuda"]
        )
        assert result.exit_code == 2


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
