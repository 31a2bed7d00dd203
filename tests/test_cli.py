"""
Tests for the driftgraph command-line interface.
"""

import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from cli.main import app
from engine import __version__
from tests.fixtures import ADD_V1_TS, ADD_V2_TS, API_DOC_MD, MATH_TS


runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """The CLI callback replaces loguru sinks; put the default one back."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def project(write_project):
    return write_project({"src/math.ts": ADD_V1_TS, "docs/api.md": API_DOC_MD})


class TestAnalyzeCommand:
    """Tests for `driftgraph analyze`."""

    def test_json_output(self, tmp_path):
        """Test the structural model as JSON."""
        path = tmp_path / "math.ts"
        path.write_text(MATH_TS)

        result = runner.invoke(app, ["analyze", str(path), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["language"] == "typescript"
        assert [f["name"] for f in data["functions"]] == ["add", "helper", "multiply"]

    def test_table_output(self, tmp_path):
        """Test the human-readable table."""
        path = tmp_path / "math.ts"
        path.write_text(MATH_TS)

        result = runner.invoke(app, ["analyze", str(path)])

        assert result.exit_code == 0
        assert "Calculator" in result.output

    def test_unsupported_file(self, tmp_path):
        """Test that unknown extensions exit with an error."""
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        result = runner.invoke(app, ["analyze", str(path)])

        assert result.exit_code == 1
        assert "unsupported file type" in result.output


class TestSnapshotAndDetect:
    """Tests for `driftgraph snapshot`, `detect` and `history`."""

    def test_snapshot_saves_file(self, project):
        """Test that a snapshot file is written."""
        result = runner.invoke(app, ["snapshot", str(project)])

        assert result.exit_code == 0
        assert "Snapshot Saved" in result.output
        assert len(list((project / ".driftgraph" / "snapshots").glob("snapshot-*.json"))) == 1

    def test_detect_without_baseline(self, project):
        """Test that the first run saves a baseline and succeeds."""
        result = runner.invoke(app, ["detect", str(project)])

        assert result.exit_code == 0
        assert "No previous snapshot found" in result.output

    def test_detect_breaking_change_fails(self, project):
        """Test that critical drift exits with status 1."""
        runner.invoke(app, ["detect", str(project)])
        (project / "src" / "math.ts").write_text(ADD_V2_TS)

        result = runner.invoke(app, ["detect", str(project), "--json"])

        assert result.exit_code == 1
        (file_result,) = json.loads(result.output)
        assert file_result["severity"] == "critical"
        assert file_result["impactAnalysis"]["affectedDocFiles"] == [str(project / "docs" / "api.md")]

    def test_detect_no_changes(self, project):
        """Test a clean second run."""
        runner.invoke(app, ["detect", str(project)])

        result = runner.invoke(app, ["detect", str(project), "--no-save"])

        assert result.exit_code == 0
        assert "No documentation drift detected" in result.output
        assert len(list((project / ".driftgraph" / "snapshots").glob("*.json"))) == 1

    def test_history(self, project):
        """Test the snapshot listing."""
        runner.invoke(app, ["snapshot", str(project)])

        result = runner.invoke(app, ["history", str(project)])

        assert result.exit_code == 0
        assert "Snapshot History" in result.output

    def test_history_empty(self, project):
        """Test the empty history message."""
        result = runner.invoke(app, ["history", str(project)])

        assert result.exit_code == 0
        assert "No snapshots recorded" in result.output


class TestCallgraphCommand:
    """Tests for `driftgraph callgraph`."""

    @pytest.fixture
    def chain(self, write_project):
        return write_project({"chain.ts": "function a() { b(); }\nfunction b() { c(); }\nfunction c() {}\n"})

    def test_json_output(self, chain):
        """Test the call graph as JSON with a depth override."""
        result = runner.invoke(app, ["callgraph", "a", str(chain), "--max-depth", "1", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["entryPoint"] == "a"
        assert data["maxDepthReached"] == 1
        assert [c["function"]["name"] for c in data["root"]["calls"]] == ["b"]

    def test_tree_output(self, chain):
        """Test the rich tree rendering."""
        result = runner.invoke(app, ["callgraph", "a", str(chain)])

        assert result.exit_code == 0
        assert "Max depth reached" in result.output


class TestVersion:
    """Tests for the global options."""

    def test_version(self):
        """Test --version prints and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
