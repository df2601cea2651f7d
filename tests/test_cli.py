"""Tests for the CLI interface."""

from __future__ import annotations

import json
import subprocess

import pytest
from click.testing import CliRunner

from diffuse import __version__
from diffuse.analysis.models import AggregatedResult, FileRiskReport, RiskLevel, ScoredRisk
from diffuse.cli import main
from diffuse.constants import RiskFactor
from diffuse.pipeline import AnalysisRun
from diffuse.vcs.git import GitService

_real_get_git_root = GitService.get_git_root


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def repo(tmp_project):
    (tmp_project / ".git").mkdir()
    return tmp_project


def _result(total: float) -> AggregatedResult:
    risk = ScoredRisk(
        subject="formatName",
        factor=RiskFactor.RETURN_TYPE_CHANGED,
        points=total,
        explanation="Return type changed in `formatName`",
    )
    return AggregatedResult(
        total_risk_score=total,
        per_file={"src/lib/format.ts": FileRiskReport(
            total=total, detected_total=total, level=RiskLevel.LOW, risks=[risk]
        )},
    )


@pytest.fixture
def fake_run(monkeypatch):
    """Replace the pipeline with a canned result; returns the recorded calls."""
    calls = []
    state = {"total": 8.0}

    def run_analysis(root, base_ref=None, config=None, context=None, git=None):
        calls.append({"root": root, "base_ref": base_ref, "config": config})
        return AnalysisRun(result=_result(state["total"]), changes=[])

    monkeypatch.setattr("diffuse.pipeline.run_analysis", run_analysis)
    monkeypatch.setattr(GitService, "get_git_root", lambda self: self.root)
    return calls, state


def _git_fails(self, *args):
    return subprocess.CompletedProcess(
        ["git", *args], 128, "", "fatal: not a git repository (or any of the parent directories): .git"
    )


class TestCLIBasics:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "analyze" in result.output
        assert "graph" in result.output

    def test_missing_path(self, runner, tmp_path):
        result = runner.invoke(main, ["config", "--path", str(tmp_path / "nope")])
        assert result.exit_code == 1
        assert "does not exist" in result.output


class TestCLIConfig:
    def test_prints_defaults(self, runner, repo):
        result = runner.invoke(main, ["config", "--path", str(repo)])
        assert result.exit_code == 0
        assert "riskWeights" in result.output
        assert "largeChangePercentage" in result.output

    def test_reads_config_file(self, runner, repo):
        (repo / "diffuse.config.json").write_text(json.dumps({"thresholds": {"highRisk": 65}}))
        result = runner.invoke(main, ["config", "--path", str(repo)])
        assert result.exit_code == 0
        assert "65" in result.output

    def test_invalid_config(self, runner, repo):
        (repo / "diffuse.config.json").write_text(json.dumps({"thresholds": {"mediumRisk": 99}}))
        result = runner.invoke(main, ["config", "--path", str(repo)])
        assert result.exit_code == 1
        assert "mediumRisk" in result.output


class TestCLIGraph:
    def test_graph_node(self, runner, repo):
        result = runner.invoke(main, ["graph", "src/lib/format.ts", "--path", str(repo)])
        assert result.exit_code == 0
        assert "Blast Radius" in result.output
        assert "src/pages/home.ts" in result.output

    def test_unknown_file(self, runner, repo):
        result = runner.invoke(main, ["graph", "src/nope.ts", "--path", str(repo)])
        assert result.exit_code == 0
        assert "not part of the usage graph" in result.output


class TestCLIAnalyze:
    def test_plain(self, runner, repo, fake_run):
        calls, _ = fake_run
        result = runner.invoke(main, ["analyze", "--path", str(repo), "--since", "origin/main"])
        assert result.exit_code == 0
        assert "RISK ANALYSIS REPORT" in result.output
        assert "src/lib/format.ts" in result.output
        assert calls[0]["base_ref"] == "origin/main"

    def test_json(self, runner, repo, fake_run):
        result = runner.invoke(main, ["analyze", "--path", str(repo), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["total_risk_score"] == 8.0
        assert data["per_file"]["src/lib/format.ts"]["risks"][0]["factor"] == "RETURN_TYPE_CHANGED"

    def test_markdown_to_file(self, runner, repo, fake_run, tmp_path):
        out = tmp_path / "report.md"
        result = runner.invoke(
            main, ["analyze", "--path", str(repo), "--format", "markdown", "-o", str(out)]
        )
        assert result.exit_code == 0
        assert "Report written" in result.output
        assert out.read_text(encoding="utf-8").startswith("# 🚨 Risk Analysis Report")

    def test_plain_to_file(self, runner, repo, fake_run, tmp_path):
        out = tmp_path / "report.txt"
        result = runner.invoke(main, ["analyze", "--path", str(repo), "-o", str(out)])
        assert result.exit_code == 0
        assert "RISK ANALYSIS REPORT" in out.read_text(encoding="utf-8")

    def test_no_tests_flag(self, runner, repo, fake_run):
        calls, _ = fake_run
        result = runner.invoke(main, ["analyze", "--path", str(repo), "--no-tests"])
        assert result.exit_code == 0
        assert not calls[0]["config"].analysis.include_test_coverage
        assert "no test deltas" not in result.output

    def test_no_suggestions(self, runner, repo, fake_run):
        result = runner.invoke(main, ["analyze", "--path", str(repo), "--no-suggestions"])
        assert result.exit_code == 0
        assert "Review all consumers" not in result.output

    def test_fail_on_high_risk(self, runner, repo, fake_run):
        _, state = fake_run
        state["total"] = 60.0
        result = runner.invoke(main, ["analyze", "--path", str(repo), "--fail-on-high-risk"])
        assert result.exit_code == 1
        assert "high-risk" in result.output

    def test_below_threshold_passes(self, runner, repo, fake_run):
        result = runner.invoke(main, ["analyze", "--path", str(repo), "--fail-on-high-risk"])
        assert result.exit_code == 0

    def test_high_risk_without_flag_passes(self, runner, repo, fake_run):
        _, state = fake_run
        state["total"] = 90.0
        result = runner.invoke(main, ["analyze", "--path", str(repo)])
        assert result.exit_code == 0

    def test_not_a_git_repository(self, runner, tmp_path, fake_run, monkeypatch):
        calls, _ = fake_run
        monkeypatch.setattr(GitService, "get_git_root", _real_get_git_root)
        monkeypatch.setattr(GitService, "_git", _git_fails)
        result = runner.invoke(
            main, ["analyze", "--path", str(tmp_path), "--fail-on-high-risk"]
        )
        assert result.exit_code == 1
        assert "Not in a git repository" in result.output
        assert calls == []

    def test_analyzes_from_git_top_level(self, runner, repo, fake_run, monkeypatch):
        calls, _ = fake_run
        monkeypatch.setattr(GitService, "get_git_root", lambda self: repo)
        result = runner.invoke(main, ["analyze", "--path", str(repo / "src")])
        assert result.exit_code == 0
        assert calls[0]["root"] == repo
