"""Command-line interface for Diffuse."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.logging import RichHandler

from diffuse import __version__
from diffuse.config import ResolvedConfig, find_repo_root, load_config
from diffuse.exceptions import DiffuseError
from diffuse.ui.console import Console

console = Console()


def _setup_logging(verbose: bool) -> None:
    """Route `diffuse.*` loggers to stderr through rich."""
    logger = logging.getLogger("diffuse")
    logger.handlers.clear()
    handler = RichHandler(
        console=Console(file=sys.stderr).console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def _get_repo_root(path: str | None = None) -> Path:
    """Find the repository root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return find_repo_root(root) or root

    root = find_repo_root()
    if root is None:
        console.error("Not in a git repository. Run from a repository or pass --path.")
        sys.exit(1)
    return root


def _load(root: Path, config_path: str | None) -> ResolvedConfig:
    try:
        return load_config(root, config_path)
    except DiffuseError as e:
        console.error(str(e))
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="diffuse")
def main():
    """Diffuse - regression risk scoring for JS/TS change sets."""
    pass


@main.command()
@click.option("--since", "-s", default=None, help="Base ref to diff against (default: working tree).")
@click.option("--path", "-p", default=None, help="Path to the repository root.")
@click.option("--config", "config_path", default=None, help="Path to a configuration file.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["plain", "markdown", "json"]),
    default="plain",
    help="Output format.",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Write the report to a file instead of stdout.")
@click.option("--fail-on-high-risk", is_flag=True,
              help="Exit with status 1 when the total score reaches the high-risk threshold.")
@click.option("--suggestions/--no-suggestions", default=None,
              help="Show reviewer suggestions for each risk.")
@click.option("--tests/--no-tests", default=None, help="Run the test coverage heuristic.")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging and skipped-file details.")
def analyze(
    since: str | None,
    path: str | None,
    config_path: str | None,
    output_format: str,
    output: str | None,
    fail_on_high_risk: bool,
    suggestions: bool | None,
    tests: bool | None,
    verbose: bool,
):
    """Score the regression risk of the current change set.

    Local usage:

        diffuse analyze --since origin/main

    In CI:

        diffuse analyze --since origin/main --format markdown --output report.md
    """
    _setup_logging(verbose)
    root = _get_repo_root(path)
    config = _load(root, config_path)
    if tests is not None:
        config = config.with_analysis(include_test_coverage=tests)
    show_suggestions = config.reporting.include_suggestions if suggestions is None else suggestions
    show_tests = config.analysis.include_test_coverage
    verbose_stats = verbose or config.reporting.verbose_stats

    from diffuse.pipeline import run_analysis
    from diffuse.vcs.git import GitService
    from diffuse.vcs.github import detect_github_context

    try:
        root = GitService(root).get_git_root()
        run = run_analysis(root, base_ref=since, config=config, context=detect_github_context())
    except DiffuseError as e:
        console.error(str(e))
        sys.exit(1)
    result = run.result

    if output_format == "json":
        text = result.model_dump_json(indent=2)
        _emit(text, output)
    elif output_format == "markdown":
        from diffuse.report.markdown import render_markdown

        text = render_markdown(
            result, config, suggestions=show_suggestions, tests=show_tests, verbose=verbose_stats
        )
        _emit(text, output)
    elif output:
        with open(output, "w", encoding="utf-8") as f:
            Console(file=f, no_color=True).show_report(
                result, config, suggestions=show_suggestions, tests=show_tests, verbose=verbose_stats
            )
    else:
        console.show_report(
            result, config, suggestions=show_suggestions, tests=show_tests, verbose=verbose_stats
        )

    if output:
        console.success(f"Report written to {output}")

    if fail_on_high_risk and result.total_risk_score >= config.thresholds.high_risk:
        console.error(
            f"Total risk score {result.total_risk_score:.2f} reaches the high-risk "
            f"threshold ({config.thresholds.high_risk:g})"
        )
        sys.exit(1)


def _emit(text: str, output: str | None) -> None:
    if output:
        Path(output).write_text(text, encoding="utf-8")
    else:
        click.echo(text)


@main.command()
@click.argument("file")
@click.option("--path", "-p", default=None, help="Path to the repository root.")
@click.option("--config", "config_path", default=None, help="Path to a configuration file.")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging.")
def graph(file: str, path: str | None, config_path: str | None, verbose: bool):
    """Show blast radius, dependents and subsystems of FILE."""
    _setup_logging(verbose)
    root = _get_repo_root(path)
    config = _load(root, config_path)

    from diffuse.graph.builder import UsageGraphBuilder
    from diffuse.graph.query import blast_radius, max_dependency_depth, transitive_dependents

    usage = UsageGraphBuilder(root, config).build()

    rel = usage.relative(usage.key(file))

    dependents = [usage.relative(d) for d in transitive_dependents(usage, rel)]
    console.show_graph_node(
        rel,
        usage.node(rel),
        blast_radius(usage, rel),
        dependents,
        depth=max_dependency_depth(usage, rel),
    )


@main.command("config")
@click.option("--path", "-p", default=None, help="Path to the repository root.")
@click.option("--config", "config_path", default=None, help="Path to a configuration file.")
def config_cmd(path: str | None, config_path: str | None):
    """Print the resolved configuration."""
    root = _get_repo_root(path)
    config = _load(root, config_path)
    console.show_json(json.dumps(config.model_dump(mode="json", by_alias=True), indent=2))


if __name__ == "__main__":
    main()
