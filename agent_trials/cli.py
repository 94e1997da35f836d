"""
Command line interface for Agent Trials.

Usage:
    agent-trials run tests/ --agents fleet.yaml
    agent-trials run tests/pricing.yaml --agents fleet.yaml --format markdown -o report.md
    agent-trials list tests/
    agent-trials validate tests/
    agent-trials history pricing-001 --db ~/.agent_trials/trials.db
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from . import __version__
from .client import LLMClient
from .config import Config
from .evaluation.judge import Judge
from .evaluation.planner import Planner
from .exceptions import AgentTrialsError, TestCaseError
from .execution.agents import AgentRegistry, InMemoryAgentRegistry
from .execution.dispatcher import Dispatcher
from .execution.supervisor import HealthCheckSupervisor
from .execution.transport import HttpAgentTransport
from .models.result import BatchResult
from .models.test_case import TestCase, load_test_cases
from .orchestration.runner import TestRunner
from .orchestration.telemetry import JsonlTelemetrySink, TelemetryBroadcaster
from .providers import EnvProviderResolver
from .reporting.reporter import Reporter
from .storage.memory import InMemoryStore
from .storage.sqlite import SQLiteStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool, quiet: bool):
    """Configure logging based on verbosity.

    Args:
        verbose: Enable debug logging
        quiet: Suppress all but errors
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def load_config(config_path: Optional[Path]) -> Config:
    base = Config.from_yaml(config_path) if config_path else Config.default()
    return Config.from_env(base)


def load_cases_or_exit(path: Path) -> List[TestCase]:
    try:
        cases = load_test_cases(path)
    except TestCaseError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not cases:
        click.echo(f"No test cases found in {path}")
        sys.exit(1)
    return cases


def open_store(config: Config, db: Optional[Path]):
    """SQLite when persistence is on (or --db is given), memory otherwise."""
    if db is not None:
        return SQLiteStore(db)
    if config.persistence.enabled:
        return SQLiteStore(config.persistence.database_path)
    return InMemoryStore()


async def run_batch(
    config: Config,
    registry: AgentRegistry,
    store,
    telemetry: TelemetryBroadcaster,
    test_case_ids: List[str],
) -> BatchResult:
    """Wire the pipeline together and run the given cases."""
    llm = LLMClient(EnvProviderResolver(config.llm.provider_order), config.llm)

    async with HttpAgentTransport(config.agents) as transport:
        dispatcher = Dispatcher(
            registry,
            HealthCheckSupervisor(registry, config.agents),
            transport,
        )
        runner = TestRunner(
            store,
            Planner(llm, registry),
            dispatcher,
            Judge(llm),
            telemetry,
        )
        return await runner.run_all(test_case_ids)


@click.group()
@click.version_option(__version__)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Quiet output (errors only)")
def cli(verbose: bool, quiet: bool):
    """Agent Trials - behavior tests for AI agents, graded by an LLM judge."""
    setup_logging(verbose, quiet)


@cli.command()
@click.argument("tests_path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--agents", "-a", "agents_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Agent fleet YAML file",
)
@click.option("--ids", multiple=True, help="Only run these test case ids (repeatable)")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to config YAML",
)
@click.option("--db", type=click.Path(dir_okay=False, path_type=Path), help="SQLite database path")
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["summary", "json", "markdown"]),
    default="summary",
    help="Output format (default: summary)",
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Output file path")
def run(
    tests_path: Path,
    agents_path: Path,
    ids: Tuple[str, ...],
    config_path: Optional[Path],
    db: Optional[Path],
    output_format: str,
    output: Optional[Path],
):
    """Run test cases against agents.

    Exit code is 0 when everything passed, 1 when a test failed and 2 when
    a test ended in error.

    Example:
        agent-trials run tests/ --agents fleet.yaml --format markdown -o report.md
    """
    try:
        config = load_config(config_path)
        registry = InMemoryAgentRegistry.from_yaml(agents_path)
        store = open_store(config, db)
    except AgentTrialsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    cases = load_cases_or_exit(tests_path)

    invalid = [(c, c.validate()) for c in cases]
    invalid = [(c, issues) for c, issues in invalid if issues]
    if invalid:
        for case, issues in invalid:
            click.echo(f"❌ [{case.id}] {case.name}: {'; '.join(issues)}", err=True)
        sys.exit(1)

    for case in cases:
        store.create(case)

    selected = list(ids) if ids else [c.id for c in cases]
    click.echo(f"Found {len(cases)} test case(s), running {len(selected)}")

    telemetry = TelemetryBroadcaster()
    if config.telemetry.enabled:
        telemetry.subscribe(JsonlTelemetrySink(config.telemetry.log_dir).broadcast)

    try:
        batch = asyncio.run(run_batch(config, registry, store, telemetry, selected))
    except KeyboardInterrupt:
        click.echo("\nInterrupted")
        sys.exit(130)

    reporter = Reporter()
    report = reporter.generate(batch.runs, cases)

    if output_format == "json":
        text = reporter.to_json(report)
    elif output_format == "markdown":
        text = reporter.to_markdown(report)
    else:
        text = reporter.to_summary(report)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        click.echo(f"\nReport saved to: {output}")
    else:
        click.echo(text)

    if report.errors > 0:
        sys.exit(2)
    elif report.failed > 0:
        sys.exit(1)
    sys.exit(0)


@cli.command(name="list")
@click.argument("tests_path", type=click.Path(exists=True, path_type=Path))
def list_tests(tests_path: Path):
    """List test cases."""
    cases = load_cases_or_exit(tests_path)

    click.echo(f"\nTest cases in {tests_path}:\n")
    for case in cases:
        if case.is_behavior_driven:
            target = "planned"
        else:
            target = f"agent {case.agent_id}"
        project = f" [project {case.project_id}]" if case.project_id else ""
        click.echo(f"  [{case.id}] {case.name} ({target}){project}")

    click.echo(f"\nTotal: {len(cases)} test case(s)")


@cli.command()
@click.argument("tests_path", type=click.Path(exists=True, path_type=Path))
def validate(tests_path: Path):
    """Validate test case files."""
    cases = load_cases_or_exit(tests_path)

    click.echo("\nValidation Results:\n")
    valid = 0
    for case in cases:
        issues = case.validate()
        status = "✅" if not issues else "❌"
        click.echo(f"{status} [{case.id}] {case.name}")
        for issue in issues:
            click.echo(f"   ⚠️  {issue}")
        if not issues:
            valid += 1

    click.echo(f"\nSummary: {valid}/{len(cases)} valid")
    sys.exit(0 if valid == len(cases) else 1)


@cli.command()
@click.argument("test_id")
@click.option("--db", type=click.Path(dir_okay=False, path_type=Path), help="SQLite database path")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--limit", "-n", type=int, default=None, help="Number of runs to show")
def history(test_id: str, db: Optional[Path], config_path: Optional[Path], limit: Optional[int]):
    """Show recent runs of a test case, newest first."""
    try:
        config = load_config(config_path)
        path = db or config.persistence.database_path
        if not path.exists():
            click.echo(f"No database at {path}")
            sys.exit(1)
        runs = SQLiteStore(path).find_by_test_case(
            test_id, limit=limit or config.persistence.history_limit
        )
    except AgentTrialsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not runs:
        click.echo(f"No runs found for {test_id}")
        return

    click.echo(f"\nRuns of {test_id}:\n")
    for r in runs:
        click.echo(f"  {r.created_at.strftime('%Y-%m-%d %H:%M:%S')}  {r.summary()}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
