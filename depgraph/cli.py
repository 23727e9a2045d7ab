"""Command-line entry point.

    depgraph analyze --service api=./services/api --service web=./web --database postgres
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
from pathlib import Path

import click

from depgraph import __version__
from depgraph.boundary.extraction import CancelToken
from depgraph.config import AnalysisConfig
from depgraph.core.errors import DepGraphError
from depgraph.models.types import DetectedDatabase, ServiceSource, UnresolvedPolicy
from depgraph.pipeline import AnalysisResult, analyze


def _parse_service(value: str) -> ServiceSource:
    name, sep, root = value.partition("=")
    if not sep or not name.strip() or not root.strip():
        raise click.BadParameter(f"expected NAME=PATH, got {value!r}")
    return ServiceSource(name=name.strip(), root=Path(root.strip()))


def _format_table(result: AnalysisResult) -> str:
    lines = [f"{'NODE':<28} {'SCORE':>5}  {'DIRECT':>6} {'INDIRECT':>8} {'DBS':>3}  TIER"]
    for report in result.impact:
        lines.append(
            f"{report.service:<28} {report.criticality_score:>5}  "
            f"{len(report.direct_dependents):>6} {len(report.indirect_dependents):>8} "
            f"{len(report.databases):>3}  {report.recommendation.value}"
        )
    return "\n".join(lines)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True, help="-v for info logs, -vv for debug.")
def cli(verbose: int) -> None:
    """depgraph - service dependency and blast radius analyzer."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s", stream=sys.stderr)


@cli.command("analyze")
@click.option("--service", "services", multiple=True, required=True, help="NAME=PATH, repeatable.")
@click.option("--database", "databases", multiple=True, help="Detected database type, repeatable.")
@click.option("--placeholders", is_flag=True, help="Keep unresolved HTTP targets as external nodes.")
@click.option("--max-workers", type=click.IntRange(min=1), default=None)
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None, help="Seconds.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "mermaid", "table"]),
    default="json",
    show_default=True,
)
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None)
def analyze_command(
    services: tuple[str, ...],
    databases: tuple[str, ...],
    placeholders: bool,
    max_workers: int | None,
    timeout: float | None,
    output_format: str,
    output: Path | None,
) -> None:
    """Map dependencies between services and rank them by blast radius."""
    sources = [_parse_service(value) for value in services]

    config = AnalysisConfig()
    if placeholders:
        config = dataclasses.replace(config, unresolved_policy=UnresolvedPolicy.PLACEHOLDER)
    if max_workers is not None:
        config = dataclasses.replace(config, max_workers=max_workers)

    cancel = CancelToken.with_timeout(timeout) if timeout is not None else None

    try:
        result = analyze(
            sources,
            detected_databases=[DetectedDatabase(type=db) for db in databases],
            config=config,
            cancel=cancel,
        )
    except DepGraphError as exc:
        raise click.ClickException(str(exc)) from exc

    if output_format == "mermaid":
        text = result.diagram
    elif output_format == "table":
        text = _format_table(result)
    else:
        text = json.dumps(result.to_dict(), indent=2)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n", encoding="utf-8")
        click.echo(f"Wrote {output_format} report to {output}", err=True)
    else:
        click.echo(text)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
