"""
Command-line interface for the wiring graph normalizer.

Usage:
    wiring-graph normalize graph.ndjson -o canonical.ndjson
    wiring-graph normalize graph.ndjson --strict
    wiring-graph analyze graph.ndjson --source battery_main --format text
"""

import json
import sys
from typing import Optional

import click

from .core.config import get_settings
from .core.errors import IssueLog, UnknownNodeError, WiringGraphError
from .core.logging import configure_logging
from .importers.ndjson_reader import read_ndjson
from .pipeline import NormalizationPipeline, PipelineResult
from .services.analysis_service import AnalysisReport, trace_power_path
from .utils.serialization import write_ndjson


def _run(input_file, strict: bool, repair: bool, synthesis: bool) -> PipelineResult:
    config = get_settings().model_copy(update={
        "strict_mode": strict,
        "auto_repair": repair,
        "synthesize_spatial": synthesis,
    })
    configure_logging(config)

    issues = IssueLog()
    try:
        records = read_ndjson(input_file, issues, strict=strict)
        return NormalizationPipeline(config).run(records, issues)
    except WiringGraphError as e:
        click.echo(f"Aborted: {e}", err=True)
        sys.exit(1)


def _echo_summary(result: PipelineResult) -> None:
    summary = result.summary()
    gates = result.quality_gates()
    click.echo(
        f"nodes={summary['nodes']} edges={summary['edges']} "
        f"errors={summary['errors']} warnings={summary['warnings']} repairs={summary['repairs']}",
        err=True,
    )
    for error in result.issues.errors:
        click.echo(f"  ERROR   [{error.code}] {error.message}", err=True)
    for warning in result.issues.warnings:
        click.echo(f"  WARNING [{warning.code}] {warning.message}", err=True)
    click.echo(f"quality gates: {'passed' if gates['passed'] else 'failed'}", err=True)


@click.group()
def cli():
    """Automotive wiring graph normalizer."""
    pass


@cli.command()
@click.argument('input_file', type=click.File('r', encoding='utf-8'))
@click.option('--output', '-o', type=click.File('w', encoding='utf-8'), default='-',
              help='Output file for canonical NDJSON (default: stdout)')
@click.option('--strict', is_flag=True, help='Abort on the first schema or integrity error')
@click.option('--repair/--no-repair', default=True, help='Apply field repairs')
@click.option('--synthesis/--no-synthesis', default=True, help='Synthesize missing spatial data')
def normalize(input_file, output, strict: bool, repair: bool, synthesis: bool):
    """Normalize an NDJSON wiring graph into canonical NDJSON."""
    result = _run(input_file, strict, repair, synthesis)
    write_ndjson(result.store, output)
    _echo_summary(result)


def _format_text(report: AnalysisReport, power_path: Optional[list]) -> str:
    power = report.power_distribution
    load = report.load_distribution
    lines = [
        f"Power distribution: {power.architecture} (confidence {power.confidence}, redundancy {power.redundancy})",
        f"Total load: {load.total_load}A",
    ]
    for zone, amps in sorted(load.load_by_zone.items()):
        lines.append(f"  {zone}: {amps}A")
    for recommendation in load.recommendations:
        lines.append(f"  ! {recommendation}")

    lines.append("Circuit families:")
    for name, analysis in report.family_analysis.items():
        lines.append(f"  {name}: {analysis.node_count} nodes, ~{analysis.estimated_power}A ({analysis.circuit_type})")

    lines.append("Patterns:")
    for match in report.patterns:
        mark = "x" if match.detected else " "
        lines.append(f"  [{mark}] {match.pattern} {match.confidence:.2f} {match.description}")

    if report.gauge_issues:
        lines.append("Wire gauge issues:")
        lines.extend(f"  {issue.message}" for issue in report.gauge_issues)

    electrical = report.electrical
    lines.append(f"Electrical rules: score {electrical.score}%, {'passed' if electrical.passed else 'failed'}")
    for result in electrical.results:
        if not result.passed or result.severity != "info":
            lines.append(f"  {result.rule} [{result.severity}] {result.message}")

    if power_path is not None:
        lines.append(f"Power path: {' -> '.join(power_path)}")
    return "\n".join(lines)


@cli.command()
@click.argument('input_file', type=click.File('r', encoding='utf-8'))
@click.option('--source', help='Node id to trace a power path from')
@click.option('--format', 'output_format', type=click.Choice(['json', 'text']), default='json',
              help='Report format')
def analyze(input_file, source: Optional[str], output_format: str):
    """Normalize a graph and print its topology analysis."""
    result = _run(input_file, strict=False, repair=True, synthesis=True)
    config = get_settings()
    report = result.analyze(config)

    power_path = None
    if source:
        try:
            power_path = trace_power_path(result.model, source, config.power_trace_max_depth)
        except UnknownNodeError as e:
            raise click.ClickException(str(e))

    if output_format == 'json':
        payload = report.to_dict()
        if power_path is not None:
            payload["power_path"] = {"source": source, "path": power_path}
        click.echo(json.dumps(payload, indent=2, sort_keys=True))
    else:
        click.echo(_format_text(report, power_path))


if __name__ == '__main__':
    cli()
