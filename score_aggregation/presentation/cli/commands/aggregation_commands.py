"""Aggregation commands for the CLI."""

import asyncio
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import click
import yaml

from ....application.dto.aggregation_dto import AggregationSummaryDTO
from ....domain.aggregation.entities.aggregated_score import AggregatedScore
from ....domain.aggregation.exceptions import AggregationDomainError, ValidationError
from ....domain.aggregation.value_objects.aggregation_config import WeightingMethod
from ....domain.aggregation.value_objects.judge_score import JudgeScore
from ....domain.aggregation.value_objects.validation_result import ValidationResult
from ....domain.aggregation.value_objects.weight_update import WeightUpdate
from ....infrastructure.container import Container
from ..utils.config import load_aggregation_config, load_data_file
from ..utils.formatters import format_output


def _run(ctx, operation: Callable[[Container], Awaitable[Any]]) -> Any:
    """Run an async operation against a freshly wired container."""

    async def runner():
        container = Container(ctx.settings)
        try:
            return await operation(container)
        finally:
            await container.cleanup()

    return asyncio.run(runner())


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _echo_score(score: AggregatedScore, output_format: str) -> None:
    if output_format != "table":
        click.echo(format_output(score.to_dict(), output_format))
        return

    summary = AggregationSummaryDTO.from_score(score)
    click.echo(format_output(summary.to_row(), "table"))
    click.echo(
        format_output(
            [
                {
                    "criterion": c.criterion_id,
                    "weight": str(c.weight),
                    "score": str(c.aggregated_score),
                    "judges": c.judge_count,
                    "outliers": c.outlier_count,
                    "conflicts": c.conflict_count,
                }
                for c in summary.criteria
            ],
            "table",
        )
    )
    for recommendation in summary.recommendations:
        click.echo(f"- {recommendation}")


def _echo_validation(result: ValidationResult, output_format: str) -> None:
    if output_format != "table":
        click.echo(format_output(result.to_dict(), output_format))
        return

    click.echo(
        format_output(
            [
                {
                    "check": check.name,
                    "passed": check.passed,
                    "score": str(check.score),
                    "threshold": str(check.threshold),
                    "required": check.required,
                }
                for check in result.checks
            ],
            "table",
        )
    )
    click.echo(f"Passed: {result.passed}")
    for recommendation in result.recommendations:
        click.echo(f"- {recommendation}")


def _parse_assignments(values: Tuple[str, ...], option: str) -> Dict[str, str]:
    """Parse repeated KEY=VALUE options."""
    result = {}
    for value in values:
        key, separator, number = value.partition("=")
        if not separator or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got '{value}'", param_hint=option)
        result[key.strip()] = number.strip()
    return result


@click.command()
@click.argument("execution_id")
@click.option(
    "--file", "-f", type=click.Path(exists=True), required=True, help="JSON or YAML records file"
)
@click.option("--dry-run", is_flag=True, help="Check records without storing them")
@click.pass_obj
def ingest(ctx, execution_id, file, dry_run):
    """Store raw judge score records for an execution."""
    try:
        data = load_data_file(file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail(f"cannot read {file}: {e}")

    if isinstance(data, dict):
        data = data.get("records", [data])
    if not isinstance(data, list):
        _fail("records file must hold a record or a list of records")

    invalid = 0
    for record in data:
        try:
            JudgeScore.from_dict(record)
        except ValidationError as e:
            invalid += 1
            click.echo(f"Warning: record will be skipped at aggregation: {e}", err=True)

    if dry_run:
        click.echo(f"Would ingest {len(data)} records ({invalid} invalid)")
        return

    async def operation(container: Container) -> None:
        repository = await container.get_judge_score_repository()
        for record in data:
            await repository.add_record(execution_id, record)

    _run(ctx, operation)
    click.echo(f"Ingested {len(data)} records for {execution_id} ({invalid} invalid)")


@click.command()
@click.argument("execution_id")
@click.option("--rubric", "-r", type=click.Path(exists=True), help="Aggregation config file")
@click.pass_obj
def aggregate(ctx, execution_id, rubric):
    """Compute a new aggregated score version for an execution."""
    try:
        config = load_aggregation_config(ctx.config, rubric)
    except (AggregationDomainError, OSError, yaml.YAMLError) as e:
        _fail(f"invalid aggregation config: {e}")

    async def operation(container: Container) -> AggregatedScore:
        service = await container.get_aggregation_service()
        return await service.aggregate(execution_id, config)

    try:
        score = _run(ctx, operation)
    except AggregationDomainError as e:
        _fail(str(e))

    _echo_score(score, ctx.output_format)


@click.command()
@click.argument("execution_id")
@click.pass_obj
def history(ctx, execution_id):
    """List every stored version of an execution's aggregated score."""

    async def operation(container: Container) -> List[AggregatedScore]:
        service = await container.get_aggregation_service()
        return await service.get_history(execution_id)

    versions = _run(ctx, operation)
    if not versions:
        _fail(f"no aggregated score exists for execution {execution_id}")

    if ctx.output_format == "table":
        rows = [AggregationSummaryDTO.from_score(score).to_row() for score in versions]
        click.echo(format_output(rows, "table"))
    else:
        click.echo(format_output([score.to_dict() for score in versions], ctx.output_format))


@click.command("update-weights")
@click.argument("execution_id")
@click.option("--file", "-f", type=click.Path(exists=True), help="Weight update file")
@click.option("--criterion", multiple=True, help="Criterion weight as ID=WEIGHT")
@click.option("--judge-type", multiple=True, help="Judge type multiplier as TYPE=MULTIPLIER")
@click.option("--judge", multiple=True, help="Judge multiplier as JUDGE_ID=MULTIPLIER")
@click.option(
    "--method",
    type=click.Choice([method.value for method in WeightingMethod]),
    help="Weighting method",
)
@click.option("--reason", default="", help="Why the weights changed")
@click.pass_obj
def update_weights(ctx, execution_id, file, criterion, judge_type, judge, method, reason):
    """Recompute the latest version with changed weights."""
    data: Dict[str, Any] = {}
    if file:
        try:
            data = load_data_file(file) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            _fail(f"cannot read {file}: {e}")

    if not isinstance(data, dict):
        _fail("weight update file must hold a mapping")

    for key, values, option in (
        ("criterion_weights", criterion, "--criterion"),
        ("judge_type_multipliers", judge_type, "--judge-type"),
        ("judge_multipliers", judge, "--judge"),
    ):
        data[key] = {**(data.get(key) or {}), **_parse_assignments(values, option)}
    if method:
        data["weighting_method"] = method
    if reason:
        data["reason"] = reason

    try:
        weight_update = WeightUpdate.from_dict(data)
    except AggregationDomainError as e:
        _fail(str(e))

    async def operation(container: Container) -> AggregatedScore:
        service = await container.get_aggregation_service()
        return await service.update_weights(execution_id, weight_update)

    try:
        score = _run(ctx, operation)
    except AggregationDomainError as e:
        _fail(str(e))

    _echo_score(score, ctx.output_format)


@click.command()
@click.argument("execution_id")
@click.option("--version", type=int, help="Version to validate, latest by default")
@click.pass_obj
def validate(ctx, execution_id, version: Optional[int]):
    """Re-run the quality checks on a stored aggregated score."""

    async def operation(container: Container) -> ValidationResult:
        service = await container.get_aggregation_service()
        result = None
        if version is not None:
            result = await service.aggregation_repository.get(execution_id, version)
            if result is None:
                raise click.ClickException(f"execution {execution_id} has no version {version}")
        return await service.validate(execution_id, result)

    try:
        result = _run(ctx, operation)
    except AggregationDomainError as e:
        _fail(str(e))

    _echo_validation(result, ctx.output_format)
    if not result.passed:
        sys.exit(2)
