"""Main CLI application for the score aggregation engine."""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml

from ... import __version__
from ...infrastructure.settings import EngineSettings
from .commands.aggregation_commands import (
    aggregate,
    history,
    ingest,
    update_weights,
    validate,
)
from .utils.config import get_config_value, load_config, validate_config
from .utils.logging_setup import level_from_flags, setup_logging


class CLIContext:
    """Global CLI context."""

    def __init__(self):
        self.config: Dict[str, Any] = {}
        self.verbose = False
        self.debug = False
        self.output_format = "table"
        self.settings: Optional[EngineSettings] = None


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


@click.group()
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option("--database-url", help="Database URL, overrides DATABASE_URL")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "yaml"]),
    default="table",
    help="Output format",
)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config, verbose, debug, database_url, output_format):
    """
    Multi-judge score aggregation engine CLI

    Ingests judge scores for an execution, fuses them into a versioned
    aggregated score and reports its confidence and quality checks.

    Examples:
        score-aggregation ingest exec-42 --file scores.json
        score-aggregation aggregate exec-42 --rubric rubric.yaml
        score-aggregation --format json history exec-42
    """
    ctx.ensure_object(CLIContext)
    ctx.obj.verbose = verbose
    ctx.obj.debug = debug
    ctx.obj.output_format = output_format

    if config:
        try:
            ctx.obj.config = load_config(config)
        except (OSError, yaml.YAMLError) as e:
            click.echo(f"Error loading config: {e}", err=True)
            sys.exit(1)

        if not validate_config(ctx.obj.config):
            click.echo("Error: Invalid configuration file", err=True)
            sys.exit(1)

    settings = EngineSettings.from_env()
    configured_url = database_url or get_config_value(ctx.obj.config, "database.url")
    if configured_url:
        settings = replace(settings, database_url=configured_url)
    ctx.obj.settings = settings

    level_name = get_config_value(ctx.obj.config, "logging.level", settings.log_level)
    setup_logging(
        level_from_flags(verbose, debug, default=level_name),
        log_file=get_config_value(ctx.obj.config, "logging.file"),
        review_file=get_config_value(ctx.obj.config, "logging.review_file"),
    )


cli.add_command(ingest)
cli.add_command(aggregate)
cli.add_command(history)
cli.add_command(update_weights)
cli.add_command(validate)


@cli.command()
@click.option("--output", "-o", type=click.Path(), help="Output file for configuration template")
def init(output):
    """Write a configuration template with an example rubric."""
    config_template = {
        "database": {"url": "sqlite+aiosqlite:///./score_aggregation.db"},
        "logging": {
            "level": "WARNING",
            "file": "score-aggregation.log",
            "review_file": "score-aggregation-review.log",
        },
        "aggregation": {
            "criteria": [
                {"criterion_id": "correctness", "weight": "0.5", "name": "Correctness"},
                {"criterion_id": "clarity", "weight": "0.3", "name": "Clarity"},
                {"criterion_id": "style", "weight": "0.2", "name": "Style", "max_score": "10"},
            ],
            "judge_types": {
                "staff_reviewer": {"minimum_count": 1},
                "community_voter": {"minimum_count": 0, "maximum_count": 50},
                "ai_self_review": {"weight_multiplier": "0.5"},
                "elite_panelist": {"weight_multiplier": "2"},
            },
            "minimum_total_judges": 3,
            "weighting_method": "hybrid",
            "aggregation_method": "weighted_average",
            "outlier_threshold": "2.0",
            "outlier_action": "exclude",
            "resolution_strategy": "majority_rule",
        },
    }

    output_path = Path(output) if output else Path.cwd() / "score-aggregation.yaml"

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config_template, f, default_flow_style=False, indent=2, sort_keys=False)
    except OSError as e:
        click.echo(f"Error creating configuration: {e}", err=True)
        sys.exit(1)

    click.echo(f"Configuration template created: {output_path}")


def main():
    """Entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
