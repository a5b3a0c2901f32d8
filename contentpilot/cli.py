"""CLI entrypoint for ContentPilot."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from contentpilot.context.documents import FileSystemDocumentStore
from contentpilot.context.selector import ContextSelector
from contentpilot.context.strategies import MARKETING_CONTENT
from contentpilot.core.config import ProviderRegistry, load_config
from contentpilot.core.exceptions import ConfigError, ContentPilotError
from contentpilot.core.factory import ComponentBundle, ComponentFactory
from contentpilot.quality.validator import ContentValidator


def _setup_logging(verbose: bool = False, config_dir: Optional[Path] = None, env: Optional[str] = None) -> None:
    """Apply logging configuration from config/default.yaml."""
    try:
        config = load_config(config_dir=config_dir, env=env)
        level_name = config.logging.level
        fmt = config.logging.format
    except ConfigError:
        level_name = "INFO"
        fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)


def _bundle(ctx: click.Context, offline: bool = False) -> ComponentBundle:
    registry = ProviderRegistry.offline_only() if offline else None
    try:
        return ComponentFactory.create(
            config_dir=ctx.obj.get("config_dir"),
            env=ctx.obj.get("env"),
            registry=registry,
        )
    except ContentPilotError as exc:
        raise click.ClickException(str(exc)) from exc


def _load_documents(project_dir: Path):
    documents = FileSystemDocumentStore(project_dir).documents()
    if not documents:
        click.echo(f"Warning: no documents found under {project_dir}", err=True)
    return documents


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Enable verbose (DEBUG) logging.")
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Config directory containing default.yaml and providers.yaml.",
)
@click.option("--env", default=None, help="Config overlay name (loads <env>.yaml).")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_dir: Optional[Path], env: Optional[str]) -> None:
    """ContentPilot: generate project content through an LLM pipeline."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_dir"] = config_dir
    ctx.obj["env"] = env
    _setup_logging(verbose=verbose, config_dir=config_dir, env=env)


@cli.command("generate")
@click.argument("project_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--content-type", default="homepage", show_default=True, help="Content type to generate.")
@click.option(
    "--task-type",
    default=MARKETING_CONTENT,
    show_default=True,
    help="Selection strategy used for the generation context.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the content to this file instead of stdout.",
)
@click.option("--max-retries", type=int, default=None, help="Quality gate retries (config default).")
@click.option("--concurrency", type=int, default=None, help="Parallel task workers (config default).")
@click.option("--deadline", type=float, default=None, help="Run deadline in seconds.")
@click.option("--offline", is_flag=True, default=False, help="Use only the offline stub provider.")
@click.option("--json-out", is_flag=True, default=False, help="Print the run summary as JSON.")
@click.pass_context
def generate(
    ctx: click.Context,
    project_dir: Path,
    content_type: str,
    task_type: str,
    output_path: Optional[Path],
    max_retries: Optional[int],
    concurrency: Optional[int],
    deadline: Optional[float],
    offline: bool,
    json_out: bool,
) -> None:
    """Generate content for the project in PROJECT_DIR."""
    bundle = _bundle(ctx, offline=offline)
    if concurrency is not None:
        bundle.config.orchestrator.max_concurrency = max(1, concurrency)
    pipeline = ComponentFactory.create_pipeline(bundle)
    documents = _load_documents(project_dir)

    try:
        report = pipeline.run(
            documents,
            content_type=content_type,
            task_type=task_type,
            max_retries=max_retries,
            deadline_seconds=deadline,
        )
    except ContentPilotError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        ComponentFactory.close(bundle)

    content = report.content
    if content is None:
        result = report.run.results.get("generate")
        reason = result.error if result is not None else "generation task did not run"
        raise click.ClickException(f"Content generation failed: {reason}")

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content.text + "\n", encoding="utf-8")
        click.echo(f"Wrote {content_type} content to {output_path}", err=True)
    else:
        click.echo(content.text)

    summary = {"performance": report.performance(), "quality": report.quality()}
    if json_out:
        click.echo(json.dumps(summary, indent=2, default=str), err=True)
        return

    quality = summary["quality"]
    status = "passed" if quality["passed"] else "low confidence (fallback)" if quality["used_fallback"] else "not passed"
    click.echo("", err=True)
    click.echo(click.style(f"Content: {status}", fg="green" if quality["passed"] else "yellow"), err=True)
    click.echo(f"  Score:     {quality['score']}/100 after {quality['attempts']} attempt(s)", err=True)
    click.echo(f"  Provider:  {quality['provider'] or 'fallback template'}", err=True)
    click.echo(f"  Tokens:    {summary['performance']['total_tokens']}", err=True)
    click.echo(f"  Documents: {summary['performance']['documents']}", err=True)
    if quality["failed_tasks"]:
        click.echo(f"  Failed tasks: {', '.join(quality['failed_tasks'])}", err=True)


@cli.command("validate")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--content-type", default="homepage", show_default=True, help="Validation rules to apply.")
@click.pass_context
def validate(ctx: click.Context, file_path: Path, content_type: str) -> None:
    """Score a markdown FILE. Exits with status 1 when it does not pass."""
    try:
        config = load_config(config_dir=ctx.obj.get("config_dir"), env=ctx.obj.get("env"))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    validator = ContentValidator(config.quality)
    result = validator.validate(file_path.read_text(encoding="utf-8"), content_type)

    color = "green" if result.passed else "red"
    click.echo(click.style(f"Score: {result.score}/100 ({'passed' if result.passed else 'failed'})", fg=color))
    for error in result.errors:
        click.echo(f"  [{error.severity.value}] {error.message}")
    for warning in result.warnings:
        click.echo(f"  [warning] {warning}")
    click.echo("")
    for line in validator.improvement_suggestions(result):
        click.echo(line)
    if not result.passed:
        ctx.exit(1)


@cli.command("providers")
@click.pass_context
def providers(ctx: click.Context) -> None:
    """Show the provider degradation chain and its health."""
    bundle = _bundle(ctx)
    health = bundle.dispatcher.health_check()
    click.echo(f"Status: {health['status']}")
    for entry in health["providers"]:
        mark = "available" if entry["available"] else "unavailable"
        click.echo(f"  {entry['priority']:>5}  {entry['name']:<12} {entry['kind']:<18} {mark}")


@cli.command("strategies")
@click.pass_context
def strategies(ctx: click.Context) -> None:
    """List registered context selection strategies."""
    try:
        config = load_config(config_dir=ctx.obj.get("config_dir"), env=ctx.obj.get("env"))
        selector = ContextSelector(config.context)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    for task_type in selector.available_task_types():
        strategy = selector.get_strategy(task_type)
        required = ", ".join(c.value for c in strategy.required_categories) or "-"
        click.echo(f"{task_type:<20} {strategy.max_tokens:>6} tokens  required: {required}")


@cli.command("select")
@click.argument("project_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--task-type", default=MARKETING_CONTENT, show_default=True, help="Selection strategy.")
@click.option("--max-tokens", type=int, default=None, help="Override the strategy budget.")
@click.pass_context
def select(ctx: click.Context, project_dir: Path, task_type: str, max_tokens: Optional[int]) -> None:
    """Show which documents in PROJECT_DIR a task type would use."""
    try:
        config = load_config(config_dir=ctx.obj.get("config_dir"), env=ctx.obj.get("env"))
        selector = ContextSelector(config.context)
        context = selector.select_context(_load_documents(project_dir), task_type, max_tokens=max_tokens)
    except ContentPilotError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(context.selection_rationale)


def main() -> None:
    """Entry point used by `contentpilot` console script."""
    from dotenv import load_dotenv
    load_dotenv(Path(__file__).parent.parent / ".env")
    cli()


if __name__ == "__main__":
    main()
