from __future__ import annotations

import json

import typer
from dotenv import load_dotenv

from .cli_formatter import (
    format_api_status,
    format_code_context,
    format_provider_list,
    format_repository_insight,
    format_scan_report,
)
from .config import AppConfig
from .main import ScanHub
from ..core.domain.exceptions import ScanHubError
from ..shared.to_jsonable import to_jsonable

load_dotenv()

app = typer.Typer(add_completion=False, no_args_is_help=True)


def _hub(log_level: str) -> ScanHub:
    config = AppConfig()
    # Console logging for interactive runs
    logging_config = config.logging.model_copy(update={"console_output": True, "level": log_level.upper()})
    config = config.model_copy(update={"logging": logging_config})
    return ScanHub(config)


def _echo_json(value: object) -> None:
    typer.echo(json.dumps(to_jsonable(value), ensure_ascii=False, indent=2))


@app.command()
def scan(
    repo_url: str = typer.Argument(..., help="Repository URL (https, ssh) or local path"),
    force: bool = typer.Option(False, "--force", help="Ignore cached results and change detection"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level", case_sensitive=False),
    json_output: bool = typer.Option(False, "--json", help="Output report as JSON"),
):
    """Scan a repository with every enabled scanner."""
    with _hub(log_level) as hub:
        try:
            report = hub.scan_repository(repo_url, force=force)
        except ScanHubError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

    if json_output:
        _echo_json(report)
    else:
        typer.echo(format_scan_report(report))


@app.command()
def context(
    repo_url: str = typer.Argument(..., help="Repository URL (https, ssh) or local path"),
    file_path: str = typer.Argument(..., help="Path inside the repository"),
    line: int = typer.Argument(..., min=1, help="1-based line number"),
    lines: int = typer.Option(3, "--lines", "-n", min=0, help="Lines of context on each side"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level", case_sensitive=False),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show the source lines around a finding."""
    with _hub(log_level) as hub:
        try:
            result = hub.get_code_context(repo_url, file_path, line, lines)
        except ScanHubError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

    if result is None:
        typer.echo(f"Error: file not found: {file_path}", err=True)
        raise typer.Exit(code=1)
    if json_output:
        _echo_json(result)
    else:
        typer.echo(format_code_context(result))


@app.command()
def analyze(
    repo_url: str = typer.Argument(..., help="Repository URL (https, ssh) or local path"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level", case_sensitive=False),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show metadata, branches, tags and an activity rating without scanning."""
    with _hub(log_level) as hub:
        try:
            insight = hub.analyze_repository(repo_url)
        except ScanHubError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)

    if json_output:
        _echo_json(insight)
    else:
        typer.echo(format_repository_insight(insight))


@app.command()
def providers(
    health: bool = typer.Option(False, "--health", help="Run provider health checks"),
    api_status: bool = typer.Option(False, "--api-status", help="Query each host API for availability and rate limits"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List registered hosting providers."""
    with _hub("WARNING") as hub:
        stats = hub.registry_statistics()
        checks = hub.provider_health() if health else None
        statuses = hub.provider_api_status() if api_status else None

    if json_output:
        payload = dict(stats)
        if checks is not None:
            payload["health"] = checks
        if statuses is not None:
            payload["api_status"] = statuses
        _echo_json(payload)
    else:
        typer.echo(format_provider_list(stats["providers"], checks))
        if statuses is not None:
            typer.echo("")
            typer.echo(format_api_status(statuses))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
