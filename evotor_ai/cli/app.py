"""Command-line entry point.

Usage:
    evotor-ai "продажи за вчера"            # one-shot query
    evotor-ai --json --from 2025-01-01 --to 2025-01-31 "сумма продаж"
    evotor-ai                               # interactive REPL
"""

import asyncio

import typer
from rich.console import Console

from evotor_ai import __version__
from evotor_ai.cli.render import format_human_report, format_json_report
from evotor_ai.cli.repl import ChatREPL
from evotor_ai.clients import EvotorClient, create_llm_client
from evotor_ai.config import Settings
from evotor_ai.exceptions import ConfigurationError, LLMNotConfiguredError, MissingTokenError
from evotor_ai.services.query import QueryService
from evotor_ai.utils.logging import LogConfig, get_logger, setup_logging
from evotor_ai.utils.period import parse_period_from_flags

logger = get_logger(__name__)

app = typer.Typer(help="Ask questions about Evotor sales data in natural language.", add_completion=False)
console = Console()
err_console = Console(stderr=True)


def _version_cb(value: bool):
    if value:
        console.print(f"evotor-ai v{__version__}")
        raise typer.Exit()


def build_settings(
    token: str | None = None,
    store_id: str | None = None,
    timeout: float | None = None,
    log_file: str | None = None,
    debug: bool = False,
    llm_provider: str | None = None,
    llm_base_url: str | None = None,
    llm_api_key: str | None = None,
    llm_model: str | None = None,
) -> Settings:
    """Environment settings with command-line overrides applied."""
    settings = Settings.from_env()
    overrides = {
        "evotor_token": token,
        "evotor_store_id": store_id,
        "timeout": timeout if timeout and timeout > 0 else None,
        "log_file": log_file,
        "llm_provider": llm_provider.strip().lower() if llm_provider else None,
        "llm_base_url": llm_base_url,
        "llm_api_key": llm_api_key,
        "llm_model": llm_model,
    }
    update = {key: value.strip() if isinstance(value, str) else value for key, value in overrides.items()}
    update = {key: value for key, value in update.items() if value is not None}
    if debug:
        update["debug"] = True
    return Settings.model_validate(settings.model_dump() | update)


def validate_startup(settings: Settings, date_from: str, date_to: str) -> None:
    """Fail before any network call when the configuration cannot work.

    Raises:
        ConfigurationError: On a missing token, missing LLM settings or bad --from/--to
    """
    if not settings.evotor_token:
        raise MissingTokenError()
    if not settings.llm_configured:
        raise LLMNotConfiguredError("llm is not configured: set --llm-api-key/LLM_API_KEY and --llm-model/LLM_MODEL")
    if date_from.strip() or date_to.strip():
        parse_period_from_flags(date_from, date_to)


@app.command()
def main(
    query: list[str] | None = typer.Argument(None, help="Question; omit to start the interactive REPL."),
    token: str | None = typer.Option(None, "--token", help="Evotor API token (EVOTOR_TOKEN)."),
    store_id: str | None = typer.Option(None, "--store-id", help="Evotor store ID (EVOTOR_STORE_ID)."),
    date_from: str = typer.Option("", "--from", help="Start date (YYYY-MM-DD)."),
    date_to: str = typer.Option("", "--to", help="End date (YYYY-MM-DD)."),
    json_output: bool = typer.Option(False, "--json", help="Output one JSON object per answer."),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    log_file: str | None = typer.Option(None, "--log-file", help="Log file path (LOG_FILE)."),
    timeout: float | None = typer.Option(None, "--timeout", help="Network timeout in seconds (TIMEOUT)."),
    llm_provider: str | None = typer.Option(None, "--llm-provider", help="openrouter or anthropic (LLM_PROVIDER)."),
    llm_base_url: str | None = typer.Option(None, "--llm-base-url", help="LLM base URL (LLM_BASE_URL)."),
    llm_api_key: str | None = typer.Option(None, "--llm-api-key", help="LLM API key (LLM_API_KEY)."),
    llm_model: str | None = typer.Option(None, "--llm-model", help="LLM model (LLM_MODEL)."),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=_version_cb,
        is_eager=True,
    ),
):
    """Answer a question about Evotor sales data, or start the REPL without one."""
    queries = [part.strip() for part in query or [] if part.strip()]
    if len(queries) > 1:
        err_console.print("[bold red]Error:[/bold red] only one query argument is supported (quote the question)")
        raise typer.Exit(code=2)

    try:
        settings = build_settings(
            token=token,
            store_id=store_id,
            timeout=timeout,
            log_file=log_file,
            debug=debug,
            llm_provider=llm_provider,
            llm_base_url=llm_base_url,
            llm_api_key=llm_api_key,
            llm_model=llm_model,
        )
    except ValueError as e:
        err_console.print(f"[bold red]Error:[/bold red] invalid configuration: {e}")
        raise typer.Exit(code=1) from e

    setup_logging(
        LogConfig(
            level="DEBUG" if settings.debug else "INFO",
            console_level="DEBUG" if settings.debug else "WARNING",
            log_file=settings.log_file,
        )
    )

    try:
        validate_startup(settings, date_from, date_to)
    except ConfigurationError as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    llm_client = create_llm_client(settings)
    evotor_client = EvotorClient.from_settings(settings)
    service = QueryService(settings, llm_client, evotor_client)

    exit_code = 0
    with asyncio.Runner() as runner:
        try:
            if queries:
                response = runner.run(service.handle_query(queries[0], date_from=date_from, date_to=date_to))
                report = format_json_report(response) if json_output else format_human_report(response)
                console.print(report, markup=False, highlight=False, soft_wrap=True)
            else:
                repl = ChatREPL(
                    service,
                    service.new_session(),
                    json_output=json_output,
                    date_from=date_from,
                    date_to=date_to,
                    console=console,
                )
                repl.start(runner.run)
        except ConfigurationError as e:
            err_console.print(f"[bold red]Error:[/bold red] {e}")
            exit_code = 1
        except KeyboardInterrupt:
            err_console.print("[yellow]Interrupted[/yellow]")
            exit_code = 130
        finally:
            runner.run(evotor_client.aclose())
            runner.run(llm_client.aclose())

    if exit_code:
        raise typer.Exit(code=exit_code)


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
