"""Command line tools for LangChain Flow.

`watch RUN_ID` follows a run through the API server, printing log lines as
they arrive until the run reaches a terminal status.
"""
import os
from importlib.metadata import version as package_version
from typing import Optional

import typer

from services.costs import format_cost, format_tokens
from web.client import ApiError, FlowApiClient
from web.observer import RunObserver, RunSnapshot
from web.views import format_log_time

app = typer.Typer(help="LangChain Flow command line tools.")


def print_snapshot(snapshot: RunSnapshot) -> None:
    for log in snapshot.new_logs:
        typer.echo(f"{format_log_time(log.timestamp)} {log.level.upper():5} [{log.source}] {log.message}")


@app.command()
def watch(
    run_id: str,
    api_url: str = typer.Option(os.getenv("API_URL", "http://localhost:3001"), "--api-url"),
    token: Optional[str] = typer.Option(None, "--token", envvar="LANGCHAIN_FLOW_TOKEN"),
):
    """Print a run's logs until it completes, fails or is cancelled."""
    observer = RunObserver(FlowApiClient(api_url, token=token), run_id)
    try:
        final = observer.watch(print_snapshot)
    except ApiError as e:
        typer.echo(f"Error: {e.error}", err=True)
        raise typer.Exit(code=1)

    summary = final.cost_summary
    typer.echo(
        f"Run {final.run.status}: {summary.operations} operations, "
        f"{format_tokens(summary.total_tokens)} tokens, {format_cost(summary.total_cost_usd)}"
    )
    if final.run.status != "completed":
        raise typer.Exit(code=1)


@app.command()
def version():
    """Show the installed version."""
    typer.echo(f"langchain-flow {package_version('langchain-flow')}")


if __name__ == "__main__":
    app()
