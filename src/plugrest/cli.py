"""Root CLI group for plugrest with global flags and command registration."""

from __future__ import annotations

import click

from plugrest import __version__
from plugrest.commands import register_commands
from plugrest.commands._context import AppContext
from plugrest.config.settings import PlugSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="plugrest")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Print only the reply payload.")
@click.option("-v", "--verbose", is_flag=True, help="Trace requests and show reply metadata.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", is_flag=True, help="Run requests inline instead of on a worker thread.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync: bool,
) -> None:
    """plugrest: command-line client for the CloudPlugs REST API."""
    ctx.ensure_object(dict)
    flags = {
        "json_output": json_output,
        "quiet": quiet,
        "verbose": verbose,
        "log_json": log_json,
        "sync": sync,
    }
    # Unset flags must not shadow PLUGREST_* variables or the TOML file.
    settings = PlugSettings.from_cli(
        config_path=config_path,
        **{k: v for k, v in flags.items() if v},
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
