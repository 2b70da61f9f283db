"""AppContext: shared Click context for all commands.

Created once by the root CLI group and flows to every subcommand via
``@click.pass_obj``.  Creates the REST client lazily and centralizes
result emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from plugrest.config.logging import configure_logging
from plugrest.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from plugrest.client.rest import RestClient
    from plugrest.config.settings import PlugSettings
    from plugrest.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The client is built on first use so ``--help``, ``--examples`` and
    ``--version`` never validate credentials or open a session.
    """

    def __init__(self, settings: PlugSettings) -> None:
        self.settings = settings
        self._client: RestClient | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def client(self) -> RestClient:
        """The REST client (created lazily on first access).

        Raises:
            click.ClickException: The configured options are invalid.
        """
        if self._client is None:
            from plugrest.client.rest import RestClient
            from plugrest.errors import PlugError

            try:
                self._client = RestClient(
                    self.settings.client_params(), sync=self.settings.sync
                )
            except PlugError as exc:
                raise click.ClickException(f"invalid configuration: {exc}") from exc
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
