"""
Command-line interface for the SAFE launcher.
"""

from __future__ import annotations

import os

import click

from safe_launcher.common.config import Config
from safe_launcher.common.exceptions import LauncherError
from safe_launcher.ipc import start_server
from safe_launcher.launcher.memory_network import InMemoryNetwork
from safe_launcher.launcher.session import Session


@click.group()
def cli() -> None:
    """SAFE Launcher CLI"""


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Host to bind the IPC server to (default: SAFE_LAUNCHER_HOST or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind the IPC server to (default: SAFE_LAUNCHER_PORT or 8100)",
)
@click.option(
    "--create-account",
    is_flag=True,
    help="Register a new account instead of logging in",
)
@click.option("--keyword", prompt=True, hide_input=True)
@click.option("--pin", prompt=True, hide_input=True)
@click.option("--password", prompt=True, hide_input=True)
def serve(  # noqa: PLR0913
    host: str | None,
    port: int | None,
    create_account: bool,  # noqa: FBT001
    keyword: str,
    pin: str,
    password: str,
) -> None:
    """Authenticate and serve the session to local applications"""
    if host:
        os.environ["SAFE_LAUNCHER_HOST"] = host
    if port:
        os.environ["SAFE_LAUNCHER_PORT"] = str(port)
    config = Config()

    # No live network client ships with the launcher; accounts live in-process
    network = InMemoryNetwork()
    try:
        if create_account:
            session = Session.create_account(
                keyword, pin, password, authenticator=network, config=config
            )
        else:
            session = Session.log_in(
                keyword, pin, password, authenticator=network, config=config
            )
    except LauncherError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Session ready; serving on {config.SERVER_URL}")
    start_server(session, config)


if __name__ == "__main__":
    cli()
