import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from .coordinator import coordinator_from_config
from .management import add_token, list_labels, rescind_token
from .server import parse_address, serve
from .token_store import TokenStoreError


token_cli = AppGroup("token", help="Manage tokens by adding or removing.")


def _coordinator():
    return coordinator_from_config(current_app.config)


@token_cli.command("add")
@click.argument("label")
def add_command(label):
    """Add a new token and print its secret once."""
    try:
        secret = add_token(_coordinator(), label)
    except TokenStoreError as exc:
        raise click.ClickException(f"Failed to generate new token: {exc}") from exc
    click.echo(secret)


@token_cli.command("rescind")
@click.argument("label")
def rescind_command(label):
    """Revoke an existing token by its label."""
    try:
        rescind_token(_coordinator(), label)
    except TokenStoreError as exc:
        raise click.ClickException(f"Failed to rescind token: {exc}") from exc
    click.echo(f"Token with label {label} has been removed.")


@token_cli.command("list")
def list_command():
    """List the labels of all tokens previously issued."""
    try:
        labels = list_labels(_coordinator())
    except TokenStoreError as exc:
        raise click.ClickException(f"Unable to list tokens: {exc}") from exc
    click.echo("Label")
    for label in labels:
        click.echo(label)


@click.command("serve")
@click.argument("address", metavar="HOST:PORT", required=False)
@with_appcontext
def serve_command(address):
    """Start the auth server (default address from MELLON_ADDRESS)."""
    address = address or current_app.config["SERVER_ADDRESS"]
    try:
        parse_address(address)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="HOST:PORT") from exc

    try:
        serve(current_app._get_current_object(), address)
    except OSError as exc:
        raise click.ClickException(f"Failed to host server: {exc}") from exc
