import click
from flask.cli import FlaskGroup

from . import __version__, create_app


cli = FlaskGroup(
    name="mellon",
    create_app=create_app,
    add_default_commands=False,
    add_version_option=False,
    help="A small, simple, fast auth service.\n\n"
    "Answers NGINX auth_request sub-requests against a local set of bearer tokens.",
)
cli = click.version_option(__version__, prog_name="mellon")(cli)


def main() -> None:
    cli.main(prog_name="mellon")
