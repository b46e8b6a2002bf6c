import logging

from flask import Flask
from werkzeug.serving import BaseWSGIServer, make_server


logger = logging.getLogger(__name__)


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts; IPv6 hosts go in brackets."""

    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Expected HOST:PORT, got {address!r}")
    port_number = int(port)
    if port_number > 65535:
        raise ValueError(f"Port out of range in {address!r}")
    return host.strip("[]"), port_number


def build_server(app: Flask, address: str) -> BaseWSGIServer:
    """Bind a threaded WSGI server so concurrent checks do not queue."""

    host, port = parse_address(address)
    return make_server(host, port, app, threaded=True)


def serve(app: Flask, address: str) -> None:
    server = build_server(app, address)
    logger.info("Server starting up on %s:%s", server.host, server.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    logger.info("Server shut down!")
