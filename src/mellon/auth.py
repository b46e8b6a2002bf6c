import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as ReadTimeout

from flask import Blueprint, abort, current_app, request
from werkzeug.routing import Rule

from .coordinator import coordinator_from_config
from .token_store import TokenStoreError
from .tokens import is_valid_secret


auth_bp = Blueprint("auth", __name__)

# Verbs the proxy is known to forward. The check itself accepts any method,
# these are just the ones exercised end to end.
CHECK_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT"]

# Store reads run here so a stuck filesystem cannot hang the request.
READ_WORKERS = 8
_read_pool = ThreadPoolExecutor(max_workers=READ_WORKERS, thread_name_prefix="mellon-store-read")

# Reads running or queued at once; past this, checks fail closed without
# touching the store.
MAX_PENDING_READS = 4 * READ_WORKERS
_pending_reads = threading.BoundedSemaphore(MAX_PENDING_READS)


class ReadBacklogFull(RuntimeError):
    """Raised when too many store reads are already pending."""


def extract_bearer_token(header: str | None) -> str | None:
    """Return the secret from an ``Authorization: Bearer <secret>`` value.

    Returns None for a missing header, another scheme, or a value that
    cannot possibly be a stored secret.
    """

    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1]
    return token if is_valid_secret(token) else None


def _token_is_valid(token: str) -> bool:
    if not _pending_reads.acquire(blocking=False):
        raise ReadBacklogFull("too many store reads pending")

    # A fresh coordinator per check: nothing is cached between requests.
    coordinator = coordinator_from_config(current_app.config)
    try:
        future = _read_pool.submit(coordinator.exists, token)
    except BaseException:
        _pending_reads.release()
        raise
    future.add_done_callback(lambda _: _pending_reads.release())

    try:
        return future.result(timeout=current_app.config["STORE_READ_TIMEOUT"])
    except ReadTimeout:
        # Drop the read if no worker has picked it up; its answer is moot.
        future.cancel()
        raise


def authorize():
    """Answer 200 if the request carries a known bearer token, else 401."""

    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        current_app.logger.info("Rejected %s /auth: missing or malformed bearer token", request.method)
        abort(401)

    try:
        valid = _token_is_valid(token)
    except ReadTimeout:
        current_app.logger.error("Token store read timed out; failing closed")
        abort(401)
    except ReadBacklogFull:
        current_app.logger.error("Token store read backlog full; failing closed")
        abort(401)
    except TokenStoreError as exc:
        current_app.logger.error("Token store unavailable; failing closed: %s", exc)
        abort(401)

    if not valid:
        current_app.logger.info("Rejected %s /auth: unknown bearer token", request.method)
        abort(401)

    return "", 200


@auth_bp.record_once
def _register_check_route(state):
    # A rule without methods matches every verb, including ones Flask's
    # route decorator has never heard of.
    state.app.url_map.add(Rule("/auth", endpoint="auth.authorize"))
    state.app.view_functions["auth.authorize"] = authorize
