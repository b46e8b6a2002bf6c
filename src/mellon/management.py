"""Operator-facing token management: add, rescind and list."""

from __future__ import annotations

import logging

from .coordinator import StoreCoordinator
from .token_store import DuplicateLabel, InvalidLabel, UnknownLabel
from .tokens import generate_secret, validate_label


logger = logging.getLogger(__name__)


def add_token(coordinator: StoreCoordinator, label: str) -> str:
    """Create a token for ``label`` and return its secret.

    The secret is only ever returned here; ``list_labels`` never exposes it.
    """

    try:
        validate_label(label)
    except ValueError as exc:
        raise InvalidLabel(str(exc)) from exc

    with coordinator.transaction() as records:
        if label in records:
            raise DuplicateLabel(f"A token labelled {label!r} already exists; labels must be unique")
        in_use = set(records.values())
        secret = generate_secret()
        while secret in in_use:
            secret = generate_secret()
        records[label] = secret

    logger.info("Added token labelled %r", label)
    return secret


def rescind_token(coordinator: StoreCoordinator, label: str) -> None:
    with coordinator.transaction() as records:
        if label not in records:
            raise UnknownLabel(f"No token is associated with label {label!r}")
        del records[label]

    logger.info("Rescinded token labelled %r", label)


def list_labels(coordinator: StoreCoordinator) -> list[str]:
    return coordinator.labels()
