"""File-backed token store.

The store is a plain text file with one ``label:secret`` record per line.
Writes never touch the live file directly: the full record set goes to a
temporary file in the same directory which is then renamed over the live
path, so a reader sees either the old file or the new one and never a mix.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping

from .tokens import Token, secrets_match


logger = logging.getLogger(__name__)


class TokenStoreError(RuntimeError):
    """Base class for every error surfaced by the token store."""


class CorruptStore(TokenStoreError):
    """Raised when the store file cannot be parsed into a consistent set."""


class IoFailure(TokenStoreError):
    """Raised when the store or its lock file cannot be read or written."""


class LockTimeout(TokenStoreError):
    """Raised when a mutation cannot take the store lock in time."""


class DuplicateLabel(TokenStoreError):
    """Raised when adding a label that is already present."""


class UnknownLabel(TokenStoreError):
    """Raised when rescinding a label that is not present."""


class InvalidLabel(TokenStoreError):
    """Raised when a label cannot be stored (empty, or has line breaks)."""


def parse_records(content: str, source: str = "<store>") -> dict[str, str]:
    """Parse store file content into a label -> secret mapping.

    Any malformed record aborts the whole parse. A file whose last record is
    missing its newline was cut short mid-write and is rejected too.
    """

    if content and not content.endswith("\n"):
        raise CorruptStore(f"{source}: last record is not terminated, file looks truncated")

    records: dict[str, str] = {}
    seen_secrets: set[str] = set()
    for lineno, line in enumerate(content.split("\n"), start=1):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        try:
            token = Token.parse(line)
        except ValueError as exc:
            # Never echo the line itself, it holds a secret.
            raise CorruptStore(f"{source}:{lineno}: {exc}") from None
        if token.label in records:
            raise CorruptStore(f"{source}:{lineno}: duplicate label {token.label!r}")
        if token.secret in seen_secrets:
            raise CorruptStore(f"{source}:{lineno}: secret already used by another label")
        records[token.label] = token.secret
        seen_secrets.add(token.secret)
    return records


def render_records(records: Mapping[str, str]) -> str:
    return "".join(Token(label, secret).format() + "\n" for label, secret in records.items())


class TokenStore:
    """Durable label -> secret mapping kept in a single text file.

    The store holds no state besides its path: every ``load`` reads the file
    afresh, so separate processes always see the latest committed set.
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def load(self) -> dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as handle:
                content = handle.read()
        except FileNotFoundError:
            logger.debug("No token store at %s yet; treating it as empty", self.path)
            return {}
        except UnicodeDecodeError as exc:
            raise CorruptStore(f"{self.path}: not valid UTF-8 text") from exc
        except OSError as exc:
            raise IoFailure(f"Unable to read token store at {self.path}: {exc.strerror or exc}") from exc

        records = parse_records(content, source=str(self.path))
        logger.debug("Loaded %d token(s) from %s", len(records), self.path)
        return records

    def save(self, records: Mapping[str, str]) -> None:
        """Atomically replace the store file with ``records``."""

        if len(set(records.values())) != len(records):
            raise ValueError("Refusing to save a token set with duplicate secrets")
        data = render_records(records)

        directory = self.path.parent
        tmp_path = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            # mkstemp creates the file with mode 0600.
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
            _fsync_directory(directory)
        except OSError as exc:
            raise IoFailure(f"Unable to write token store at {self.path}: {exc.strerror or exc}") from exc
        finally:
            if tmp_path is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)

        logger.debug("Saved %d token(s) to %s", len(records), self.path)

    def contains(self, presented: str) -> bool:
        """Return True if ``presented`` is the secret of any stored token."""

        found = False
        # Compare against every record so timing does not depend on position.
        for secret in self.load().values():
            if secrets_match(presented, secret):
                found = True
        return found


def _fsync_directory(directory: Path) -> None:
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)
