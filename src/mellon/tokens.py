from __future__ import annotations

import hmac
import re
import secrets
from typing import NamedTuple


# 32 random bytes, encoded as 43 URL-safe characters.
SECRET_BYTES = 32

# Anything shorter than 22 URL-safe characters carries less than 128 bits.
_SECRET_PATTERN = re.compile(r"[A-Za-z0-9_-]{22,}")

DELIMITER = ":"


class Token(NamedTuple):
    """A single label/secret pair as held in the token store."""

    label: str
    secret: str

    @classmethod
    def parse(cls, line: str) -> "Token":
        """Parse a ``label:secret`` record.

        The secret never contains the delimiter, so the record is split on
        the last one and labels are free to contain colons.
        """

        label, sep, secret = line.rpartition(DELIMITER)
        if not sep:
            raise ValueError("record has no delimiter")
        if not label:
            raise ValueError("record has an empty label")
        if not is_valid_secret(secret):
            raise ValueError("record has a malformed secret")
        return cls(label, secret)

    def format(self) -> str:
        return f"{self.label}{DELIMITER}{self.secret}"


def validate_label(label: str) -> str:
    """Return ``label`` unchanged if it can be stored, else raise ValueError."""

    if not isinstance(label, str) or not label:
        raise ValueError("Labels must be non-empty strings")
    if "\n" in label or "\r" in label:
        raise ValueError("Labels must not contain line breaks")
    return label


def generate_secret() -> str:
    return secrets.token_urlsafe(SECRET_BYTES)


def is_valid_secret(secret: str) -> bool:
    return bool(_SECRET_PATTERN.fullmatch(secret))


def secrets_match(presented: str, expected: str) -> bool:
    """Compare a presented bearer value against a stored secret.

    Uses ``hmac.compare_digest`` so the time taken does not depend on where
    the two values first differ.
    """

    return hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))
