"""Database credentials payload and password policy.

The Cloud Run service reads a single JSON document from Secret Manager
instead of one secret per field. The payload carries everything the
application needs to open a connection:

    {"database": ..., "instance": ..., "password": ..., "username": ...}
"""

import json
import string
from typing import Any, TypedDict


class DatabaseCredentials(TypedDict):
    """Fields stored in the database credentials secret."""

    username: str
    password: str
    database: str
    instance: str


CREDENTIAL_FIELDS = ("username", "password", "database", "instance")

# Password policy for the generated database password
PASSWORD_LENGTH = 24
PASSWORD_MIN_LOWER = 1
PASSWORD_MIN_UPPER = 1
PASSWORD_MIN_NUMERIC = 1
PASSWORD_MIN_SPECIAL = 1
# No quotes, slashes, '@' or ':' so the password is safe inside a DSN
OVERRIDE_SPECIAL = "!#$%&*()-_=+[]{}<>?"


def password_policy_args() -> dict[str, Any]:
    """Keyword arguments for ``pulumi_random.RandomPassword``."""
    return {
        "length": PASSWORD_LENGTH,
        "lower": True,
        "upper": True,
        "numeric": True,
        "special": True,
        "min_lower": PASSWORD_MIN_LOWER,
        "min_upper": PASSWORD_MIN_UPPER,
        "min_numeric": PASSWORD_MIN_NUMERIC,
        "min_special": PASSWORD_MIN_SPECIAL,
        "override_special": OVERRIDE_SPECIAL,
    }


def meets_password_policy(value: str) -> bool:
    """Check a password against the length and character class rules."""
    if len(value) < PASSWORD_LENGTH:
        return False
    counts = (
        (string.ascii_lowercase, PASSWORD_MIN_LOWER),
        (string.ascii_uppercase, PASSWORD_MIN_UPPER),
        (string.digits, PASSWORD_MIN_NUMERIC),
        (OVERRIDE_SPECIAL, PASSWORD_MIN_SPECIAL),
    )
    return all(sum(ch in chars for ch in value) >= minimum for chars, minimum in counts)


def encode_credentials(username: str, password: str, database: str, instance: str) -> str:
    """Serialize credentials to the JSON document stored in the secret."""
    payload: DatabaseCredentials = {
        "username": username,
        "password": password,
        "database": database,
        "instance": instance,
    }
    return json.dumps(payload, sort_keys=True)


def decode_credentials(payload: str) -> DatabaseCredentials:
    """Parse a credentials document.

    Raises:
        ValueError: If the payload is not a JSON object or a field is missing
            or not a string.
    """
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("Credentials payload must be a JSON object")

    missing = [field for field in CREDENTIAL_FIELDS if field not in data]
    if missing:
        raise ValueError(f"Credentials payload is missing: {', '.join(missing)}")

    for field in CREDENTIAL_FIELDS:
        if not isinstance(data[field], str):
            raise ValueError(f"Credentials field '{field}' must be a string")

    return DatabaseCredentials(
        username=data["username"],
        password=data["password"],
        database=data["database"],
        instance=data["instance"],
    )
