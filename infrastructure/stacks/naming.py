"""Resource naming helpers.

Every GCP resource name is derived from the stack's ``project_name`` prefix.
Names are checked here, at program time, so an invalid prefix fails before
any API call is made.
"""

import re

import pulumi

# RFC1035 label used by most compute, sql and run resources
_RESOURCE_NAME_RE = re.compile(r"^[a-z]([-a-z0-9]*[a-z0-9])?$")
_SECRET_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_LABEL_VALUE_RE = re.compile(r"^[a-z0-9_-]{1,63}$")

MAX_RESOURCE_NAME_LENGTH = 63
# Serverless VPC Access connectors
MAX_CONNECTOR_NAME_LENGTH = 25
MIN_ACCOUNT_ID_LENGTH = 6
MAX_ACCOUNT_ID_LENGTH = 30
MAX_SECRET_ID_LENGTH = 255
MAX_LABEL_VALUE_LENGTH = 63


def is_valid_resource_name(name: str, max_length: int = MAX_RESOURCE_NAME_LENGTH) -> bool:
    return len(name) <= max_length and bool(_RESOURCE_NAME_RE.match(name))


def resource_name(
    project_name: str, suffix: str, max_length: int = MAX_RESOURCE_NAME_LENGTH
) -> str:
    """Build ``<project_name>-<suffix>`` and check it against GCP name rules."""
    name = f"{project_name}-{suffix}"
    if not is_valid_resource_name(name, max_length):
        raise pulumi.RunError(
            f"Resource name '{name}' must match {_RESOURCE_NAME_RE.pattern} "
            f"and be at most {max_length} characters"
        )
    return name


def account_id(project_name: str, suffix: str) -> str:
    """Build a service account id (6-30 characters)."""
    name = f"{project_name}-{suffix}"
    if not (
        MIN_ACCOUNT_ID_LENGTH <= len(name) <= MAX_ACCOUNT_ID_LENGTH
        and _RESOURCE_NAME_RE.match(name)
    ):
        raise pulumi.RunError(
            f"Service account id '{name}' must be {MIN_ACCOUNT_ID_LENGTH}-"
            f"{MAX_ACCOUNT_ID_LENGTH} characters of lowercase letters, digits or hyphens"
        )
    return name


def secret_id(project_name: str, suffix: str) -> str:
    name = f"{project_name}-{suffix}"
    if len(name) > MAX_SECRET_ID_LENGTH or not _SECRET_ID_RE.match(name):
        raise pulumi.RunError(
            f"Secret id '{name}' must be at most {MAX_SECRET_ID_LENGTH} letters, "
            "digits, underscores or hyphens"
        )
    return name


def label_value(key: str, value: str) -> str:
    """Check a value used as a resource label (lowercase, digits, ``_`` or ``-``)."""
    if not _LABEL_VALUE_RE.match(value):
        raise pulumi.RunError(
            f"Label '{key}' value '{value}' must be 1-{MAX_LABEL_VALUE_LENGTH} lowercase "
            "letters, digits, underscores or hyphens"
        )
    return value
