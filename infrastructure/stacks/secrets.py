"""Secret Manager configuration.

Stores the database credentials as a single JSON document. The payload is
built from the same outputs that configure the Cloud SQL user and database,
so the secret always matches what was provisioned.
"""

from typing import Any

import pulumi
import pulumi_gcp as gcp

from . import naming
from .apis import after
from .credentials import encode_credentials
from .settings import Settings


def create_database_secret(
    settings: Settings,
    database: dict[str, Any],
    apis: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create the credentials secret and its first version."""
    prefix = settings.project_name

    secret = gcp.secretmanager.Secret(
        naming.resource_name(prefix, "db-credentials"),
        secret_id=naming.secret_id(prefix, "db-credentials"),
        replication=gcp.secretmanager.SecretReplicationArgs(
            auto=gcp.secretmanager.SecretReplicationAutoArgs(),
        ),
        labels={
            "env": settings.env,
            "app": prefix,
        },
        opts=after(apis, "secretmanager"),
    )

    payload = pulumi.Output.all(
        database["user"].name,
        database["password"].result,
        database["database"].name,
        database["instance"].name,
    ).apply(lambda args: encode_credentials(args[0], args[1], args[2], args[3]))

    version = gcp.secretmanager.SecretVersion(
        naming.resource_name(prefix, "db-credentials-version"),
        secret=secret.id,
        secret_data=pulumi.Output.secret(payload),
    )

    return {
        "secret": secret,
        "version": version,
        "payload": payload,
    }
