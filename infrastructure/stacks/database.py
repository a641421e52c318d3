"""Cloud SQL PostgreSQL configuration.

The instance has a private IP only, reachable through the VPC peering set up
by the network layer. Tier, availability and backups follow the environment
profile.
"""

from typing import Any

import pulumi
import pulumi_gcp as gcp
import pulumi_random as random

from . import naming
from .apis import after
from .credentials import password_policy_args
from .settings import Settings


def create_database(
    settings: Settings,
    network: dict[str, Any],
    apis: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create the Cloud SQL instance, database, user and generated password."""
    prefix = settings.project_name
    profile = settings.profile

    if not profile.deletion_protection:
        pulumi.log.warn(f"Deletion protection is disabled for the {settings.env} database")

    # Instance must wait for the private services peering to exist
    instance_opts = pulumi.ResourceOptions.merge(
        after(apis, "sqladmin"),
        pulumi.ResourceOptions(depends_on=[network["private_connection"]]),
    )

    instance = gcp.sql.DatabaseInstance(
        naming.resource_name(prefix, "db"),
        name=naming.resource_name(prefix, "db"),
        database_version="POSTGRES_16",
        region=settings.region,
        deletion_protection=profile.deletion_protection,
        settings=gcp.sql.DatabaseInstanceSettingsArgs(
            tier=profile.db_tier,
            availability_type=profile.availability_type,
            disk_type="PD_SSD",
            disk_size=10,
            disk_autoresize=True,
            backup_configuration=gcp.sql.DatabaseInstanceSettingsBackupConfigurationArgs(
                enabled=profile.backups_enabled,
                start_time="03:00" if profile.backups_enabled else None,
                point_in_time_recovery_enabled=profile.backups_enabled,
            ),
            # Private IP only, SSL required
            ip_configuration=gcp.sql.DatabaseInstanceSettingsIpConfigurationArgs(
                ipv4_enabled=False,
                private_network=network["network"].id,
                enable_private_path_for_google_cloud_services=True,
                ssl_mode="ENCRYPTED_ONLY",
            ),
            user_labels={
                "env": settings.env,
                "app": prefix,
            },
        ),
        opts=instance_opts,
    )

    database = gcp.sql.Database(
        naming.resource_name(prefix, "database"),
        name=settings.db_name,
        instance=instance.name,
    )

    # Generated password (length 24, every character class)
    password = random.RandomPassword(
        naming.resource_name(prefix, "db-password"),
        **password_policy_args(),
    )

    user = gcp.sql.User(
        naming.resource_name(prefix, "db-user"),
        name=settings.db_user,
        instance=instance.name,
        password=password.result,
    )

    return {
        "instance": instance,
        "database": database,
        "user": user,
        "password": password,
        "connection_name": instance.connection_name,
        "private_ip": instance.private_ip_address,
    }
