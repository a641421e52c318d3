"""Stack configuration.

Values come from ``Pulumi.<stack>.yaml``:

    config:
      gcp:project: my-project
      gcp:region: us-central1
      webstack:project_name: shop
      webstack:image: us-docker.pkg.dev/my-project/app/web:1.4.2
      webstack:domain: shop.example.com

Anything that differs between environments (database tier, backups,
scaling) is taken from an environment profile and can be overridden per key.
"""

import ipaddress
from dataclasses import dataclass

import pulumi

from . import naming

DEFAULT_REGION = "us-central1"
DEFAULT_IMAGE = "us-docker.pkg.dev/cloudrun/container/hello"
DEFAULT_CONTAINER_PORT = 8080
DEFAULT_SUBNET_CIDR = "10.10.0.0/24"
DEFAULT_CONNECTOR_CIDR = "10.8.0.0/28"


@dataclass(frozen=True)
class EnvironmentProfile:
    """Parameters that differ between environment stacks."""

    db_tier: str
    availability_type: str
    backups_enabled: bool
    deletion_protection: bool
    min_instances: int
    max_instances: int


PROFILES: dict[str, EnvironmentProfile] = {
    "prod": EnvironmentProfile(
        db_tier="db-custom-1-3840",
        availability_type="REGIONAL",
        backups_enabled=True,
        deletion_protection=True,
        min_instances=1,
        max_instances=10,
    ),
    "dev": EnvironmentProfile(
        db_tier="db-f1-micro",
        availability_type="ZONAL",
        backups_enabled=False,
        deletion_protection=False,
        min_instances=0,
        max_instances=2,
    ),
}


def get_profile(env: str) -> EnvironmentProfile:
    """Return the profile for ``env``; unknown environments use the dev profile."""
    return PROFILES.get(env, PROFILES["dev"])


@dataclass(frozen=True)
class Settings:
    """Validated stack configuration."""

    project_id: str
    region: str
    env: str
    project_name: str
    image: str
    container_port: int
    db_name: str
    db_user: str
    domain: str | None
    use_vpc_connector: bool
    subnet_cidr: str
    connector_cidr: str
    profile: EnvironmentProfile


def _parse_network(key: str, value: str) -> ipaddress.IPv4Network:
    try:
        net = ipaddress.ip_network(value)
    except ValueError as e:
        raise pulumi.RunError(f"Config '{key}' is not a valid CIDR range: {value}") from e
    if not isinstance(net, ipaddress.IPv4Network) or not net.is_private:
        raise pulumi.RunError(f"Config '{key}' must be a private IPv4 range: {value}")
    return net


def _validate_cidrs(subnet_cidr: str, connector_cidr: str) -> None:
    subnet = _parse_network("subnet_cidr", subnet_cidr)
    connector = _parse_network("connector_cidr", connector_cidr)
    # Serverless VPC Access only accepts /28 ranges
    if connector.prefixlen != 28:
        raise pulumi.RunError(f"Config 'connector_cidr' must be a /28 range: {connector_cidr}")
    if subnet.overlaps(connector):
        raise pulumi.RunError(
            f"Config 'subnet_cidr' ({subnet_cidr}) overlaps 'connector_cidr' ({connector_cidr})"
        )


def _apply_overrides(config: pulumi.Config, profile: EnvironmentProfile) -> EnvironmentProfile:
    db_tier = config.get("db_tier") or profile.db_tier
    deletion_protection = config.get_bool("deletion_protection")
    min_instances = config.get_int("min_instances")
    max_instances = config.get_int("max_instances")

    resolved = EnvironmentProfile(
        db_tier=db_tier,
        availability_type=profile.availability_type,
        backups_enabled=profile.backups_enabled,
        deletion_protection=(
            deletion_protection if deletion_protection is not None else profile.deletion_protection
        ),
        min_instances=min_instances if min_instances is not None else profile.min_instances,
        max_instances=max_instances if max_instances is not None else profile.max_instances,
    )
    if resolved.min_instances < 0 or resolved.max_instances < 1:
        raise pulumi.RunError("Config 'min_instances' must be >= 0 and 'max_instances' >= 1")
    if resolved.min_instances > resolved.max_instances:
        raise pulumi.RunError(
            f"Config 'min_instances' ({resolved.min_instances}) exceeds "
            f"'max_instances' ({resolved.max_instances})"
        )
    return resolved


def _container_port(config: pulumi.Config) -> int:
    port = config.get_int("container_port")
    if port is None:
        return DEFAULT_CONTAINER_PORT
    if not 1 <= port <= 65535:
        raise pulumi.RunError(f"Config 'container_port' must be between 1 and 65535: {port}")
    return port


def load_settings(
    config: pulumi.Config | None = None,
    gcp_config: pulumi.Config | None = None,
) -> Settings:
    """Read and validate the stack configuration."""
    config = config or pulumi.Config()
    gcp_config = gcp_config or pulumi.Config("gcp")

    project_id = gcp_config.require("project")
    region = gcp_config.get("region") or DEFAULT_REGION
    # Used as the "env" label on every resource
    env = naming.label_value("env", config.get("env") or pulumi.get_stack())
    project_name = config.require("project_name")

    # Fail early on a prefix that cannot produce valid resource names
    naming.resource_name(project_name, "vpc")

    subnet_cidr = config.get("subnet_cidr") or DEFAULT_SUBNET_CIDR
    connector_cidr = config.get("connector_cidr") or DEFAULT_CONNECTOR_CIDR
    _validate_cidrs(subnet_cidr, connector_cidr)

    use_vpc_connector = config.get_bool("use_vpc_connector")
    if use_vpc_connector is None:
        use_vpc_connector = True
    if use_vpc_connector:
        naming.resource_name(
            project_name, "connector", max_length=naming.MAX_CONNECTOR_NAME_LENGTH
        )
    naming.account_id(project_name, "run")

    return Settings(
        project_id=project_id,
        region=region,
        env=env,
        project_name=project_name,
        image=config.get("image") or DEFAULT_IMAGE,
        container_port=_container_port(config),
        db_name=config.get("db_name") or "app",
        db_user=config.get("db_user") or "app",
        domain=config.get("domain") or None,
        use_vpc_connector=use_vpc_connector,
        subnet_cidr=subnet_cidr,
        connector_cidr=connector_cidr,
        profile=_apply_overrides(config, get_profile(env)),
    )
