"""VPC Network configuration.

Creates a VPC with a private subnet, Cloud NAT for egress, a private
services access range for the Cloud SQL private IP and, optionally, a
Serverless VPC Access connector for Cloud Run.
"""

from typing import Any

import pulumi_gcp as gcp

from . import naming
from .apis import after
from .settings import Settings


def create_network(settings: Settings, apis: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create the VPC, subnet, NAT and private access plumbing."""
    prefix = settings.project_name
    region = settings.region

    # VPC Network
    network = gcp.compute.Network(
        naming.resource_name(prefix, "vpc"),
        name=naming.resource_name(prefix, "vpc"),
        auto_create_subnetworks=False,
        routing_mode="REGIONAL",
        description=f"{prefix} VPC ({settings.env})",
        opts=after(apis, "compute"),
    )

    # Private subnet; workloads reach Google APIs without public IPs
    subnet = gcp.compute.Subnetwork(
        naming.resource_name(prefix, "subnet"),
        name=naming.resource_name(prefix, "subnet"),
        network=network.id,
        ip_cidr_range=settings.subnet_cidr,
        region=region,
        private_ip_google_access=True,
    )

    # Cloud Router (for NAT)
    router = gcp.compute.Router(
        naming.resource_name(prefix, "router"),
        name=naming.resource_name(prefix, "router"),
        network=network.id,
        region=region,
    )

    # Cloud NAT (egress for private workloads)
    nat = gcp.compute.RouterNat(
        naming.resource_name(prefix, "nat"),
        name=naming.resource_name(prefix, "nat"),
        router=router.name,
        region=region,
        nat_ip_allocate_option="AUTO_ONLY",
        source_subnetwork_ip_ranges_to_nat="ALL_SUBNETWORKS_ALL_IP_RANGES",
        log_config=gcp.compute.RouterNatLogConfigArgs(
            enable=True,
            filter="ERRORS_ONLY",
        ),
    )

    # Private services access: range peered with Google's service producer network
    private_range = gcp.compute.GlobalAddress(
        naming.resource_name(prefix, "private-ip-range"),
        name=naming.resource_name(prefix, "private-ip-range"),
        purpose="VPC_PEERING",
        address_type="INTERNAL",
        prefix_length=16,
        network=network.id,
    )

    private_connection = gcp.servicenetworking.Connection(
        naming.resource_name(prefix, "private-connection"),
        network=network.id,
        service="servicenetworking.googleapis.com",
        reserved_peering_ranges=[private_range.name],
        opts=after(apis, "servicenetworking"),
    )

    # Serverless VPC Access connector (Cloud Run -> private IPs)
    connector = None
    if settings.use_vpc_connector:
        connector_name = naming.resource_name(
            prefix, "connector", max_length=naming.MAX_CONNECTOR_NAME_LENGTH
        )
        connector = gcp.vpcaccess.Connector(
            connector_name,
            name=connector_name,
            region=region,
            ip_cidr_range=settings.connector_cidr,
            network=network.name,
            min_instances=2,
            max_instances=3,
            opts=after(apis, "vpcaccess"),
        )

    return {
        "network": network,
        "subnet": subnet,
        "router": router,
        "nat": nat,
        "private_range": private_range,
        "private_connection": private_connection,
        "connector": connector,
    }
