"""Cloud Run service configuration.

The service only accepts traffic from the external load balancer. It reads
database credentials from Secret Manager and reaches the private-IP Cloud
SQL instance over the VPC, through the connector when one is configured and
Direct VPC egress on the private subnet otherwise.
"""

from typing import Any

import pulumi
import pulumi_gcp as gcp

from . import naming
from .apis import after
from .settings import Settings

CLOUDSQL_VOLUME = "cloudsql"
CLOUDSQL_MOUNT_PATH = "/cloudsql"


def _secret_env(
    name: str, secret: gcp.secretmanager.Secret
) -> gcp.cloudrunv2.ServiceTemplateContainerEnvArgs:
    return gcp.cloudrunv2.ServiceTemplateContainerEnvArgs(
        name=name,
        value_source=gcp.cloudrunv2.ServiceTemplateContainerEnvValueSourceArgs(
            secret_key_ref=gcp.cloudrunv2.ServiceTemplateContainerEnvValueSourceSecretKeyRefArgs(
                secret=secret.secret_id,
                version="latest",
            ),
        ),
    )


def create_service(
    settings: Settings,
    database: dict[str, Any],
    secret: dict[str, Any],
    network: dict[str, Any],
    apis: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create the Cloud Run service, its service account and IAM bindings."""
    prefix = settings.project_name
    region = settings.region
    profile = settings.profile

    service_account = gcp.serviceaccount.Account(
        naming.resource_name(prefix, "run-sa"),
        account_id=naming.account_id(prefix, "run"),
        display_name=f"{prefix} Cloud Run ({settings.env})",
        opts=after(apis, "iam"),
    )
    member = service_account.email.apply(lambda e: f"serviceAccount:{e}")

    # Read access on the credentials secret only, not project-wide
    secret_access = gcp.secretmanager.SecretIamMember(
        naming.resource_name(prefix, "run-secret-accessor"),
        secret_id=secret["secret"].secret_id,
        role="roles/secretmanager.secretAccessor",
        member=member,
    )

    for role in ["roles/cloudsql.client", "roles/logging.logWriter"]:
        role_slug = role.split("/")[-1].replace(".", "-").lower()
        gcp.projects.IAMMember(
            naming.resource_name(prefix, f"run-{role_slug}"),
            project=settings.project_id,
            role=role,
            member=member,
        )

    envs = [
        gcp.cloudrunv2.ServiceTemplateContainerEnvArgs(name="ENV", value=settings.env),
        gcp.cloudrunv2.ServiceTemplateContainerEnvArgs(name="DB_NAME", value=settings.db_name),
        gcp.cloudrunv2.ServiceTemplateContainerEnvArgs(name="DB_USER", value=settings.db_user),
        gcp.cloudrunv2.ServiceTemplateContainerEnvArgs(
            name="INSTANCE_CONNECTION_NAME",
            value=database["connection_name"],
        ),
        _secret_env("DB_CREDENTIALS", secret["secret"]),
    ]

    # The database has a private IP only, so private ranges always go through the VPC
    connector = network.get("connector")
    if connector is not None:
        vpc_access = gcp.cloudrunv2.ServiceTemplateVpcAccessArgs(
            connector=connector.id,
            egress="PRIVATE_RANGES_ONLY",
        )
    else:
        pulumi.log.info("VPC connector disabled; using Direct VPC egress on the private subnet")
        vpc_access = gcp.cloudrunv2.ServiceTemplateVpcAccessArgs(
            network_interfaces=[
                gcp.cloudrunv2.ServiceTemplateVpcAccessNetworkInterfaceArgs(
                    network=network["network"].name,
                    subnetwork=network["subnet"].name,
                ),
            ],
            egress="PRIVATE_RANGES_ONLY",
        )

    # The revision can only start once the secret has a version it may read
    service_opts = pulumi.ResourceOptions.merge(
        after(apis, "run"),
        pulumi.ResourceOptions(depends_on=[secret_access, secret["version"]]),
    )

    service = gcp.cloudrunv2.Service(
        naming.resource_name(prefix, "service"),
        name=naming.resource_name(prefix, "service"),
        location=region,
        ingress="INGRESS_TRAFFIC_INTERNAL_LOAD_BALANCER",
        deletion_protection=profile.deletion_protection,
        template=gcp.cloudrunv2.ServiceTemplateArgs(
            service_account=service_account.email,
            scaling=gcp.cloudrunv2.ServiceTemplateScalingArgs(
                min_instance_count=profile.min_instances,
                max_instance_count=profile.max_instances,
            ),
            vpc_access=vpc_access,
            volumes=[
                gcp.cloudrunv2.ServiceTemplateVolumeArgs(
                    name=CLOUDSQL_VOLUME,
                    cloud_sql_instance=gcp.cloudrunv2.ServiceTemplateVolumeCloudSqlInstanceArgs(
                        instances=[database["connection_name"]],
                    ),
                ),
            ],
            containers=[
                gcp.cloudrunv2.ServiceTemplateContainerArgs(
                    image=settings.image,
                    ports=gcp.cloudrunv2.ServiceTemplateContainerPortsArgs(
                        container_port=settings.container_port,
                    ),
                    resources=gcp.cloudrunv2.ServiceTemplateContainerResourcesArgs(
                        limits={
                            "cpu": "1",
                            "memory": "512Mi",
                        },
                        cpu_idle=True,
                    ),
                    envs=envs,
                    volume_mounts=[
                        gcp.cloudrunv2.ServiceTemplateContainerVolumeMountArgs(
                            name=CLOUDSQL_VOLUME,
                            mount_path=CLOUDSQL_MOUNT_PATH,
                        ),
                    ],
                ),
            ],
            timeout="300s",
            max_instance_request_concurrency=80,
        ),
        labels={
            "env": settings.env,
            "app": prefix,
        },
        opts=service_opts,
    )

    # Public invoker; ingress setting keeps direct run.app traffic out
    gcp.cloudrunv2.ServiceIamMember(
        naming.resource_name(prefix, "service-public"),
        location=region,
        name=service.name,
        role="roles/run.invoker",
        member="allUsers",
    )

    return {
        "service": service,
        "service_account": service_account,
        "url": service.uri,
    }
