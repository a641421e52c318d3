"""Google Cloud service APIs.

A fresh project has most APIs disabled; every other layer declares an
explicit dependency on the APIs it calls so the first ``pulumi up`` on an
empty project succeeds.
"""

from typing import Any

import pulumi
import pulumi_gcp as gcp

REQUIRED_APIS = {
    "compute": "compute.googleapis.com",
    "servicenetworking": "servicenetworking.googleapis.com",
    "vpcaccess": "vpcaccess.googleapis.com",
    "sqladmin": "sqladmin.googleapis.com",
    "secretmanager": "secretmanager.googleapis.com",
    "run": "run.googleapis.com",
    "iam": "iam.googleapis.com",
}


def enable_apis(project_id: str, project_name: str) -> dict[str, Any]:
    """Enable the service APIs used by the stack."""
    services: dict[str, Any] = {}

    for key, api in REQUIRED_APIS.items():
        services[key] = gcp.projects.Service(
            f"{project_name}-api-{key}",
            project=project_id,
            service=api,
            # Other workloads in the project may rely on the same API
            disable_on_destroy=False,
        )

    return services


def after(apis: dict[str, Any] | None, *keys: str) -> pulumi.ResourceOptions | None:
    """Resource options that order a resource after the given APIs."""
    if not apis:
        return None
    return pulumi.ResourceOptions(depends_on=[apis[key] for key in keys if key in apis])
