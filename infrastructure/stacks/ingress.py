"""External HTTP(S) load balancer in front of Cloud Run.

Creates:
- Global static IP
- Serverless network endpoint group pointing at the Cloud Run service
- Backend service and URL map
- HTTPS proxy with a Google-managed certificate when a domain is configured,
  plus an HTTP -> HTTPS redirect; a plain HTTP proxy otherwise
"""

from typing import Any

import pulumi
import pulumi_gcp as gcp

from . import naming
from .apis import after
from .settings import Settings


def create_ingress(
    settings: Settings,
    service: dict[str, Any],
    apis: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create the load balancer routing external traffic to the service."""
    prefix = settings.project_name
    domain = settings.domain

    address = gcp.compute.GlobalAddress(
        naming.resource_name(prefix, "ip"),
        name=naming.resource_name(prefix, "ip"),
        opts=after(apis, "compute"),
    )

    neg = gcp.compute.RegionNetworkEndpointGroup(
        naming.resource_name(prefix, "neg"),
        name=naming.resource_name(prefix, "neg"),
        region=settings.region,
        network_endpoint_type="SERVERLESS",
        cloud_run=gcp.compute.RegionNetworkEndpointGroupCloudRunArgs(
            service=service["service"].name,
        ),
    )

    backend = gcp.compute.BackendService(
        naming.resource_name(prefix, "backend"),
        name=naming.resource_name(prefix, "backend"),
        protocol="HTTP",
        load_balancing_scheme="EXTERNAL_MANAGED",
        backends=[
            gcp.compute.BackendServiceBackendArgs(
                group=neg.id,
            ),
        ],
    )

    url_map = gcp.compute.URLMap(
        naming.resource_name(prefix, "url-map"),
        name=naming.resource_name(prefix, "url-map"),
        default_service=backend.id,
    )

    certificate = None
    redirect_rule = None

    if domain:
        pulumi.log.info(f"Serving HTTPS for {domain} with a managed certificate")
        certificate = gcp.compute.ManagedSslCertificate(
            naming.resource_name(prefix, "cert"),
            name=naming.resource_name(prefix, "cert"),
            managed=gcp.compute.ManagedSslCertificateManagedArgs(
                domains=[domain],
            ),
        )

        proxy = gcp.compute.TargetHttpsProxy(
            naming.resource_name(prefix, "https-proxy"),
            name=naming.resource_name(prefix, "https-proxy"),
            url_map=url_map.id,
            ssl_certificates=[certificate.id],
        )

        forwarding_rule = gcp.compute.GlobalForwardingRule(
            naming.resource_name(prefix, "https-rule"),
            name=naming.resource_name(prefix, "https-rule"),
            target=proxy.id,
            ip_address=address.id,
            port_range="443",
            load_balancing_scheme="EXTERNAL_MANAGED",
        )

        # Port 80 answers with a redirect to HTTPS
        redirect_map = gcp.compute.URLMap(
            naming.resource_name(prefix, "https-redirect"),
            name=naming.resource_name(prefix, "https-redirect"),
            default_url_redirect=gcp.compute.URLMapDefaultUrlRedirectArgs(
                https_redirect=True,
                redirect_response_code="MOVED_PERMANENTLY_DEFAULT",
                strip_query=False,
            ),
        )

        redirect_proxy = gcp.compute.TargetHttpProxy(
            naming.resource_name(prefix, "http-redirect-proxy"),
            name=naming.resource_name(prefix, "http-redirect-proxy"),
            url_map=redirect_map.id,
        )

        redirect_rule = gcp.compute.GlobalForwardingRule(
            naming.resource_name(prefix, "http-redirect-rule"),
            name=naming.resource_name(prefix, "http-redirect-rule"),
            target=redirect_proxy.id,
            ip_address=address.id,
            port_range="80",
            load_balancing_scheme="EXTERNAL_MANAGED",
        )
    else:
        pulumi.log.warn("No domain configured; the load balancer serves plain HTTP")
        proxy = gcp.compute.TargetHttpProxy(
            naming.resource_name(prefix, "http-proxy"),
            name=naming.resource_name(prefix, "http-proxy"),
            url_map=url_map.id,
        )

        forwarding_rule = gcp.compute.GlobalForwardingRule(
            naming.resource_name(prefix, "http-rule"),
            name=naming.resource_name(prefix, "http-rule"),
            target=proxy.id,
            ip_address=address.id,
            port_range="80",
            load_balancing_scheme="EXTERNAL_MANAGED",
        )

    return {
        "address": address,
        "neg": neg,
        "backend": backend,
        "url_map": url_map,
        "proxy": proxy,
        "forwarding_rule": forwarding_rule,
        "certificate": certificate,
        "redirect_rule": redirect_rule,
        "ip_address": address.address,
    }
