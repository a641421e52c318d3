"""Web workload GCP Infrastructure - Main Entry Point.

This deploys a single web workload:
- VPC with private subnet, Cloud NAT and private services access
- Cloud SQL PostgreSQL (private IP)
- Secret Manager secret with the database credentials
- Cloud Run service reading the credentials secret
- External HTTP(S) load balancer with a serverless NEG backend

Each environment is a Pulumi stack (Pulumi.dev.yaml, Pulumi.prod.yaml).
"""

import pulumi

from stacks import apis, compute, database, ingress, network, secrets
from stacks.settings import load_settings

# Configuration
settings = load_settings()

pulumi.log.info(
    f"Deploying {settings.project_name} infrastructure to {settings.project_id} "
    f"({settings.env}, {settings.region})"
)

# ============================================
# 1. Service APIs
# ============================================
pulumi.log.info("Enabling service APIs...")
enabled_apis = apis.enable_apis(settings.project_id, settings.project_name)

# ============================================
# 2. Network
# ============================================
pulumi.log.info("Creating network...")
vpc = network.create_network(settings, enabled_apis)

# ============================================
# 3. Database - Cloud SQL
# ============================================
pulumi.log.info("Creating Cloud SQL database...")
cloud_sql = database.create_database(settings, vpc, enabled_apis)

# ============================================
# 4. Secrets
# ============================================
pulumi.log.info("Creating database credentials secret...")
db_secret = secrets.create_database_secret(settings, cloud_sql, enabled_apis)

# ============================================
# 5. Cloud Run
# ============================================
pulumi.log.info("Creating Cloud Run service...")
service = compute.create_service(settings, cloud_sql, db_secret, vpc, enabled_apis)

# ============================================
# 6. Load balancer
# ============================================
pulumi.log.info("Creating load balancer...")
lb = ingress.create_ingress(settings, service, enabled_apis)

# ============================================
# Outputs
# ============================================
pulumi.export("project_id", settings.project_id)
pulumi.export("region", settings.region)
pulumi.export("environment", settings.env)

pulumi.export("ingress_ip", lb["ip_address"])
pulumi.export("service_url", service["url"])
if settings.domain:
    pulumi.export("https_url", f"https://{settings.domain}")

pulumi.export("database_connection_name", pulumi.Output.secret(cloud_sql["connection_name"]))
pulumi.export("secret_id", db_secret["secret"].secret_id)

pulumi.log.info("Infrastructure deployment complete!")
