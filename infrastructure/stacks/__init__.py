"""Web workload GCP Infrastructure Stacks."""

from . import apis as apis
from . import compute as compute
from . import credentials as credentials
from . import database as database
from . import ingress as ingress
from . import naming as naming
from . import network as network
from . import secrets as secrets
from . import settings as settings
