"""plugrest: CloudPlugs IoT REST client."""

from plugrest.client.rest import BASE_URL, RestClient
from plugrest.client.request import Reply, RequestDescriptor
from plugrest.errors import (
    AlreadyEnrolled,
    HttpStatus,
    InvalidParameter,
    MissingCredentials,
    PlugError,
    RuleDefinitionError,
    TransportFailure,
)

__version__ = "1.0.0"

__all__ = [
    "BASE_URL",
    "AlreadyEnrolled",
    "HttpStatus",
    "InvalidParameter",
    "MissingCredentials",
    "PlugError",
    "Reply",
    "RequestDescriptor",
    "RestClient",
    "RuleDefinitionError",
    "TransportFailure",
    "__version__",
]
