"""HTTP clients for the services this one depends on."""
from revalidation_service.clients.content_graph import HygraphContentGraph
from revalidation_service.clients.regeneration import HttpPageRegenerator, RegenerationResponse

__all__ = [
    "HttpPageRegenerator",
    "HygraphContentGraph",
    "RegenerationResponse",
]
