from revalidation_service.middleware.errors import json_error_middleware
from revalidation_service.middleware.trace import create_trace_middleware

__all__ = ["create_trace_middleware", "json_error_middleware"]
