"""Service layer exports."""
from revalidation_service.services.audit import AuditLog
from revalidation_service.services.executor import InvalidationExecutor
from revalidation_service.services.invalidation import InvalidationService
from revalidation_service.services.resolver import TargetResolver
from revalidation_service.services.validator import InvalidationRequestValidator

__all__ = [
    "AuditLog",
    "InvalidationExecutor",
    "InvalidationRequestValidator",
    "InvalidationService",
    "TargetResolver",
]
