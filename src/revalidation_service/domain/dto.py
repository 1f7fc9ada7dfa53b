"""Value objects passed between validator, resolver, executor and audit log."""
from __future__ import annotations

import hashlib
import json
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from revalidation_service.core.exceptions import UnsupportedEntity
from revalidation_service.domain.enums import EntityType, Operation, ResultStatus
from revalidation_service.domain.targets import InvalidationTarget


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class InvalidationRequest(_Frozen):
    """Normalized, authenticated request. Only the validator builds these."""

    operation: Operation
    entity_type: str
    slug: str | None = None
    category_slugs: tuple[str, ...] = ()
    paths: tuple[str, ...] = ()
    stage: str | None = None

    @property
    def entity(self) -> EntityType:
        try:
            return EntityType(self.entity_type)
        except ValueError as exc:
            raise UnsupportedEntity(self.entity_type) from exc

    def fingerprint(self) -> str:
        """Deterministic hash used to spot redelivered webhooks."""
        canonical = {
            "operation": self.operation.value,
            "entity_type": self.entity_type,
            "slug": self.slug,
            "category_slugs": sorted(self.category_slugs),
            "paths": sorted(self.paths),
        }
        serialized = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class ResolvedBatch(_Frozen):
    request: InvalidationRequest
    targets: tuple[InvalidationTarget, ...] = ()
    notes: tuple[str, ...] = ()


class InvalidationResult(_Frozen):
    target: InvalidationTarget
    status: ResultStatus
    http_status: int | None = None
    error: str | None = None
    attempts: int = 0


class InvalidationReport(_Frozen):
    """Outcome of one batch. Counts are derived from ``results``."""

    fingerprint: str
    operation: Operation
    entity_type: str
    slug: str | None = None
    results: tuple[InvalidationResult, ...] = ()
    notes: tuple[str, ...] = ()
    started_at: datetime
    finished_at: datetime

    def _count(self, status: ResultStatus) -> int:
        return sum(1 for result in self.results if result.status is status)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded_count(self) -> int:
        return self._count(ResultStatus.SUCCEEDED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_count(self) -> int:
        return self._count(ResultStatus.FAILED)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skipped_count(self) -> int:
        return self._count(ResultStatus.SKIPPED)


class AuditEntry(_Frozen):
    request_fingerprint: str
    report: InvalidationReport
    recorded_at: datetime
    replayed: bool = False


class HygraphCategoryRef(BaseModel):
    slug: str | None = None


class HygraphEntity(BaseModel):
    """The ``data`` object of a Hygraph webhook; only the fields we map."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    typename: str | None = Field(default=None, alias="__typename")
    model: str | None = None
    slug: str | None = None
    stage: str | None = None
    categories: list[HygraphCategoryRef | str] | None = None

    @property
    def entity_type(self) -> str | None:
        return self.typename or self.model


class HygraphWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    operation: str
    data: HygraphEntity
