"""Execution of resolved batches against the page regeneration endpoint."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, Sequence

import structlog
from aiohttp import ClientError

from revalidation_service.clients.regeneration import RegenerationResponse
from revalidation_service.core.exceptions import (
    InvalidationTimeout,
    PermanentExecutionFailure,
    TransientExecutionFailure,
)
from revalidation_service.domain.dto import InvalidationReport, InvalidationResult, ResolvedBatch
from revalidation_service.domain.enums import ResultStatus, TargetKind
from revalidation_service.domain.targets import InvalidationTarget
from revalidation_service.services.audit import AuditLog, Clock, utc_now

logger = structlog.get_logger(__name__)

TIMEOUT_ERROR = "timeout"


class PageRegenerator(Protocol):
    async def regenerate(self, path: str) -> RegenerationResponse: ...


@dataclass
class _Progress:
    attempts: int = 0
    http_status: int | None = None


class InvalidationExecutor:
    """Regenerates every target of a batch and reports per-target outcomes.

    Failures are contained per target: the batch always completes and the
    report covers every target exactly once, in batch order. Transient
    failures (5xx, network errors, attempt timeouts) are retried after each
    delay in ``retry_backoff``; anything else non-2xx fails immediately.

    Before touching the network the executor consults the audit log: a
    fully successful report for the same fingerprint inside the debounce
    window is returned as-is, and a duplicate arriving while the same
    fingerprint is still running waits for that run instead of starting
    another.
    """

    def __init__(
        self,
        regenerator: PageRegenerator,
        audit_log: AuditLog,
        *,
        attempt_timeout: float = 8.0,
        retry_backoff: Sequence[float] = (0.5, 1.5),
        max_concurrency: int = 4,
        batch_timeout: float = 30.0,
        debounce_window: float = 10.0,
        deployed_kinds: frozenset[str] | None = None,
        clock: Clock = utc_now,
    ):
        self._regenerator = regenerator
        self._audit_log = audit_log
        self._attempt_timeout = attempt_timeout
        self._retry_backoff = tuple(retry_backoff)
        self._max_concurrency = max(1, max_concurrency)
        self._batch_timeout = batch_timeout
        self._debounce_window = debounce_window
        self._deployed_kinds = (
            frozenset(kind.value for kind in TargetKind) if deployed_kinds is None else deployed_kinds
        )
        self._clock = clock
        self._in_flight: dict[str, asyncio.Future[InvalidationReport]] = {}

    async def execute(self, batch: ResolvedBatch) -> InvalidationReport:
        request = batch.request
        fingerprint = request.fingerprint()

        cached = self._audit_log.lookup(fingerprint, self._debounce_window)
        if cached is not None and cached.failed_count == 0:
            logger.info("invalidation_batch replayed", fingerprint=fingerprint)
            self._audit_log.record(fingerprint, cached, replayed=True)
            return cached

        running = self._in_flight.get(fingerprint)
        if running is not None:
            report = await asyncio.shield(running)
            logger.info("invalidation_batch joined", fingerprint=fingerprint)
            self._audit_log.record(fingerprint, report, replayed=True)
            return report

        future: asyncio.Future[InvalidationReport] = asyncio.get_running_loop().create_future()
        self._in_flight[fingerprint] = future
        try:
            report = await self._run(batch, fingerprint)
        except BaseException:
            future.cancel()
            raise
        else:
            future.set_result(report)
            return report
        finally:
            self._in_flight.pop(fingerprint, None)

    async def _run(self, batch: ResolvedBatch, fingerprint: str) -> InvalidationReport:
        request = batch.request
        started_at = self._clock()
        results = await self._run_batch(batch.targets)
        report = InvalidationReport(
            fingerprint=fingerprint,
            operation=request.operation,
            entity_type=request.entity_type,
            slug=request.slug,
            results=results,
            notes=batch.notes,
            started_at=started_at,
            finished_at=self._clock(),
        )
        self._audit_log.record(fingerprint, report)
        logger.info(
            "invalidation_batch completed",
            fingerprint=fingerprint,
            operation=request.operation.value,
            entity_type=request.entity_type,
            slug=request.slug,
            succeeded=report.succeeded_count,
            failed=report.failed_count,
            skipped=report.skipped_count,
        )
        return report

    async def _run_batch(
        self, targets: Sequence[InvalidationTarget]
    ) -> tuple[InvalidationResult, ...]:
        if not targets:
            return ()

        semaphore = asyncio.Semaphore(self._max_concurrency)
        progress = [_Progress() for _ in targets]
        tasks: list[asyncio.Task[InvalidationResult] | None] = []
        for target, state in zip(targets, progress):
            if target.kind not in self._deployed_kinds:
                tasks.append(None)
                continue
            tasks.append(asyncio.create_task(self._run_target(target, semaphore, state)))

        running = [task for task in tasks if task is not None]
        pending: set[asyncio.Task[InvalidationResult]] = set()
        if running:
            _done, pending = await asyncio.wait(running, timeout=self._batch_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("invalidation_batch deadline exceeded", pending=len(pending))

        results: list[InvalidationResult] = []
        for target, task, state in zip(targets, tasks, progress):
            if task is None:
                results.append(
                    InvalidationResult(
                        target=target,
                        status=ResultStatus.SKIPPED,
                        error=f"page type {target.kind!r} is not deployed",
                    )
                )
            elif task in pending:
                results.append(
                    InvalidationResult(
                        target=target,
                        status=ResultStatus.FAILED,
                        http_status=state.http_status,
                        error=TIMEOUT_ERROR,
                        attempts=state.attempts,
                    )
                )
            else:
                results.append(task.result())
        return tuple(results)

    async def _run_target(
        self,
        target: InvalidationTarget,
        semaphore: asyncio.Semaphore,
        state: _Progress,
    ) -> InvalidationResult:
        delays = (*self._retry_backoff, None)
        error: str | None = None
        for delay in delays:
            try:
                async with semaphore:
                    state.attempts += 1
                    response = await self._attempt(target.path)
            except PermanentExecutionFailure as exc:
                state.http_status = exc.http_status
                logger.warning(
                    "invalidation_target failed", path=target.path, error=str(exc), attempts=state.attempts
                )
                return self._failed(target, state, str(exc))
            except TransientExecutionFailure as exc:
                state.http_status = exc.http_status
                error = str(exc)
            except Exception as exc:
                logger.exception("invalidation_target crashed", path=target.path)
                return self._failed(target, state, f"{type(exc).__name__}: {exc}")
            else:
                state.http_status = response.status
                logger.info("invalidation_target succeeded", path=target.path, attempts=state.attempts)
                return InvalidationResult(
                    target=target,
                    status=ResultStatus.SUCCEEDED,
                    http_status=response.status,
                    attempts=state.attempts,
                )

            if delay is not None:
                logger.warning(
                    "invalidation_target retrying",
                    path=target.path,
                    error=error,
                    attempt=state.attempts,
                    delay_seconds=delay,
                )
                await asyncio.sleep(delay)

        logger.warning("invalidation_target failed", path=target.path, error=error, attempts=state.attempts)
        return self._failed(target, state, error)

    async def _attempt(self, path: str) -> RegenerationResponse:
        try:
            response = await asyncio.wait_for(
                self._regenerator.regenerate(path), timeout=self._attempt_timeout
            )
        except asyncio.TimeoutError as exc:
            raise InvalidationTimeout(TIMEOUT_ERROR) from exc
        except (ClientError, OSError) as exc:
            raise TransientExecutionFailure(f"{type(exc).__name__}: {exc}") from exc

        if response.ok:
            return response
        message = f"HTTP {response.status}"
        if response.detail:
            message = f"{message}: {response.detail}"
        if response.status >= 500:
            raise TransientExecutionFailure(message, http_status=response.status)
        raise PermanentExecutionFailure(message, http_status=response.status)

    @staticmethod
    def _failed(target: InvalidationTarget, state: _Progress, error: str | None) -> InvalidationResult:
        return InvalidationResult(
            target=target,
            status=ResultStatus.FAILED,
            http_status=state.http_status,
            error=error,
            attempts=state.attempts,
        )
