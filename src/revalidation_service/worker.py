"""Periodic in-process maintenance for the aiohttp app.

Usage::

    worker = BackgroundWorker(
        interval_seconds=60.0,
        tasks=[WorkerTask(name="audit_prune", fn=prune_audit_log)],
    )
    app.on_startup.append(worker.start)
    app.on_cleanup.append(worker.stop)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

import structlog
from aiohttp import web

from revalidation_service.services.audit import AuditLog

logger = structlog.get_logger(__name__)

# Receives the current UTC time; a non-empty return value is logged as a summary.
TaskFn = Callable[[datetime], Awaitable[str | None]]

_WORKER_TASK_KEY = "background_worker_task"


@dataclass
class WorkerTask:
    name: str
    fn: TaskFn


@dataclass
class BackgroundWorker:
    """Runs every task once per interval; a failing task does not stop the rest."""

    interval_seconds: float = 60.0
    tasks: Sequence[WorkerTask] = field(default_factory=list)

    async def start(self, app: web.Application) -> None:
        app[_WORKER_TASK_KEY] = asyncio.create_task(self._loop())

    async def stop(self, app: web.Application) -> None:
        task = app.get(_WORKER_TASK_KEY)
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def run_once(self, now: datetime) -> None:
        for task in self.tasks:
            try:
                summary = await task.fn(now)
            except Exception:
                logger.exception("background_task failed", task=task.name)
                continue
            if summary:
                logger.info("background_task completed", task=task.name, summary=summary)

    async def _loop(self) -> None:
        logger.info(
            "background_worker started",
            interval_seconds=self.interval_seconds,
            tasks=[task.name for task in self.tasks],
        )
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once(datetime.now(timezone.utc))
        except asyncio.CancelledError:
            logger.info("background_worker stopped")
            raise


def audit_prune_task(audit_log: AuditLog) -> WorkerTask:
    """Drop audit entries past their retention even when no webhooks arrive."""

    async def prune(now: datetime) -> str | None:
        removed = audit_log.prune(now)
        return f"pruned={removed}" if removed else None

    return WorkerTask(name="audit_prune", fn=prune)
