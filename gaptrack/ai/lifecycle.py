from __future__ import annotations

import asyncio
import logging
from typing import Any

from gaptrack.ai.gateway import AIGateway
from gaptrack.ai.types import AIResult, ErrorKind, Failure, cancelled_failure

logger = logging.getLogger(__name__)

OPERATIONS = frozenset(
    {
        "parse_resume",
        "parse_job_description",
        "analyze_gap",
        "generate_tailored_summary",
        "analyze_resume",
        "chat",
        "raw_call",
        "test_connection",
    }
)


class RequestLifecycle:
    """Runs gateway operations one at a time.

    Starting an operation cancels whichever one is still in flight. Each call
    carries a generation number; only the call whose generation is still
    current may touch ``is_processing`` or ``error`` when it finishes, and a
    superseded call reports itself as cancelled to its caller.
    """

    def __init__(self, gateway: AIGateway | None):
        self._gateway = gateway
        self._task: asyncio.Task | None = None
        self._generation = 0
        self.is_processing = False
        self.error: str | None = None

    @property
    def gateway(self) -> AIGateway | None:
        return self._gateway

    @property
    def is_configured(self) -> bool:
        return self._gateway is not None and self._gateway.is_configured

    def clear_error(self) -> None:
        self.error = None

    def _abort_in_flight(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()

    def cancel(self) -> None:
        self._abort_in_flight()
        self._generation += 1
        self.is_processing = False

    async def aclose(self) -> None:
        """Cancel any in-flight call, wait for it to unwind, then release the provider client."""
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        if self._gateway is not None:
            await self._gateway.aclose()

    async def invoke(self, operation: str, *args: Any, **kwargs: Any) -> AIResult:
        if self._gateway is None:
            return Failure(kind=ErrorKind.CONFIGURATION, error="AI not configured", code="not_configured")
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown AI operation '{operation}'")

        self._abort_in_flight()
        self._generation += 1
        generation = self._generation
        self.is_processing = True
        self.error = None

        task = asyncio.ensure_future(getattr(self._gateway, operation)(*args, **kwargs))
        self._task = task
        try:
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                task.cancel()
                raise

            if generation != self._generation or task.cancelled():
                return cancelled_failure()

            try:
                result = task.result()
            except Exception as exc:  # noqa: BLE001
                logger.exception("ai_operation_failed operation=%s", operation)
                result = Failure(
                    kind=ErrorKind.UNEXPECTED, error=str(exc) or "AI processing failed", recoverable=False
                )

            if not result.success and not result.cancelled:
                self.error = result.error
            return result
        finally:
            if generation == self._generation:
                self.is_processing = False
                self._task = None
