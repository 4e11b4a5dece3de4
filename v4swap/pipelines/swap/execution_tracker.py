"""Background execution tracking for swap attempts."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from v4swap.logging import log
from v4swap.models.swap import SwapAttempt, SwapParams
from v4swap.pipelines.swap.orchestrator import SwapOrchestrator


class ExecutionTracker:
    """Track queued/running/finished swap attempts kept in memory."""

    def __init__(self, max_attempts: int = 500) -> None:
        self._tasks: dict[str, asyncio.Task] = {}
        self._attempts: dict[str, SwapAttempt] = {}
        self._status: dict[str, dict[str, Any]] = {}
        self._order: list[str] = []
        self._max_attempts = max_attempts

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def set_status(self, attempt_id: str, **updates: Any) -> None:
        status = self._status.get(attempt_id, {})
        status.update(updates)
        status["updated_at"] = self._now_iso()
        self._status[attempt_id] = status

    def _forget_oldest(self) -> None:
        for attempt_id in self._order[self._max_attempts :]:
            if attempt_id not in self._tasks:
                self._attempts.pop(attempt_id, None)
                self._status.pop(attempt_id, None)
        self._order = self._order[: self._max_attempts]

    def launch(self, orchestrator: SwapOrchestrator, params: SwapParams) -> str:
        attempt = orchestrator.new_attempt(params)
        attempt_id = attempt.attempt_id
        self._attempts[attempt_id] = attempt
        self.set_status(attempt_id, status="queued", created_at=attempt.created_at)
        self._order.insert(0, attempt_id)
        self._forget_oldest()

        async def _runner() -> None:
            self.set_status(attempt_id, status="running")
            try:
                await orchestrator.run(attempt)
                self.set_status(attempt_id, status="finished")
            except Exception as exc:
                log.error(f"Swap attempt {attempt_id} crashed: {exc}")
                self.set_status(attempt_id, status="crashed", error=str(exc))
            finally:
                self._tasks.pop(attempt_id, None)

        self._tasks[attempt_id] = asyncio.create_task(_runner())
        return attempt_id

    def get_attempt(self, attempt_id: str) -> SwapAttempt | None:
        return self._attempts.get(attempt_id)

    def get_status(self, attempt_id: str) -> dict[str, Any]:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            return {"attempt_id": attempt_id, "status": "not_found"}
        return {**attempt.to_dict(), **self._status.get(attempt_id, {})}

    def list(self, limit: int = 50) -> list[dict[str, Any]]:
        return [self.get_status(attempt_id) for attempt_id in self._order[: max(1, int(limit))]]

    async def cancel(self, attempt_id: str) -> bool:
        """Stop local processing. A transaction already broadcast stays pending on-chain."""
        task = self._tasks.get(attempt_id)
        if task is None:
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.set_status(attempt_id, status="cancelled")
        return True

    async def cancel_all(self) -> None:
        for attempt_id in list(self._tasks):
            await self.cancel(attempt_id)
        self._tasks.clear()
