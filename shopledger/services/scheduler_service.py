"""Background task scheduler for periodic ledger jobs (overdue sweep)."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from shopledger.db.session import SessionLocal
from shopledger.services.payable_ledger_service import PayableLedgerService

logger = logging.getLogger(__name__)

OVERDUE_SWEEP_TASK = "overdue_sweep"


class TaskScheduler:
    """Lightweight asyncio-based task scheduler.

    Runs registered tasks at fixed intervals, checked once per tick. State is
    in memory only; a restart simply runs each task again after its first delay.
    """

    def __init__(self, tick_seconds: int = 60):
        self.tick_seconds = tick_seconds
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self._task_handle: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the scheduler loop."""
        self._running = True
        logger.info("Task scheduler started")

        while self._running:
            await self.run_pending()
            await asyncio.sleep(self.tick_seconds)

    def start_background(self) -> asyncio.Task:
        """Run the loop as a task on the current event loop."""
        self._task_handle = asyncio.create_task(self.start())
        return self._task_handle

    async def run_pending(self, now: Optional[datetime] = None):
        """Run every task whose next_run has come."""
        now = now or datetime.now(timezone.utc)
        for name, task in list(self._tasks.items()):
            if now >= task["next_run"]:
                try:
                    if asyncio.iscoroutinefunction(task["func"]):
                        result = await task["func"]()
                    else:
                        result = await asyncio.to_thread(task["func"])
                    task["last_run"] = now
                    task["last_result"] = result
                    task["run_count"] = task.get("run_count", 0) + 1
                    task["next_run"] = now + task["interval"]
                    task["last_error"] = None
                    logger.debug(f"Scheduled task '{name}' completed")
                except Exception as e:
                    task["last_error"] = str(e)
                    task["next_run"] = now + task["interval"]
                    logger.error(f"Scheduled task '{name}' failed: {e}", exc_info=True)

    def stop(self):
        self._running = False
        if self._task_handle:
            self._task_handle.cancel()
            self._task_handle = None
        logger.info("Task scheduler stopped")

    def add_task(self, name: str, func: Callable, interval_seconds: int, first_delay_seconds: int = 10):
        self._tasks[name] = {
            "func": func,
            "interval": timedelta(seconds=interval_seconds),
            "next_run": datetime.now(timezone.utc) + timedelta(seconds=first_delay_seconds),
            "last_run": None,
            "last_result": None,
            "run_count": 0,
            "last_error": None,
        }
        logger.info(f"Scheduled task '{name}' every {interval_seconds}s")

    def remove_task(self, name: str):
        self._tasks.pop(name, None)

    def get_status(self) -> Dict[str, Any]:
        return {
            name: {
                "last_run": t["last_run"].isoformat() if t["last_run"] else None,
                "next_run": t["next_run"].isoformat(),
                "interval_seconds": int(t["interval"].total_seconds()),
                "run_count": t.get("run_count", 0),
                "last_result": t.get("last_result"),
                "last_error": t.get("last_error"),
            }
            for name, t in self._tasks.items()
        }


def run_overdue_sweep(session_factory: Callable = SessionLocal) -> int:
    """Open a session, flag overdue payables, return how many were flagged."""
    db = session_factory()
    try:
        return PayableLedgerService(db).mark_overdue()
    finally:
        db.close()


scheduler = TaskScheduler()
