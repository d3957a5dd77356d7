"""
Async Task Registry for tracking background tasks.

Tool executions run as background tasks relative to the control event
stream; the registry keeps them named, logs their failures and lets the
owner wait for or cancel them.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional, Set

from ..metrics import get_metrics

logger = logging.getLogger("voice.task_registry")


class TaskRegistry:
    """
    Registry for tracking and managing async tasks.

    Features:
    - Track all background tasks with names
    - Log failures with context
    - Wait for in-flight work without cancelling it
    - Graceful shutdown with timeout
    """

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._failed_tasks: Set[str] = set()
        self._completed_count: int = 0

    def register(
        self,
        name: str,
        coro: Coroutine[Any, Any, Any],
    ) -> asyncio.Task:
        """
        Register and start an async task.

        Args:
            name: Unique task name for tracking
            coro: Coroutine to execute

        Returns:
            The created asyncio.Task
        """
        task = asyncio.create_task(coro)
        self._tasks[name] = task
        task.add_done_callback(lambda t: self._on_task_complete(name, t))
        get_metrics().update_tasks(len(self._tasks))
        logger.debug(f"Task registered: {name}")
        return task

    def _on_task_complete(self, name: str, task: asyncio.Task) -> None:
        """Handle task completion callback."""
        if self._tasks.get(name) is task:
            self._tasks.pop(name)
        self._completed_count += 1

        failed = 0
        try:
            exc = task.exception()
            if exc:
                self._failed_tasks.add(name)
                failed = 1
                logger.error(f"Task '{name}' failed with exception: {exc}", exc_info=exc)
        except asyncio.CancelledError:
            logger.debug(f"Task '{name}' was cancelled")

        get_metrics().update_tasks(len(self._tasks), failed_delta=failed)

    @property
    def active_count(self) -> int:
        """Number of currently active tasks."""
        return len(self._tasks)

    @property
    def failed_count(self) -> int:
        """Number of tasks that failed with exceptions."""
        return len(self._failed_tasks)

    @property
    def completed_count(self) -> int:
        """Total number of completed tasks."""
        return self._completed_count

    def get_active_tasks(self) -> Dict[str, asyncio.Task]:
        """Get dictionary of active tasks."""
        return dict(self._tasks)

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for active tasks to finish without cancelling them.

        Args:
            timeout: Maximum time to wait (None waits forever)

        Returns:
            True if every task finished in time
        """
        while True:
            tasks = [t for t in self._tasks.values() if not t.done()]
            if not tasks:
                # let pending done-callbacks unregister finished tasks
                await asyncio.sleep(0)
                return True
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.warning(f"Drain timeout: {len(pending)} tasks still running")
                return False

    async def shutdown(self, timeout: float = 5.0) -> None:
        """
        Cancel all tasks and wait for them to finish.

        Args:
            timeout: Maximum time to wait for tasks to complete
        """
        if not self._tasks:
            logger.debug("No active tasks to shutdown")
            return

        task_count = len(self._tasks)
        logger.info(f"Shutting down {task_count} active tasks (timeout={timeout}s)")

        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(*tasks, return_exceptions=True),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            remaining = len([t for t in tasks if not t.done()])
            logger.warning(f"Shutdown timeout: {remaining} tasks still running")

        logger.info(
            f"Task registry shutdown complete. "
            f"Completed: {self._completed_count}, failed: {len(self._failed_tasks)}"
        )

