import asyncio
import logging
import os
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

FATAL_EXIT_CODE = 1


class UnrecoverableAsyncFailure(Exception):
    """Asynchronous failure that cannot be attributed to any request"""
    pass


class FatalErrorSupervisor:
    """
    Process-wide policy for failures that escape every request pipeline.

    Installs itself as the event loop exception handler and watches the
    background tasks it spawns. Any failure reaching it is logged and the
    process is terminated, rather than continuing with in-flight state that
    may be inconsistent.
    """

    def __init__(
        self,
        terminate: Callable[[int], Any] = os._exit,
        exit_code: int = FATAL_EXIT_CODE,
    ) -> None:
        self._terminate = terminate
        self.exit_code = exit_code
        self._tasks: set[asyncio.Task] = set()
        self._previous_handler = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Attach to the given (or the running) event loop"""
        self._loop = loop or asyncio.get_running_loop()
        self._previous_handler = self._loop.get_exception_handler()
        self._loop.set_exception_handler(self._handle_loop_exception)

    def uninstall(self) -> None:
        if self._loop is None:
            return
        self._loop.set_exception_handler(self._previous_handler)
        self._loop = None

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        """Run a background coroutine whose failure is fatal to the process"""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass  # Expected on cancellation

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.fail(exc, f"Background task {task.get_name()} failed")

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        message = context.get("message", "Unhandled exception in event loop")
        if exc is None:
            exc = UnrecoverableAsyncFailure(message)
        self.fail(exc, message)

    def fail(self, exc: BaseException, message: str) -> None:
        logger.critical(
            "Unrecoverable asynchronous failure, terminating process: %s",
            message,
            exc_info=exc,
        )
        for handler in logging.getLogger().handlers:
            handler.flush()
        self._terminate(self.exit_code)
