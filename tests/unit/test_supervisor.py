"""
Unit tests for the process-fatal supervisor.
"""

import asyncio

from conftest import run
from ordered_pipeline.core.supervisor import FatalErrorSupervisor, UnrecoverableAsyncFailure


class RecordingTerminate:
    def __init__(self) -> None:
        self.codes: list[int] = []

    def __call__(self, code: int) -> None:
        self.codes.append(code)


class TestFatalErrorSupervisor:
    """Tests for FatalErrorSupervisor."""

    def test_failed_background_task_terminates(self):
        terminate = RecordingTerminate()
        supervisor = FatalErrorSupervisor(terminate=terminate)

        async def failing():
            raise RuntimeError("scheduler broke")

        async def scenario():
            task = supervisor.spawn(failing(), name="scheduler")
            await asyncio.wait({task})
            await asyncio.sleep(0)

        run(scenario())

        assert terminate.codes == [1]

    def test_successful_and_cancelled_tasks_do_not_terminate(self):
        terminate = RecordingTerminate()
        supervisor = FatalErrorSupervisor(terminate=terminate)

        async def scenario():
            done = supervisor.spawn(asyncio.sleep(0))
            await done
            supervisor.spawn(asyncio.sleep(10))
            await supervisor.cancel_all()
            await asyncio.sleep(0)

        run(scenario())

        assert terminate.codes == []

    def test_loop_exception_handler_terminates(self):
        terminate = RecordingTerminate()
        supervisor = FatalErrorSupervisor(terminate=terminate, exit_code=3)
        loop = asyncio.new_event_loop()
        try:
            supervisor.install(loop)
            loop.call_exception_handler({"message": "Future exception was never retrieved"})
            loop.call_exception_handler({"message": "boom", "exception": ValueError("boom")})
        finally:
            supervisor.uninstall()
            loop.close()

        assert terminate.codes == [3, 3]

    def test_uninstall_restores_previous_handler(self):
        supervisor = FatalErrorSupervisor(terminate=RecordingTerminate())
        loop = asyncio.new_event_loop()
        try:
            supervisor.install(loop)
            assert loop.get_exception_handler() is not None
            supervisor.uninstall()
            assert loop.get_exception_handler() is None
        finally:
            loop.close()

    def test_fail_logs_critical(self, caplog):
        terminate = RecordingTerminate()
        supervisor = FatalErrorSupervisor(terminate=terminate)

        supervisor.fail(UnrecoverableAsyncFailure("lost"), "scheduling rejected")

        assert terminate.codes == [1]
        assert any(
            record.levelname == "CRITICAL" and "scheduling rejected" in record.getMessage()
            for record in caplog.records
        )
