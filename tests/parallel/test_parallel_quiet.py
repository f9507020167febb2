"""
tests/parallel/test_parallel_quiet.py - quiet_mode 테스트
"""

import logging

from vcpu_inventory.parallel import ParallelExecutor, TaskSpec, is_quiet, quiet_mode


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestQuietMode:
    """quiet_mode 테스트"""

    def test_flag_restored(self):
        assert not is_quiet()
        with quiet_mode():
            assert is_quiet()
            with quiet_mode():
                assert is_quiet()
            assert is_quiet()
        assert not is_quiet()

    def test_worker_warnings_suppressed(self):
        """워커 스레드에도 전파: WARNING 차단, ERROR 통과"""
        handler = _ListHandler()
        root = logging.getLogger()
        root.addHandler(handler)
        log = logging.getLogger("tests.quiet")

        def work(task):
            log.warning(f"warn {task.identifier}")
            log.error(f"error {task.identifier}")
            return is_quiet()

        try:
            with quiet_mode():
                result = ParallelExecutor().execute([TaskSpec("a", None, None), TaskSpec("b", None, None)], work)
            log.warning("after")
        finally:
            root.removeHandler(handler)

        messages = [r.getMessage() for r in handler.records]
        assert all(r.data for r in result.results)
        assert not any(m.startswith("warn") for m in messages)
        assert sorted(m for m in messages if m.startswith("error")) == ["error a", "error b"]
        assert "after" in messages
