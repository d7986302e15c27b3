"""
Deadlock retry for units of work that take row locks:
- MySQL 1213 (deadlock) and 1205 (lock wait timeout) and SQLite's locked database are retried
- exponential backoff between attempts
- gives up after max_attempts and re-raises
"""

import time

import pytest
from sqlalchemy.exc import OperationalError

from reservation_engine.infrastructure.db.retry import is_deadlock_error, retry_on_deadlock


def _operational_error(message: str) -> OperationalError:
    return OperationalError("statement", "params", message, connection_invalidated=False)


class TestDeadlockDetection:
    def test_detect_mysql_deadlock_1213(self):
        error = _operational_error("(asyncmy.errors.OperationalError) (1213, 'Deadlock found')")
        assert is_deadlock_error(error)

    def test_detect_mysql_lock_wait_timeout_1205(self):
        error = _operational_error("(asyncmy.errors.OperationalError) (1205, 'Lock wait timeout exceeded')")
        assert is_deadlock_error(error)

    def test_detect_sqlite_locked(self):
        assert is_deadlock_error(_operational_error("(sqlite3.OperationalError) database is locked"))

    def test_ignore_other_errors(self):
        assert not is_deadlock_error(Exception("Generic error"))
        assert not is_deadlock_error(
            _operational_error("(asyncmy.errors.OperationalError) (2013, 'Lost connection to MySQL server')")
        )


@pytest.mark.asyncio
class TestRetryOnDeadlock:
    async def test_success_without_retry(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            return "ok"

        assert await retry_on_deadlock(func, max_attempts=3) == "ok"
        assert calls == 1

    async def test_retries_until_success(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            if calls <= 2:
                raise _operational_error("(1213, 'Deadlock found')")
            return "ok after retries"

        assert await retry_on_deadlock(func, max_attempts=3, base_delay=0.01) == "ok after retries"
        assert calls == 3

    async def test_gives_up_after_max_attempts(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise _operational_error("(1213, 'Deadlock found')")

        with pytest.raises(OperationalError):
            await retry_on_deadlock(func, max_attempts=3, base_delay=0.01)
        assert calls == 3

    async def test_other_errors_are_not_retried(self):
        calls = 0

        async def func():
            nonlocal calls
            calls += 1
            raise ValueError("not a deadlock")

        with pytest.raises(ValueError, match="not a deadlock"):
            await retry_on_deadlock(func, max_attempts=3)
        assert calls == 1

    async def test_exponential_backoff(self):
        call_times = []

        async def func():
            call_times.append(time.monotonic())
            raise _operational_error("(1213, 'Deadlock')")

        with pytest.raises(OperationalError):
            await retry_on_deadlock(func, max_attempts=3, base_delay=0.1)

        assert len(call_times) == 3
        first_delay = call_times[1] - call_times[0]
        second_delay = call_times[2] - call_times[1]
        assert 0.08 < first_delay < 0.2
        assert 0.18 < second_delay < 0.35
