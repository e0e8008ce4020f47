"""
Unit tests for the resilient query executor and the retry primitive behind it.
"""

from unittest.mock import MagicMock

import pytest

from service_catalog.app.resilience.query_executor import ResilientQueryExecutor
from service_catalog.tests.factories import RecordingSleep
from shared.errors import PermanentStoreError, TransientStoreError
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig, retry_call


class TestRetryCall:
    """Test cases for retry_call."""

    def test_returns_first_success_without_sleeping(self):
        sleep = RecordingSleep()
        func = MagicMock(return_value="ok")

        assert retry_call(func, 1, key="v", sleep=sleep) == "ok"
        func.assert_called_once_with(1, key="v")
        assert sleep.delays == []

    def test_reraises_last_exception_unchanged(self):
        errors = [ValueError("first"), ValueError("second"), ValueError("third")]
        func = MagicMock(side_effect=errors)

        with pytest.raises(ValueError) as exc_info:
            retry_call(func, exceptions=(ValueError,), config=RetryConfig(max_attempts=3), sleep=RecordingSleep())

        assert exc_info.value is errors[-1]
        assert func.call_count == 3

    def test_other_exceptions_are_not_retried(self):
        func = MagicMock(side_effect=KeyError("nope"))

        with pytest.raises(KeyError):
            retry_call(func, exceptions=(ValueError,), sleep=RecordingSleep())
        assert func.call_count == 1

    def test_on_retry_sees_each_failed_attempt(self):
        seen = []
        func = MagicMock(side_effect=[ValueError("a"), "done"])

        result = retry_call(
            func,
            exceptions=(ValueError,),
            sleep=RecordingSleep(),
            on_retry=lambda attempt, error: seen.append((attempt, str(error)))
        )

        assert result == "done"
        assert seen == [(1, "a")]

    def test_waits_the_configured_fixed_delay(self):
        sleep = RecordingSleep()
        func = MagicMock(side_effect=[ValueError("a"), ValueError("b"), "done"])

        assert retry_call(func, exceptions=(ValueError,), config=RetryConfig(max_attempts=3, delay=0.5), sleep=sleep) == "done"
        assert sleep.delays == [0.5, 0.5]

    def test_config_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)


class TestResilientQueryExecutor:
    """Test cases for ResilientQueryExecutor."""

    @pytest.fixture
    def sleep(self):
        return RecordingSleep()

    def test_two_transient_failures_then_success(self, sleep):
        executor = ResilientQueryExecutor(max_attempts=3, delay_seconds=1.0, sleep=sleep)
        operation = MagicMock(side_effect=[TransientStoreError(), TransientStoreError(), ["row"]])

        assert executor.execute(operation, "arg", name="search") == ["row"]
        assert operation.call_count == 3
        assert sleep.delays == [1.0, 1.0]

    def test_three_transient_failures_surface_the_last(self, sleep):
        executor = ResilientQueryExecutor(max_attempts=3, delay_seconds=1.0, sleep=sleep)
        errors = [TransientStoreError("1"), TransientStoreError("2"), TransientStoreError("3")]
        operation = MagicMock(side_effect=errors + [["never"]])

        with pytest.raises(TransientStoreError) as exc_info:
            executor.execute(operation, name="search")

        assert exc_info.value is errors[-1]
        assert operation.call_count == 3
        assert sleep.delays == [1.0, 1.0]

    def test_permanent_failure_is_not_retried(self, sleep):
        executor = ResilientQueryExecutor(sleep=sleep)
        operation = MagicMock(side_effect=PermanentStoreError("bad query"))

        with pytest.raises(PermanentStoreError):
            executor.execute(operation, name="search")

        assert operation.call_count == 1
        assert sleep.delays == []

    def test_retries_are_counted(self, sleep):
        metrics = MetricsCollector("catalog")
        executor = ResilientQueryExecutor(metrics=metrics, sleep=sleep)
        operation = MagicMock(side_effect=[TransientStoreError(), "ok"])

        assert executor.execute(operation, name="find_in_stock_products") == "ok"
        assert metrics.get_sample_value("query_retries_total", {"operation": "find_in_stock_products"}) == 1
        assert metrics.get_sample_value("query_duration_seconds_count", {"operation": "find_in_stock_products"}) == 1

    def test_configured_attempts_and_delay(self, sleep):
        executor = ResilientQueryExecutor(max_attempts=5, delay_seconds=0.25, sleep=sleep)
        operation = MagicMock(side_effect=[TransientStoreError()] * 4 + ["ok"])

        assert executor.execute(operation) == "ok"
        assert sleep.delays == [0.25] * 4
