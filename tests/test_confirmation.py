"""
Tests for confirmation.py
"""
import pytest
from unittest.mock import AsyncMock

from nozomi_swap.confirmation import PollPolicy, wait_for_confirmation
from nozomi_swap.errors import ConfirmationError, ConfirmationTimeoutError


class FakeClock:
    """Monotonic clock that only moves when sleep() is awaited."""

    def __init__(self, start=100.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestPollPolicy:
    """Tests for PollPolicy validation."""

    def test_defaults_are_unbounded(self):
        policy = PollPolicy()
        assert policy.interval == 0.0
        assert policy.timeout is None
        assert policy.max_attempts is None

    @pytest.mark.parametrize("kwargs", [
        {"interval": -1},
        {"timeout": 0},
        {"max_attempts": 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            PollPolicy(**kwargs)


class TestWaitForConfirmation:
    """Tests for wait_for_confirmation."""

    @pytest.mark.asyncio
    async def test_confirmed_immediately(self):
        clock = FakeClock()
        check = AsyncMock(return_value=True)

        result = await wait_for_confirmation(check, PollPolicy(), sleep=clock.sleep, clock=clock)

        assert result.attempts == 1
        assert result.elapsed_seconds == 0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_polls_until_confirmed(self):
        """Not-yet-confirmed responses keep the loop going; one confirmed ends it."""
        clock = FakeClock()
        check = AsyncMock(side_effect=[False, False, False, True])

        result = await wait_for_confirmation(
            check, PollPolicy(interval=0.5), sleep=clock.sleep, clock=clock
        )

        assert result.attempts == 4
        assert check.await_count == 4
        assert clock.sleeps == [0.5, 0.5, 0.5]
        assert result.elapsed_seconds == pytest.approx(1.5)

    @pytest.mark.asyncio
    async def test_unbounded_policy_keeps_polling(self):
        clock = FakeClock()
        check = AsyncMock(side_effect=[False] * 500 + [True])

        result = await wait_for_confirmation(check, PollPolicy(), sleep=clock.sleep, clock=clock)

        assert result.attempts == 501
        # Zero-interval sleeps still yield to the event loop
        assert clock.sleeps == [0.0] * 500

    @pytest.mark.asyncio
    async def test_elapsed_measured_from_started_at(self):
        clock = FakeClock(start=10.0)
        check = AsyncMock(side_effect=[False, True])

        result = await wait_for_confirmation(
            check, PollPolicy(interval=1.0), sleep=clock.sleep, clock=clock, started_at=7.0
        )

        assert result.elapsed_seconds == pytest.approx(4.0)

    @pytest.mark.asyncio
    async def test_max_attempts(self):
        clock = FakeClock()
        check = AsyncMock(return_value=False)

        with pytest.raises(ConfirmationTimeoutError, match="3 status checks") as exc_info:
            await wait_for_confirmation(
                check, PollPolicy(max_attempts=3), sleep=clock.sleep, clock=clock
            )

        assert check.await_count == 3
        assert exc_info.value.step == "confirm"

    @pytest.mark.asyncio
    async def test_timeout(self):
        clock = FakeClock()
        check = AsyncMock(return_value=False)

        with pytest.raises(ConfirmationTimeoutError, match="within 2.0s"):
            await wait_for_confirmation(
                check, PollPolicy(interval=0.5, timeout=2.0), sleep=clock.sleep, clock=clock
            )

        # Checks at t=0, 0.5, 1.0, 1.5, 2.0
        assert check.await_count == 5

    @pytest.mark.asyncio
    async def test_transport_error_is_fatal(self):
        clock = FakeClock()
        check = AsyncMock(side_effect=[False, ConnectionError("RPC down"), True])

        with pytest.raises(ConfirmationError, match="RPC down") as exc_info:
            await wait_for_confirmation(check, PollPolicy(), sleep=clock.sleep, clock=clock)

        # No retry after the error
        assert check.await_count == 2
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert not isinstance(exc_info.value, ConfirmationTimeoutError)

    @pytest.mark.asyncio
    async def test_confirmation_error_passes_through(self):
        clock = FakeClock()
        error = ConfirmationError("Transaction failed: InstructionError")
        check = AsyncMock(side_effect=error)

        with pytest.raises(ConfirmationError) as exc_info:
            await wait_for_confirmation(check, PollPolicy(), sleep=clock.sleep, clock=clock)

        assert exc_info.value is error
