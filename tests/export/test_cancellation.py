"""Tests for CancellationToken."""

import asyncio

import pytest

from procexport.export.common.cancellation import CancellationToken, check_cancelled
from procexport.export.common.exceptions import ExportCancelledError


class TestCancellationToken:
    """Tests for the cooperative cancellation flag."""

    def test_initially_clear(self, token):
        """Test a new token is not cancelled and does not raise."""
        assert token.is_cancelled is False
        assert token.reason is None
        token.raise_if_cancelled()

    def test_cancel_raises_with_reason(self, token):
        """Test cancel() makes checks raise with the given reason."""
        token.cancel("Stopped from the console")

        assert token.is_cancelled is True
        with pytest.raises(ExportCancelledError) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.message == "Stopped from the console"
        assert exc_info.value.error_code == "CANCELLED"

    def test_check_cancelled_tolerates_none(self):
        """Test helpers accept a missing token."""
        check_cancelled(None)

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self, token):
        """Test wait() resumes once another task cancels the token."""

        async def cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel()

        task = asyncio.create_task(cancel_soon())
        await asyncio.wait_for(token.wait(poll_interval=0.005), timeout=2)
        await task

        assert token.is_cancelled is True
