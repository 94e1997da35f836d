"""
Timeout management for Agent Trials.

Races an awaitable against a timer. On timeout the awaitable is
cancelled (not abandoned) so whatever it holds open is released.
"""

import asyncio
from typing import Any, Awaitable, Type
import logging

from ..exceptions import OperationTimeout

logger = logging.getLogger(__name__)


class TimeoutManager:
    """Manages timeouts for async operations.

    Usage:
        result = await TimeoutManager.with_timeout(
            read_everything(),
            300,
            "Stream safety timeout (5 min)",
            error=StreamTimeout,
        )
    """

    @staticmethod
    async def with_timeout(
        coro: Awaitable[Any],
        seconds: float,
        message: str = "Operation timed out",
        error: Type[OperationTimeout] = OperationTimeout,
    ) -> Any:
        """Execute a coroutine with timeout.

        Args:
            coro: Coroutine to execute
            seconds: Timeout in seconds
            message: Error message if timeout occurs
            error: Exception class raised on timeout

        Returns:
            The result of the coroutine

        Raises:
            OperationTimeout (or ``error``): If the operation times out.
                The coroutine has been cancelled by then.
        """
        try:
            return await asyncio.wait_for(coro, timeout=seconds)
        except asyncio.TimeoutError:
            logger.warning(f"{message} after {seconds}s")
            raise error(message)
