"""
Lift — helpers for lifting remote calls into LazyCoroResult.

Re-exports from combinators.lift with checkout-specific additions.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

from combinators.lift import catching_async

from checkout._errors import NetworkError, Section
from checkout._types import Remote


def remote[T](
    call: Callable[[], Awaitable[T]],
    section: Section | None = None,
) -> Remote[T, NetworkError]:
    """
    Wrap a remote call. Any exception becomes a NetworkError.

    Without an explicit section the error is classified from its message.

    Example:
        result = await remote(lambda: orders.create_order(draft))
    """
    return catching_async(
        call,
        on_error=lambda e: NetworkError.from_exception(e, section),
    )


__all__ = (
    # From combinators.lift
    "catching_async",
    # Checkout additions
    "remote",
)
