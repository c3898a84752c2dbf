"""
Cart store — local-first cart with eventual remote persistence.

Every mutation changes local state at once (the line becomes PENDING_WRITE)
and then issues the remote write. Remote writes are serialized in issue
order. A successful write confirms the line; a failed write reverts it to
its last confirmed copy.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Coroutine, Sequence
from decimal import Decimal
from typing import Any, Protocol

from kungfu import Result, Ok, Error

from checkout import lift as L
from checkout._errors import NetworkError
from checkout._types import LineId, ProductId, UserId
from checkout.cart._types import CartLine, LineState

logger = logging.getLogger(__name__)


class CartPersistence(Protocol):
    async def fetch_lines(self, user_id: UserId) -> list[CartLine]: ...

    async def upsert_line(self, user_id: UserId, line: CartLine) -> CartLine:
        """Insert or update by line_id. Returns the stored line with the server's price."""
        ...

    async def delete_line(self, user_id: UserId, line_id: LineId) -> None: ...

    async def delete_all_lines(self, user_id: UserId) -> None: ...


def new_line_id() -> LineId:
    return LineId(uuid.uuid4().hex)


# ═══════════════════════════════════════════════════════════════════════════════
# CartStore
# ═══════════════════════════════════════════════════════════════════════════════


class CartStore:
    """
    Authoritative cart for one user.

    Example:
        cart = CartStore(backend, user_id)
        await cart.load()
        await cart.add_item(ProductId("apple"), 2, unit_price=Decimal("30"))
        lines = await cart.confirmed_snapshot()
    """

    def __init__(self, persistence: CartPersistence, user_id: UserId) -> None:
        self._persistence = persistence
        self._user_id = user_id
        self._lines: dict[LineId, CartLine] = {}
        self._confirmed: dict[LineId, CartLine] = {}
        self._write_lock = asyncio.Lock()
        self._inflight: set[asyncio.Task[Any]] = set()

    @property
    def user_id(self) -> UserId:
        return self._user_id

    @property
    def lines(self) -> tuple[CartLine, ...]:
        """Current lines including optimistic ones."""
        return tuple(self._lines.values())

    @property
    def has_pending_writes(self) -> bool:
        return any(line.state is LineState.PENDING_WRITE for line in self._lines.values())

    def line_for(self, product_id: ProductId) -> CartLine | None:
        for line in self._lines.values():
            if line.product_id == product_id:
                return line
        return None

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    async def load(self) -> Result[tuple[CartLine, ...], NetworkError]:
        """Replace local state with the remote lines."""
        await self.settle()
        result = await L.remote(lambda: self._persistence.fetch_lines(self._user_id))
        match result:
            case Ok(remote_lines):
                confirmed = [line.confirmed() for line in remote_lines]
                self._lines = {line.line_id: line for line in confirmed}
                self._confirmed = dict(self._lines)
                return Ok(self.lines)
            case Error(error):
                logger.warning("Cart load failed for %s: %s", self._user_id.value, error.message)
                return Error(error)

    async def settle(self) -> None:
        """Wait for every in-flight remote write."""
        while pending := [task for task in self._inflight if not task.done()]:
            await asyncio.wait(pending)

    async def confirmed_snapshot(self) -> tuple[CartLine, ...]:
        """Lines whose last remote write succeeded, after pending writes settle."""
        await self.settle()
        return tuple(line for line in self._lines.values() if line.is_confirmed)

    # ───────────────────────────────────────────────────────────────────────────
    # Mutations
    # ───────────────────────────────────────────────────────────────────────────

    async def add_item(
        self,
        product_id: ProductId,
        quantity: int = 1,
        *,
        unit_price: Decimal,
    ) -> Result[CartLine, NetworkError]:
        """Add a product, merging into its existing line."""
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        existing = self.line_for(product_id)
        if existing is not None:
            pending = CartLine(
                line_id=existing.line_id,
                product_id=product_id,
                quantity=existing.quantity + quantity,
                unit_price=unit_price,
                state=LineState.PENDING_WRITE,
            )
        else:
            pending = CartLine(
                line_id=new_line_id(),
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                state=LineState.PENDING_WRITE,
            )
        self._lines[pending.line_id] = pending
        return await self._run(self._persist_upsert(pending))

    async def update_quantity(
        self,
        line_id: LineId,
        quantity: int,
    ) -> Result[CartLine | None, NetworkError]:
        """Set a line's quantity. Zero or less removes the line. Unknown ids raise KeyError."""
        if quantity <= 0:
            result = await self.remove_item(line_id)
            return result.map(lambda _: None)

        pending = self._lines[line_id].pending(quantity)
        self._lines[line_id] = pending
        return await self._run(self._persist_upsert(pending))

    async def remove_item(self, line_id: LineId) -> Result[None, NetworkError]:
        del self._lines[line_id]
        return await self._run(self._persist_delete(line_id))

    async def clear(self) -> Result[None, NetworkError]:
        """Remove every line."""
        self._lines = {}
        return await self._run(self._persist_clear())

    async def remove_ordered(self, ordered: Sequence[CartLine]) -> Result[None, NetworkError]:
        """
        Remove the lines an order was placed from.

        Lines added or changed since the order snapshot stay in the cart.
        When nothing else is in the cart this is a single bulk clear.
        """
        if not ordered:
            return Ok(None)
        await self.settle()
        unchanged = [
            line.line_id
            for line in ordered
            if (current := self._lines.get(line.line_id)) is not None
            and current.product_id == line.product_id
            and current.quantity == line.quantity
        ]
        if len(unchanged) == len(self._lines):
            return await self.clear()

        for line_id in unchanged:
            match await self.remove_item(line_id):
                case Error(error):
                    return Error(error)
                case Ok(_):
                    pass
        return Ok(None)

    # ───────────────────────────────────────────────────────────────────────────
    # Remote writes
    # ───────────────────────────────────────────────────────────────────────────

    async def _run[T](self, write: Coroutine[Any, Any, T]) -> T:
        # Shielded: a cancelled caller does not abandon an issued write.
        task = asyncio.create_task(write)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return await asyncio.shield(task)

    async def _persist_upsert(self, pending: CartLine) -> Result[CartLine, NetworkError]:
        async with self._write_lock:
            result = await L.remote(
                lambda: self._persistence.upsert_line(self._user_id, pending)
            )

        match result:
            case Ok(stored):
                confirmed = stored.confirmed()
                self._confirmed[confirmed.line_id] = confirmed
                if self._lines.get(pending.line_id) is pending:
                    self._lines[pending.line_id] = confirmed
                return Ok(confirmed)
            case Error(error):
                logger.warning(
                    "Cart write for %s failed, reverting: %s",
                    pending.product_id.value,
                    error.message,
                )
                if self._lines.get(pending.line_id) is pending:
                    self._revert(pending.line_id)
                return Error(error)

    async def _persist_delete(self, line_id: LineId) -> Result[None, NetworkError]:
        async with self._write_lock:
            result = await L.remote(
                lambda: self._persistence.delete_line(self._user_id, line_id)
            )

        match result:
            case Ok(_):
                self._confirmed.pop(line_id, None)
                return Ok(None)
            case Error(error):
                logger.warning("Cart delete of %s failed, restoring: %s", line_id.value, error.message)
                if line_id not in self._lines:
                    self._revert(line_id)
                return Error(error)

    async def _persist_clear(self) -> Result[None, NetworkError]:
        async with self._write_lock:
            result = await L.remote(
                lambda: self._persistence.delete_all_lines(self._user_id)
            )

        match result:
            case Ok(_):
                self._confirmed = {}
                return Ok(None)
            case Error(error):
                logger.warning("Cart clear failed for %s, restoring: %s", self._user_id.value, error.message)
                for line_id in self._confirmed:
                    if line_id not in self._lines:
                        self._revert(line_id)
                return Error(error)

    def _revert(self, line_id: LineId) -> None:
        previous = self._confirmed.get(line_id)
        if previous is None:
            self._lines.pop(line_id, None)
        else:
            self._lines[line_id] = previous


__all__ = ("CartPersistence", "new_line_id", "CartStore")
