"""
SQLAlchemy backend — the hosted store on an async database.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///shop.db")
    backend = SqlBackend(session_factory)
    await backend.add_coupon(record)

The coupon check runs in one transaction per call and usage is recorded in
the same transaction that creates the order.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from checkout._types import (
    AddressId,
    CouponId,
    LineId,
    OrderId,
    PaymentMethodId,
    ProductId,
    UserId,
)
from checkout.cart import CartLine
from checkout.coupon import CouponRecord, CouponVerdict, DiscountKind, normalize_code
from checkout.delivery import DeliverySettings
from checkout.order import Order, OrderDraft, OrderItem, OrderStatus, OrderWithItems
from checkout.remote._memory import coupon_verdict

_MONEY = Numeric(12, 2, asdecimal=True)


def _aware(moment: datetime) -> datetime:
    """SQLite drops tzinfo; everything is stored in UTC."""
    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment.astimezone(UTC)


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class CartItemTable(Base):
    __tablename__ = "cart_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CouponTable(Base):
    __tablename__ = "coupons"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # Raw value: "10", "10%" or "₹50"
    discount: Mapped[str] = mapped_column(String(32), nullable=False)
    discount_type: Mapped[str | None] = mapped_column(String(16), nullable=True)

    min_purchase_amount: Mapped[Decimal | None] = mapped_column(_MONEY, nullable=True)
    max_discount_amount: Mapped[Decimal | None] = mapped_column(_MONEY, nullable=True)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    applicable_products: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    applicable_categories: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)


class CouponUsageTable(Base):
    __tablename__ = "coupon_usages"
    __table_args__ = (UniqueConstraint("coupon_id", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    coupon_id: Mapped[str] = mapped_column(ForeignKey("coupons.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DeliverySettingsTable(Base):
    __tablename__ = "delivery_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    base_fee: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)
    free_delivery_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    free_delivery_threshold: Mapped[Decimal | None] = mapped_column(_MONEY, nullable=True)


class OrderTable(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    delivery_address_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payment_method_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_cash_on_delivery: Mapped[bool] = mapped_column(Boolean, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)
    applied_coupon_id: Mapped[str | None] = mapped_column(ForeignKey("coupons.id"), nullable=True)

    estimated_delivery: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class OrderItemTable(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(_MONEY, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create tables and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


# ═══════════════════════════════════════════════════════════════════════════════
# Row mapping
# ═══════════════════════════════════════════════════════════════════════════════


def _to_line(row: CartItemTable) -> CartLine:
    return CartLine(
        line_id=LineId(row.id),
        product_id=ProductId(row.product_id),
        quantity=row.quantity,
        unit_price=row.unit_price,
    )


def _to_coupon(row: CouponTable) -> CouponRecord:
    return CouponRecord(
        id=CouponId(row.id),
        code=row.code,
        discount=row.discount,
        valid_until=_aware(row.valid_until),
        kind=DiscountKind(row.discount_type) if row.discount_type else None,
        min_purchase_amount=row.min_purchase_amount,
        max_discount_amount=row.max_discount_amount,
        usage_limit=row.usage_limit,
        used_count=row.used_count,
        applicable_product_ids=(
            frozenset(ProductId(p) for p in row.applicable_products)
            if row.applicable_products is not None else None
        ),
        applicable_category_ids=(
            frozenset(row.applicable_categories)
            if row.applicable_categories is not None else None
        ),
    )


def _to_order(row: OrderTable) -> Order:
    return Order(
        id=OrderId(row.id),
        user_id=UserId(row.user_id),
        delivery_address_id=AddressId(row.delivery_address_id),
        payment_method_id=PaymentMethodId(row.payment_method_id) if row.payment_method_id else None,
        is_cash_on_delivery=row.is_cash_on_delivery,
        status=OrderStatus(row.status),
        subtotal=row.subtotal,
        discount_amount=row.discount_amount,
        delivery_fee=row.delivery_fee,
        total_amount=row.total_amount,
        applied_coupon_id=CouponId(row.applied_coupon_id) if row.applied_coupon_id else None,
        estimated_delivery=_aware(row.estimated_delivery),
        created_at=_aware(row.created_at),
    )


def _to_item(row: OrderItemTable) -> OrderItem:
    return OrderItem(
        order_id=OrderId(row.order_id),
        product_id=ProductId(row.product_id),
        quantity=row.quantity,
        unit_price=row.unit_price,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SqlBackend
# ═══════════════════════════════════════════════════════════════════════════════


class SqlBackend:
    """Implements cart, coupon, delivery settings and order persistence."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    # ───────────────────────────────────────────────────────────────────────────
    # Seeding
    # ───────────────────────────────────────────────────────────────────────────

    async def add_coupon(self, record: CouponRecord) -> None:
        async with self._session_factory() as session:
            session.add(CouponTable(
                id=record.id.value,
                code=normalize_code(record.code),
                discount=str(record.discount),
                discount_type=record.kind.value if record.kind else None,
                min_purchase_amount=record.min_purchase_amount,
                max_discount_amount=record.max_discount_amount,
                valid_until=_aware(record.valid_until),
                usage_limit=record.usage_limit,
                used_count=record.used_count,
                applicable_products=(
                    sorted(p.value for p in record.applicable_product_ids)
                    if record.applicable_product_ids is not None else None
                ),
                applicable_categories=(
                    sorted(record.applicable_category_ids)
                    if record.applicable_category_ids is not None else None
                ),
            ))
            await session.commit()

    async def set_delivery_settings(self, settings: DeliverySettings) -> None:
        async with self._session_factory() as session:
            session.add(DeliverySettingsTable(
                base_fee=settings.base_fee,
                free_delivery_enabled=settings.free_delivery_enabled,
                free_delivery_threshold=settings.free_delivery_threshold,
            ))
            await session.commit()

    # ───────────────────────────────────────────────────────────────────────────
    # CartPersistence
    # ───────────────────────────────────────────────────────────────────────────

    async def fetch_lines(self, user_id: UserId) -> list[CartLine]:
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(CartItemTable)
                .where(CartItemTable.user_id == user_id.value)
                .order_by(CartItemTable.created_at, CartItemTable.id)
            )
            return [_to_line(row) for row in rows]

    async def upsert_line(self, user_id: UserId, line: CartLine) -> CartLine:
        async with self._session_factory() as session:
            row = await session.get(CartItemTable, line.line_id.value)
            if row is None:
                row = CartItemTable(
                    id=line.line_id.value,
                    user_id=user_id.value,
                    product_id=line.product_id.value,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    created_at=self._clock(),
                )
                session.add(row)
            elif row.user_id != user_id.value:
                raise PermissionError(f"cart line {line.line_id.value} belongs to another user")
            else:
                row.quantity = line.quantity
                row.unit_price = line.unit_price
            await session.commit()
            return _to_line(row)

    async def delete_line(self, user_id: UserId, line_id: LineId) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(CartItemTable)
                .where(CartItemTable.id == line_id.value)
                .where(CartItemTable.user_id == user_id.value)
            )
            await session.commit()

    async def delete_all_lines(self, user_id: UserId) -> None:
        async with self._session_factory() as session:
            await session.execute(
                delete(CartItemTable).where(CartItemTable.user_id == user_id.value)
            )
            await session.commit()

    # ───────────────────────────────────────────────────────────────────────────
    # CouponAuthority
    # ───────────────────────────────────────────────────────────────────────────

    async def validate_coupon_for_user(self, code: str, user_id: UserId) -> CouponVerdict:
        async with self._session_factory() as session:
            row = await session.scalar(
                select(CouponTable).where(CouponTable.code == normalize_code(code))
            )
            if row is None:
                return coupon_verdict(None, already_used=False, now=self._clock())

            used = await session.scalar(
                select(func.count())
                .select_from(CouponUsageTable)
                .where(CouponUsageTable.coupon_id == row.id)
                .where(CouponUsageTable.user_id == user_id.value)
            )
            return coupon_verdict(_to_coupon(row), already_used=bool(used), now=self._clock())

    # ───────────────────────────────────────────────────────────────────────────
    # DeliverySettingsStore
    # ───────────────────────────────────────────────────────────────────────────

    async def fetch_delivery_settings(self) -> DeliverySettings | None:
        async with self._session_factory() as session:
            row = await session.scalar(
                select(DeliverySettingsTable).order_by(DeliverySettingsTable.id.desc()).limit(1)
            )
            if row is None:
                return None
            return DeliverySettings(
                base_fee=row.base_fee,
                free_delivery_enabled=row.free_delivery_enabled,
                free_delivery_threshold=row.free_delivery_threshold,
            )

    # ───────────────────────────────────────────────────────────────────────────
    # OrderPersistence
    # ───────────────────────────────────────────────────────────────────────────

    async def create_order(self, draft: OrderDraft) -> OrderId:
        order_id = uuid.uuid4().hex
        now = self._clock()
        async with self._session_factory() as session:
            async with session.begin():
                session.add(OrderTable(
                    id=order_id,
                    user_id=draft.user_id.value,
                    delivery_address_id=draft.delivery_address_id.value,
                    payment_method_id=(
                        draft.payment_method_id.value if draft.payment_method_id else None
                    ),
                    is_cash_on_delivery=draft.is_cash_on_delivery,
                    status=draft.status.value,
                    subtotal=draft.subtotal,
                    discount_amount=draft.discount_amount,
                    delivery_fee=draft.delivery_fee,
                    total_amount=draft.total_amount,
                    applied_coupon_id=(
                        draft.applied_coupon_id.value if draft.applied_coupon_id else None
                    ),
                    estimated_delivery=draft.estimated_delivery,
                    created_at=now,
                ))
                if draft.applied_coupon_id is not None:
                    session.add(CouponUsageTable(
                        coupon_id=draft.applied_coupon_id.value,
                        user_id=draft.user_id.value,
                        order_id=order_id,
                        used_at=now,
                    ))
                    await session.execute(
                        update(CouponTable)
                        .where(CouponTable.id == draft.applied_coupon_id.value)
                        .values(used_count=CouponTable.used_count + 1)
                    )
        return OrderId(order_id)

    async def create_order_items(self, order_id: OrderId, items: Sequence[OrderItem]) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                if await session.get(OrderTable, order_id.value) is None:
                    raise LookupError(f"order {order_id.value} does not exist")
                existing = await session.scalar(
                    select(func.count())
                    .select_from(OrderItemTable)
                    .where(OrderItemTable.order_id == order_id.value)
                )
                if existing:
                    raise ValueError(f"order {order_id.value} already has items")
                session.add_all([
                    OrderItemTable(
                        order_id=order_id.value,
                        product_id=item.product_id.value,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                    )
                    for item in items
                ])

    async def fetch_order(self, order_id: OrderId) -> OrderWithItems | None:
        async with self._session_factory() as session:
            row = await session.get(OrderTable, order_id.value)
            if row is None:
                return None
            return OrderWithItems(_to_order(row), await self._items(session, [row.id]))

    async def count_order_items(self, order_id: OrderId) -> int:
        async with self._session_factory() as session:
            count = await session.scalar(
                select(func.count())
                .select_from(OrderItemTable)
                .where(OrderItemTable.order_id == order_id.value)
            )
            return count or 0

    async def list_orders(self, user_id: UserId) -> list[OrderWithItems]:
        async with self._session_factory() as session:
            rows = list(await session.scalars(
                select(OrderTable).where(OrderTable.user_id == user_id.value)
            ))
            items = await self._items(session, [row.id for row in rows])
            return [
                OrderWithItems(
                    _to_order(row),
                    tuple(item for item in items if item.order_id.value == row.id),
                )
                for row in rows
            ]

    async def _items(self, session: AsyncSession, order_ids: list[str]) -> tuple[OrderItem, ...]:
        if not order_ids:
            return ()
        rows = await session.scalars(
            select(OrderItemTable)
            .where(OrderItemTable.order_id.in_(order_ids))
            .order_by(OrderItemTable.id)
        )
        return tuple(_to_item(row) for row in rows)


__all__ = (
    "Base",
    "CartItemTable",
    "CouponTable",
    "CouponUsageTable",
    "DeliverySettingsTable",
    "OrderTable",
    "OrderItemTable",
    "create_database",
    "SqlBackend",
)
