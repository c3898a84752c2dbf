"""Tests for the SQLAlchemy backend, end to end through a checkout session."""

from datetime import timedelta
from decimal import Decimal

import pytest

from checkout import CheckoutSession, UserId
from checkout._types import AddressId, LineId, OrderId, ProductId
from checkout.cart import CartLine
from checkout.delivery import DeliverySettings
from checkout.order import CheckoutSelection, OrderStatus, PartialOrderError
from checkout.remote import SqlBackend, create_database

MILK = ProductId("milk")
BREAD = ProductId("bread")

COD = CheckoutSelection(address_id=AddressId("addr-1"), cash_on_delivery=True)


@pytest.fixture
async def sql(tmp_path, clock):
    session_factory, engine = await create_database(f"sqlite+aiosqlite:///{tmp_path / 'checkout.db'}")
    yield SqlBackend(session_factory, clock=clock)
    await engine.dispose()


@pytest.fixture
def sql_session(sql, user_id, clock):
    return CheckoutSession(sql, user_id, clock=clock)


class TestCartTables:
    async def test_upsert_fetch_delete(self, sql, user_id):
        line = CartLine(LineId("l1"), MILK, 2, Decimal("30.50"))

        stored = await sql.upsert_line(user_id, line)
        await sql.upsert_line(user_id, line.pending(5))
        lines = await sql.fetch_lines(user_id)

        assert stored == line
        assert [(l.product_id, l.quantity, l.unit_price) for l in lines] == [(MILK, 5, Decimal("30.50"))]

        await sql.delete_line(user_id, line.line_id)
        assert await sql.fetch_lines(user_id) == []

    async def test_delete_all_is_per_user(self, sql, user_id):
        other = UserId("user-2")
        await sql.upsert_line(user_id, CartLine(LineId("a"), MILK, 1, Decimal("1")))
        await sql.upsert_line(other, CartLine(LineId("b"), MILK, 1, Decimal("1")))

        await sql.delete_all_lines(user_id)

        assert await sql.fetch_lines(user_id) == []
        assert len(await sql.fetch_lines(other)) == 1


class TestCouponAuthority:
    async def test_verdicts(self, sql, user_id, make_coupon, now):
        await sql.add_coupon(make_coupon("SAVE10", "10%", kind=None))
        await sql.add_coupon(make_coupon("OLD", valid_until=now - timedelta(days=1)))
        await sql.add_coupon(make_coupon("GONE", usage_limit=1, used_count=1))

        ok = await sql.validate_coupon_for_user("save10", user_id)
        assert ok.valid
        assert ok.coupon.kind is None
        assert ok.coupon.discount == "10%"
        assert ok.coupon.valid_until == now + timedelta(days=7)

        assert (await sql.validate_coupon_for_user("OLD", user_id)).reason == "This coupon has expired"
        assert (await sql.validate_coupon_for_user("GONE", user_id)).reason == (
            "This coupon has reached its usage limit"
        )
        assert (await sql.validate_coupon_for_user("NONE", user_id)).reason == "Invalid coupon code"


class TestDeliverySettings:
    async def test_none_until_configured(self, sql):
        assert await sql.fetch_delivery_settings() is None

        await sql.set_delivery_settings(DeliverySettings(Decimal("30"), True, Decimal("499")))

        assert await sql.fetch_delivery_settings() == DeliverySettings(Decimal("30"), True, Decimal("499"))


class TestCheckoutFlow:
    async def test_place_order_with_coupon(self, sql, sql_session, user_id, make_coupon):
        await sql.set_delivery_settings(DeliverySettings(Decimal("40"), True, Decimal("500")))
        await sql.add_coupon(make_coupon("SAVE10", "10", max_discount_amount=Decimal("25")))
        await sql_session.add_item(MILK, 3, unit_price=Decimal("100"))

        applied = (await sql_session.apply_coupon("SAVE10")).unwrap()
        placed = (await sql_session.place_order(COD)).unwrap()

        assert placed.discount_amount == Decimal("25.00")
        assert placed.total_amount == Decimal("315.00")

        found = await sql.fetch_order(placed.order_id)
        assert found.order.status is OrderStatus.PENDING
        assert found.order.applied_coupon_id == applied.coupon_id
        assert found.order.payment_method_id is None
        assert [(i.product_id, i.quantity, i.unit_price) for i in found.items] == [(MILK, 3, Decimal("100"))]
        assert await sql.fetch_lines(user_id) == []

        reused = await sql.validate_coupon_for_user("SAVE10", user_id)
        assert reused.reason == "You have already used this coupon"
        assert reused.coupon is None

    async def test_partial_order_then_resume(self, sql, sql_session, user_id, monkeypatch):
        await sql_session.add_item(BREAD, 2, unit_price=Decimal("45"))
        original = sql.create_order_items

        async def broken(order_id, items):
            raise ConnectionError("connection lost")

        monkeypatch.setattr(sql, "create_order_items", broken)
        error = (await sql_session.place_order(COD)).unwrap_err()
        assert isinstance(error, PartialOrderError)
        assert await sql.count_order_items(error.order_id) == 0
        assert len(await sql.fetch_lines(user_id)) == 1

        monkeypatch.setattr(sql, "create_order_items", original)
        resumed = (await sql_session.resume(error.order_id)).unwrap()
        again = (await sql_session.resume(error.order_id)).unwrap()

        assert resumed.items_written == 1
        assert again.already_complete
        assert await sql.count_order_items(error.order_id) == 1
        assert await sql.fetch_lines(user_id) == []

    async def test_items_for_unknown_order_rejected(self, sql):
        with pytest.raises(LookupError):
            await sql.create_order_items(OrderId("missing"), [])

    async def test_second_item_write_rejected(self, sql, sql_session):
        await sql_session.add_item(MILK, 1, unit_price=Decimal("100"))
        placed = (await sql_session.place_order(COD)).unwrap()
        found = await sql.fetch_order(placed.order_id)

        with pytest.raises(ValueError):
            await sql.create_order_items(placed.order_id, found.items)

        assert await sql.count_order_items(placed.order_id) == 1

    async def test_resume_after_cart_edit_writes_ordered_lines(self, sql, sql_session, user_id, monkeypatch):
        await sql_session.add_item(MILK, 2, unit_price=Decimal("100"))
        original = sql.create_order_items

        async def broken(order_id, items):
            raise ConnectionError("connection lost")

        monkeypatch.setattr(sql, "create_order_items", broken)
        order_id = (await sql_session.place_order(COD)).unwrap_err().order_id
        monkeypatch.setattr(sql, "create_order_items", original)
        await sql_session.add_item(BREAD, 3, unit_price=Decimal("50"))

        (await sql_session.resume(order_id)).unwrap()

        found = await sql.fetch_order(order_id)
        assert [(i.product_id, i.quantity) for i in found.items] == [(MILK, 2)]
        assert found.order.subtotal == Decimal("200.00")
        assert [line.product_id for line in await sql.fetch_lines(user_id)] == [BREAD]

    async def test_list_orders(self, sql, sql_session):
        await sql_session.add_item(MILK, 1, unit_price=Decimal("100"))
        placed = (await sql_session.place_order(COD)).unwrap()

        history = (await sql_session.history()).unwrap()

        assert [entry.order.id for entry in history] == [placed.order_id]
        assert history[0].order.total_amount == Decimal("140.00")
        assert await sql.fetch_order(OrderId("missing")) is None
