"""Tests for the checkout session: mutation → pricing → coupon re-validation."""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

from checkout._types import AddressId, LineId, ProductId
from checkout.cart import CartLine
from checkout.coupon import BelowMinimumPurchase, DiscountKind
from checkout.order import CheckoutSelection, OrderStatus, summarize_orders

MILK = ProductId("milk")
EGGS = ProductId("eggs")

COD = CheckoutSelection(address_id=AddressId("addr-1"), cash_on_delivery=True)


class TestCouponRevalidation:
    async def test_removing_item_below_minimum_drops_coupon(self, backend, session, make_coupon):
        backend.add_coupon(make_coupon("BIG50", "₹50", DiscountKind.FIXED, min_purchase_amount=Decimal("500")))
        await session.add_item(MILK, 4, unit_price=Decimal("100"))
        eggs = (await session.add_item(EGGS, 2, unit_price=Decimal("60"))).result.unwrap()
        await session.apply_coupon("BIG50")
        assert session.totals.discount_amount == Decimal("50")

        change = await session.remove_item(eggs.line_id)

        assert isinstance(change.coupon_error, BelowMinimumPurchase)
        assert change.coupon_error.shortfall == Decimal("100")
        assert session.coupon is None
        assert change.totals.discount_amount == Decimal("0")
        assert change.totals.subtotal == Decimal("400")

    async def test_coupon_survives_change_that_keeps_minimum(self, backend, session, make_coupon):
        backend.add_coupon(make_coupon("BIG50", "₹50", DiscountKind.FIXED, min_purchase_amount=Decimal("300")))
        milk = (await session.add_item(MILK, 4, unit_price=Decimal("100"))).result.unwrap()
        await session.apply_coupon("BIG50")

        change = await session.update_quantity(milk.line_id, 3)

        assert change.coupon_error is None
        assert session.coupon is not None
        assert change.totals.discounted_subtotal == Decimal("250")

    async def test_revalidation_uses_post_mutation_subtotal(self, backend, session, make_coupon):
        backend.add_coupon(make_coupon("BIG50", min_purchase_amount=Decimal("300")))
        await session.add_item(MILK, 3, unit_price=Decimal("100"))
        await session.apply_coupon("BIG50")

        change = await session.add_item(EGGS, 1, unit_price=Decimal("60"))

        assert session.coupon.validated_subtotal == Decimal("360")
        assert change.totals.discount_amount == Decimal("36")

    def test_remove_coupon_recomputes_totals(self, session):
        assert session.remove_coupon().discount_amount == Decimal("0")


class TestSummary:
    async def test_summary_matches_order_write(self, backend, session):
        await session.add_item(MILK, 2, unit_price=Decimal("100"))

        summary = (await session.summary()).unwrap()
        placed = (await session.place_order(COD)).unwrap()

        assert summary.total_amount == Decimal("240")
        assert placed.total_amount == summary.total_amount
        assert placed.delivery_fee == summary.delivery.fee

    async def test_open_loads_remote_cart(self, backend, session, user_id):
        line = CartLine(LineId("l1"), MILK, 2, Decimal("100"))
        backend.carts[user_id] = {line.line_id: line}

        totals = (await session.open()).unwrap()

        assert totals.subtotal == Decimal("200")
        assert session.cart.lines == (line,)


class TestHistory:
    async def test_history_newest_first_with_stats(self, backend, session, now):
        await session.add_item(MILK, 1, unit_price=Decimal("100"))
        first = (await session.place_order(COD)).unwrap()
        backend.clock = lambda: now + timedelta(hours=1)
        await session.add_item(EGGS, 1, unit_price=Decimal("60"))
        second = (await session.place_order(COD)).unwrap()
        backend.orders[first.order_id] = replace(
            backend.orders[first.order_id],
            status=OrderStatus.DELIVERED,
            discount_amount=Decimal("10"),
        )

        history = (await session.history()).unwrap()

        assert [entry.order.id for entry in history] == [second.order_id, first.order_id]
        assert [len(entry.items) for entry in history] == [1, 1]

        stats = summarize_orders(history)
        assert stats.total == 2
        assert stats.completed == 1
        assert stats.pending == 1
        assert stats.savings == Decimal("10")

    async def test_history_failure(self, backend, session):
        backend.fail_next("list_orders")

        assert not await session.history()
