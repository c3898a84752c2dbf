"""
Checkout Example — cart, coupon, order placement and recovery on SQLite.

Run: uv run python examples/checkout_example.py
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from kungfu import Ok, Error

from checkout import CheckoutSession, UserId, format_money, load_config
from checkout import order as O
from checkout import remote as R
from checkout._types import AddressId, CouponId, PaymentMethodId, ProductId
from checkout.coupon import CouponRecord, DiscountKind
from checkout.delivery import DeliverySettings


def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


async def main() -> None:
    logging.basicConfig(level=logging.INFO, format="  [%(name)s] %(message)s")
    config = load_config()

    session_factory, engine = await R.create_database(config.database_url)
    backend = R.SqlBackend(session_factory)
    await backend.set_delivery_settings(
        DeliverySettings(Decimal("40"), free_delivery_enabled=True, free_delivery_threshold=Decimal("500"))
    )
    await backend.add_coupon(CouponRecord(
        id=CouponId("welcome"),
        code="WELCOME",
        discount="10%",
        kind=DiscountKind.PERCENT,
        valid_until=datetime.now(UTC) + timedelta(days=30),
        min_purchase_amount=Decimal("300"),
        max_discount_amount=Decimal("50"),
    ))

    session = CheckoutSession(backend, UserId("demo"), config=config)
    selection = O.preselect(
        [O.SavedAddress(AddressId("home"), is_default=True)],
        [O.SavedPaymentMethod(PaymentMethodId("upi"), is_default=True)],
    )

    try:
        banner("1. Fill the cart")
        await session.open()
        await session.add_item(ProductId("basmati-rice"), 2, unit_price=Decimal("120"))
        change = await session.add_item(ProductId("ghee"), 1, unit_price=Decimal("95"))
        print(f"   Subtotal: {format_money(change.totals.subtotal)}")

        banner("2. Apply coupon")
        match await session.apply_coupon(" welcome "):
            case Ok(applied):
                print(f"   Applied {applied.code}: {applied.display}")
            case Error(e):
                print(f"   Rejected: {e.message}")

        banner("3. Remove an item (coupon re-checked)")
        ghee = session.cart.line_for(ProductId("ghee"))
        change = await session.remove_item(ghee.line_id)
        if change.coupon_error is not None:
            print(f"   Coupon dropped: {change.coupon_error.message}")
        await session.add_item(ProductId("ghee"), 1, unit_price=Decimal("95"))
        await session.apply_coupon("WELCOME")

        banner("4. Summary")
        match await session.summary():
            case Ok(summary):
                print(f"   Subtotal: {format_money(summary.totals.subtotal)}")
                print(f"   Discount: {format_money(summary.totals.discount_amount)}")
                print(f"   Delivery: {format_money(summary.delivery.fee)}")
                print(f"   Total:    {format_money(summary.total_amount)}")
            case Error(e):
                print(f"   Summary unavailable: {e.message}")

        banner("5. Place order")
        match await session.place_order(selection):
            case Ok(placed):
                print(f"   Order {placed.order_id.value}: {format_money(placed.total_amount)}")
            case Error(O.PartialOrderError(order_id=order_id)):
                print(f"   Order {order_id.value} has no items, resuming")
                print(f"   {await session.resume(order_id)}")
            case Error(e):
                print(f"   Failed: {e.message}")

        banner("6. History")
        match await session.history():
            case Ok(orders):
                stats = O.summarize_orders(orders)
                print(f"   {stats.total} orders, {stats.pending} pending, saved {format_money(stats.savings)}")
            case Error(e):
                print(f"   History unavailable: {e.message}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
