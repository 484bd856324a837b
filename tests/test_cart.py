import pytest

from billing_app import cart

HOSTING = {"id": 1, "name": "Website Hosting", "price": 10.0}
EMAIL = {"id": 3, "name": "Business Email", "price": 5.5}


def test_adding_the_same_service_merges_lines(ctx):
    cart.add_to_cart(ctx, HOSTING, 2)
    cart.add_to_cart(ctx, HOSTING, 1)
    cart.add_to_cart(ctx, EMAIL)

    assert ctx.cart == [
        {"service_id": 1, "name": "Website Hosting", "price": 10.0, "quantity": 3},
        {"service_id": 3, "name": "Business Email", "price": 5.5, "quantity": 1},
    ]
    assert ctx.cart_count() == 2


def test_quantity_is_capped(ctx):
    cart.add_to_cart(ctx, HOSTING, 90)
    cart.add_to_cart(ctx, HOSTING, 20)
    assert ctx.cart[0]["quantity"] == cart.MAX_QUANTITY


def test_update_and_remove(ctx):
    cart.add_to_cart(ctx, HOSTING)
    cart.add_to_cart(ctx, EMAIL)

    assert cart.update_quantity(ctx, 1, 4)
    assert ctx.cart[0]["quantity"] == 4

    assert cart.update_quantity(ctx, 1, 0)
    assert [item["service_id"] for item in ctx.cart] == [3]

    assert not cart.update_quantity(ctx, 99, 2)
    assert cart.remove_from_cart(ctx, 3)
    assert not cart.remove_from_cart(ctx, 3)


def test_clear_cart(ctx):
    cart.add_to_cart(ctx, HOSTING)
    cart.clear_cart(ctx)
    assert "cart" not in ctx.session


def test_tax_and_discount():
    assert cart.calculate_tax(200, 10) == 20
    assert cart.calculate_discount(200, 15) == 30
    assert cart.calculate_discount(200, 50, "fixed") == 50
    assert cart.calculate_discount(40, 50, "fixed") == 40


def test_cart_totals():
    items = [
        {"service_id": 1, "name": "Hosting", "price": 10.0, "quantity": 2},
        {"service_id": 3, "name": "Email", "price": 5.5, "quantity": 1},
    ]
    totals = cart.cart_totals(items, tax_rate=10)
    assert totals["subtotal"] == pytest.approx(25.5)
    assert totals["tax"] == pytest.approx(2.55)
    assert totals["total"] == pytest.approx(28.05)
    assert totals["items"] == 3

    discounted = cart.cart_totals(items, tax_rate=10, discount_value=100, discount_type="fixed")
    assert discounted["discount"] == pytest.approx(25.5)
    assert discounted["total"] == 0


def test_empty_cart_totals():
    assert cart.cart_totals([]) == {"subtotal": 0, "discount": 0, "tax": 0, "total": 0, "items": 0}
