"""
cart.py
-------
Shopping cart kept in the session record, plus the tax and discount
arithmetic used to total it. Line items are plain dicts so the session
stays JSON serialisable.
"""

import logging

from billing_app import config
from billing_app.context import RequestContext

logger = logging.getLogger(__name__)

MAX_QUANTITY = 100


def calculate_tax(subtotal, tax_rate=config.TAX_RATE):
    return round(subtotal * (tax_rate / 100), 2)


def calculate_discount(subtotal, discount_value, discount_type="percentage"):
    """Percentage or fixed discount; a fixed discount never exceeds the subtotal"""
    if discount_type == "percentage":
        return round(subtotal * (discount_value / 100), 2)
    return min(discount_value, subtotal)


def _find(cart, service_id):
    for item in cart:
        if item["service_id"] == service_id:
            return item
    return None


def add_to_cart(ctx: RequestContext, service, quantity=1):
    """Add a service row to the cart, merging with an existing line"""
    cart = ctx.cart
    item = _find(cart, service["id"])
    if item is None:
        cart.append({
            "service_id": service["id"],
            "name": service["name"],
            "price": float(service["price"]),
            "quantity": min(quantity, MAX_QUANTITY),
        })
    else:
        item["quantity"] = min(item["quantity"] + quantity, MAX_QUANTITY)
    ctx.mark_modified()
    logger.info(f"Cart: added service {service['id']} x{quantity} for user {ctx.user_id}")


def update_quantity(ctx: RequestContext, service_id, quantity):
    """Set a line's quantity; zero removes it. Returns False for unknown lines."""
    if quantity <= 0:
        return remove_from_cart(ctx, service_id)

    item = _find(ctx.cart, service_id)
    if item is None:
        return False
    item["quantity"] = min(quantity, MAX_QUANTITY)
    ctx.mark_modified()
    return True


def remove_from_cart(ctx: RequestContext, service_id):
    cart = ctx.cart
    item = _find(cart, service_id)
    if item is None:
        return False
    cart.remove(item)
    ctx.mark_modified()
    return True


def clear_cart(ctx: RequestContext):
    ctx.session.pop("cart", None)


def cart_totals(cart, tax_rate=config.TAX_RATE, discount_value=0, discount_type="percentage"):
    subtotal = round(sum(item["price"] * item["quantity"] for item in cart), 2)
    discount = calculate_discount(subtotal, discount_value, discount_type) if discount_value else 0
    tax = calculate_tax(subtotal - discount, tax_rate)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "tax": tax,
        "total": round(subtotal - discount + tax, 2),
        "items": sum(item["quantity"] for item in cart),
    }
