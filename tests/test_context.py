from billing_app import config
from billing_app.context import RequestContext


def test_guest_defaults(ctx):
    assert ctx.user_id is None
    assert ctx.user_role == config.ROLE_GUEST
    assert ctx.user_name == ""
    assert not ctx.logged_in
    assert ctx.cart_count() == 0


def test_notifications_pop_once(ctx):
    ctx.notify("success", "Saved")
    ctx.notify("bogus", "Coerced")

    assert ctx.pop_notifications() == [
        {"type": "success", "message": "Saved"},
        {"type": "info", "message": "Coerced"},
    ]
    assert ctx.pop_notifications() == []


def test_stale_notifications_are_dropped(ctx, clock):
    ctx.notify("info", "Old news")
    clock.now += config.FLASH_MAX_AGE + 1
    ctx.notify("info", "Fresh")

    assert ctx.pop_notifications() == [{"type": "info", "message": "Fresh"}]


def test_old_input_is_read_once_and_skips_passwords(ctx):
    ctx.remember_input({"email": "jane@example.com", "password": "Secret#123",
                        config.CSRF_FIELD_NAME: "abc"})

    assert ctx.old("password") == ""
    assert ctx.old(config.CSRF_FIELD_NAME, None) is None
    assert ctx.old("email") == "jane@example.com"
    assert ctx.old("email") == ""
    assert "old_input" not in ctx.session


def test_regenerate_is_optional_for_plain_dicts():
    ctx = RequestContext({"user_id": 1})
    ctx.regenerate()
    assert ctx.session == {"user_id": 1}
