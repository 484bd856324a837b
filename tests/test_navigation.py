from billing_app import navigation


def _labels(links):
    return [link.label for link in links]


def _sidebar_labels(ctx):
    return {section.title: _labels(section.links) for section in navigation.sidebar_sections(ctx)}


def _sign_in(ctx, role):
    ctx.session.update({"user_id": 1, "user_role": role, "logged_in": True, "user_name": "Jane"})


def test_guest_navigation(ctx):
    assert _labels(navigation.header_links(ctx)) == ["Home", "Services", "Support", "Login", "Sign Up"]
    assert _sidebar_labels(ctx) == {"Main": ["Home", "Services"], "Account": ["Login", "Register"]}
    assert _labels(navigation.tab_bar_links(ctx))[-1] == "Login"


def test_customer_sees_cart_with_count(ctx):
    _sign_in(ctx, "customer")
    ctx.session["cart"] = [{"service_id": 1}, {"service_id": 2}]

    header = navigation.header_links(ctx)
    assert _labels(header) == ["Home", "Services", "Profile", "Support", "Cart"]
    assert header[-1].badge == 2

    sidebar = _sidebar_labels(ctx)
    assert sidebar["Account"] == ["My Profile", "Support", "My Cart"]
    assert "Administration" not in sidebar
    assert sidebar[""] == ["Logout"]


def test_staff_and_admin_sections(ctx):
    _sign_in(ctx, "staff")
    assert _sidebar_labels(ctx)["Administration"] == ["Dashboard"]
    assert "My Cart" not in _sidebar_labels(ctx)["Account"]

    _sign_in(ctx, "admin")
    assert _sidebar_labels(ctx)["Administration"] == ["Dashboard", "Manage Users"]


def test_current_endpoint_is_active(ctx):
    links = navigation.header_links(ctx, "services")
    assert [link.label for link in links if link.active] == ["Services"]
    assert not navigation.HOME.active


def test_cart_page_marks_cart_active(ctx):
    _sign_in(ctx, "customer")

    header = navigation.header_links(ctx, "cart_view")
    assert [link.label for link in header if link.active] == ["Cart"]

    sections = navigation.sidebar_sections(ctx, "cart_view")
    active = [link.label for section in sections for link in section.links if link.active]
    assert active == ["My Cart"]
