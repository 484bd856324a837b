"""
navigation.py
-------------
Builds the header, sidebar and mobile tab bar link lists from the session
flags. Templates only loop over the result, so what a role can see is
decided here.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from billing_app import config
from billing_app.context import RequestContext


@dataclass(frozen=True)
class NavLink:
    label: str
    endpoint: str
    url: str
    icon: str = ""
    badge: Optional[int] = None
    active: bool = False


@dataclass(frozen=True)
class NavSection:
    title: str
    links: List[NavLink]


HOME = NavLink("Home", "home", "/", "fa-home")
SERVICES = NavLink("Services", "services", "/services", "fa-server")
PROFILE = NavLink("My Profile", "profile", "/profile", "fa-user")
SUPPORT = NavLink("Support", "support", "/support", "fa-headset")
CART = NavLink("My Cart", "cart_view", "/cart", "fa-shopping-cart")
LOGOUT = NavLink("Logout", "logout", "/auth/logout", "fa-sign-out-alt")
LOGIN = NavLink("Login", "login", "/auth/login", "fa-sign-in-alt")
REGISTER = NavLink("Register", "register", "/auth/register", "fa-user-plus")
DASHBOARD = NavLink("Dashboard", "admin_dashboard", "/admin/", "fa-tachometer-alt")
MANAGE_USERS = NavLink("Manage Users", "admin_users", "/admin/users", "fa-users")


def _mark(links, endpoint):
    return [replace(link, active=link.endpoint == endpoint) for link in links]


def header_links(ctx: RequestContext, endpoint=None) -> List[NavLink]:
    links = [HOME, SERVICES]
    if ctx.logged_in:
        links += [replace(PROFILE, label="Profile"), SUPPORT,
                  replace(CART, label="Cart", badge=ctx.cart_count())]
    else:
        links += [SUPPORT, LOGIN, replace(REGISTER, label="Sign Up")]
    return _mark(links, endpoint)


def sidebar_sections(ctx: RequestContext, endpoint=None) -> List[NavSection]:
    role = ctx.user_role
    sections = [NavSection("Main", _mark([HOME, SERVICES], endpoint))]

    if not ctx.logged_in:
        sections.append(NavSection("Account", _mark([LOGIN, REGISTER], endpoint)))
        return sections

    account = [PROFILE, SUPPORT]
    if role == config.ROLE_CUSTOMER:
        account.append(replace(CART, badge=ctx.cart_count()))
    sections.append(NavSection("Account", _mark(account, endpoint)))

    if role in (config.ROLE_ADMIN, config.ROLE_STAFF):
        admin = [DASHBOARD]
        if role == config.ROLE_ADMIN:
            admin.append(MANAGE_USERS)
        sections.append(NavSection("Administration", _mark(admin, endpoint)))

    sections.append(NavSection("", [LOGOUT]))
    return sections


def tab_bar_links(ctx: RequestContext, endpoint=None) -> List[NavLink]:
    """Bottom navigation on small screens"""
    links = [HOME, SERVICES, SUPPORT]
    if ctx.logged_in:
        links.append(replace(PROFILE, label="Profile"))
    else:
        links.append(LOGIN)
    return _mark(links, endpoint)
