"""
auth.py
-------
Handles all user authentication for the system using a custom session-based
implementation. Provides login, logout, session expiry, and access-control
wrappers for restricting pages to signed-in users and specific roles.
"""

import logging
from functools import wraps

from flask import g, redirect, request
from werkzeug.security import check_password_hash, generate_password_hash

from billing_app import config, database
from billing_app.context import RequestContext
from billing_app.validation import Err, Ok, validate_email, validate_name, validate_password

logger = logging.getLogger(__name__)

LOGIN_URL = "/auth/login"
ACCESS_DENIED_URL = "/access-denied"
SESSION_EXPIRED_URL = "/auth/login?message=session_expired"

PERMISSIONS = {
    config.ROLE_ADMIN: {
        "manage_services",
        "manage_users",
        "manage_invoices",
        "view_reports",
        "system_settings",
        "view_dashboard",
        "create_manual_invoice",
        "delete_invoice",
        "manage_payments",
        "manage_tax_rules",
    },
    config.ROLE_STAFF: {
        "view_dashboard",
        "manage_services",
        "view_invoices",
        "create_manual_invoice",
        "manage_payments",
    },
    config.ROLE_CUSTOMER: {
        "view_services",
        "purchase_services",
        "view_own_invoices",
        "make_payments",
        "update_profile",
    },
}


# ------------------------------------------------------------
# Passwords
# ------------------------------------------------------------
def hash_password(password):
    return generate_password_hash(password)


def verify_password(password, password_hash):
    return check_password_hash(password_hash, password)


# ------------------------------------------------------------
# Session lifecycle
# ------------------------------------------------------------
def login(ctx: RequestContext, user):
    """Store the non-sensitive identity fields of a user row in the session"""
    ctx.session["user_id"] = user["id"]
    ctx.session["user_email"] = user["email"]
    ctx.session["user_name"] = user["fullname"]
    ctx.session["user_role"] = user["role"]
    ctx.session["logged_in"] = True
    ctx.regenerate()
    ctx.touch()


def logout(ctx: RequestContext):
    ctx.clear()


def is_logged_in(ctx: RequestContext) -> bool:
    return ctx.logged_in


def is_session_expired(ctx: RequestContext, timeout: int = config.SESSION_TIMEOUT) -> bool:
    """Check the idle timeout; an expired session is destroyed, a live one refreshed."""
    last_activity = ctx.last_activity
    if last_activity is None:
        return True

    if ctx.now() - last_activity > timeout:
        logout(ctx)
        return True

    ctx.touch()
    return False


def current_user_id(ctx: RequestContext):
    return ctx.user_id


def current_user_role(ctx: RequestContext):
    return ctx.session.get("user_role")


def has_role(ctx: RequestContext, roles) -> bool:
    role = ctx.session.get("user_role")
    if role is None:
        return False
    if isinstance(roles, str):
        roles = [roles]
    return role in roles


def has_permission(permission, role=None, ctx: RequestContext = None) -> bool:
    if role is None:
        role = ctx.session.get("user_role") if ctx is not None else None
    return permission in PERMISSIONS.get(role, ())


# ------------------------------------------------------------
# Access control
# ------------------------------------------------------------
def access_redirect(ctx: RequestContext, roles=None, next_path=None):
    """Decide where a request must go instead of the page, or None to allow it."""
    if not is_logged_in(ctx):
        ctx.session["redirect_after_login"] = next_path or "/"
        return LOGIN_URL

    if is_session_expired(ctx):
        return SESSION_EXPIRED_URL

    if roles and not has_role(ctx, roles):
        return ACCESS_DENIED_URL

    return None


def require_role(*roles):
    """View decorator: signed-in user holding one of the roles (any role if none given)"""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            target = access_redirect(g.ctx, roles or None, request.full_path.rstrip("?"))
            if target is not None:
                if target == ACCESS_DENIED_URL:
                    logger.warning(f"Access denied for user {g.ctx.user_id} to {request.path}")
                return redirect(target)
            return view(*args, **kwargs)
        return wrapped
    return decorator


require_login = require_role()


# ------------------------------------------------------------
# Accounts
# ------------------------------------------------------------
def authenticate(email, password):
    """Return the matching user row, or None without saying which credential failed"""
    if not email or not password:
        return None
    user = database.get_user_by_email(email)
    if user is None or not verify_password(password, user["password_hash"]):
        return None
    return user


def register_user(fullname, email, password, role=config.ROLE_CUSTOMER, phone=None):
    """Create a customer account. Returns Ok(user_id) or Err(message)."""
    for result in (validate_name(fullname, "Full name"), validate_email(email),
                   validate_password(password, True)):
        if not result:
            return result

    if role not in PERMISSIONS:
        return Err("Invalid role")

    email = email.strip().lower()
    if database.email_exists(email):
        return Err("Email already registered")

    user_id = database.create_user(fullname.strip(), email, hash_password(password),
                                   role=role, phone=phone)
    logger.info(f"Registered user {user_id} with role {role}")
    return Ok(user_id)


def ensure_admin(email, password):
    """Create the bootstrap admin account if it does not exist yet"""
    if database.email_exists(email):
        return None
    user_id = database.create_user("Administrator", email, hash_password(password),
                                   role=config.ROLE_ADMIN, username="admin")
    logger.info(f"Created admin account {email}")
    return user_id
