"""
csrf.py
-------
Form token issuance and verification. Two flavours share the session:

* one session token (``csrf_token``), rotated after each successful check;
* a small set of per-form tokens (``form_tokens``), each with its own expiry.

Either kind is accepted exactly once.
"""

import hmac
import logging
import secrets

from billing_app import config
from billing_app.context import RequestContext

logger = logging.getLogger(__name__)


def _new_token():
    return secrets.token_hex(32)


def generate_csrf_token(ctx: RequestContext) -> str:
    token = ctx.session.get("csrf_token")
    if not token:
        token = ctx.session["csrf_token"] = _new_token()
    return token


def verify_csrf_token(ctx: RequestContext, token) -> bool:
    stored = ctx.session.get("csrf_token")
    if not stored or not token or not isinstance(token, str):
        return False
    if not hmac.compare_digest(stored, token):
        return False
    ctx.session["csrf_token"] = _new_token()
    return True


def generate_form_token(ctx: RequestContext, expiry: int = config.FORM_TOKEN_EXPIRY) -> str:
    tokens = dict(ctx.session.get("form_tokens") or {})
    token = _new_token()
    tokens[token] = ctx.now() + expiry

    if len(tokens) > config.MAX_FORM_TOKENS:
        # drop the tokens closest to expiring
        keep = sorted(tokens.items(), key=lambda item: item[1])[-config.MAX_FORM_TOKENS:]
        tokens = dict(keep)

    ctx.session["form_tokens"] = tokens
    return token


def validate_form_token(ctx: RequestContext, token) -> bool:
    tokens = ctx.session.get("form_tokens")
    if not tokens or not token or not isinstance(token, str):
        return False

    now = ctx.now()
    remaining = {}
    matched = False
    for stored, expires_at in tokens.items():
        if now > expires_at:
            continue
        if not matched and hmac.compare_digest(stored, token):
            matched = True
            continue
        remaining[stored] = expires_at

    ctx.session["form_tokens"] = remaining
    return matched


def check_request_token(ctx: RequestContext, token) -> bool:
    """Accept either the session token or a live per-form token"""
    if verify_csrf_token(ctx, token) or validate_form_token(ctx, token):
        return True
    logger.warning("Rejected submission with missing or invalid form token")
    return False
