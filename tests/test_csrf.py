from billing_app import config
from billing_app.csrf import (
    check_request_token,
    generate_csrf_token,
    generate_form_token,
    validate_form_token,
    verify_csrf_token,
)


def test_token_is_created_once_per_session(ctx):
    token = generate_csrf_token(ctx)
    assert len(token) == 64
    assert generate_csrf_token(ctx) == token


def test_token_is_accepted_exactly_once(ctx):
    token = generate_csrf_token(ctx)
    assert verify_csrf_token(ctx, token)
    assert not verify_csrf_token(ctx, token)
    assert generate_csrf_token(ctx) != token


def test_absent_or_mismatched_token_is_rejected(ctx):
    assert not verify_csrf_token(ctx, "anything")

    token = generate_csrf_token(ctx)
    assert not verify_csrf_token(ctx, None)
    assert not verify_csrf_token(ctx, "")
    assert not verify_csrf_token(ctx, "0" * 64)
    assert verify_csrf_token(ctx, token)


def test_form_tokens_are_single_use(ctx):
    first = generate_form_token(ctx)
    second = generate_form_token(ctx)

    assert validate_form_token(ctx, first)
    assert not validate_form_token(ctx, first)
    assert validate_form_token(ctx, second)


def test_form_tokens_expire(ctx, clock):
    token = generate_form_token(ctx, expiry=60)
    clock.now += 61
    assert not validate_form_token(ctx, token)
    assert ctx.session["form_tokens"] == {}


def test_form_token_set_is_capped(ctx, clock):
    tokens = []
    for _ in range(config.MAX_FORM_TOKENS + 5):
        tokens.append(generate_form_token(ctx))
        clock.now += 1

    assert len(ctx.session["form_tokens"]) == config.MAX_FORM_TOKENS
    assert not validate_form_token(ctx, tokens[0])
    assert validate_form_token(ctx, tokens[-1])


def test_request_check_accepts_either_kind(ctx):
    assert check_request_token(ctx, generate_csrf_token(ctx))
    assert check_request_token(ctx, generate_form_token(ctx))
    assert not check_request_token(ctx, "forged")
