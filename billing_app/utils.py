"""
utils.py
--------
Helper functions shared across the billing app, including logging setup,
price formatting, invoice numbering, and text helpers used by templates.
Keeps app.py and the page templates simpler and more readable.
"""

import logging
import re
import secrets
import string
import unicodedata
from datetime import datetime

from billing_app import config

CURRENCIES = {
    "USD": ("$", "before"),
    "EUR": ("€", "after"),
    "GBP": ("£", "before"),
    "INR": ("₹", "before"),
}

INVOICE_STATUS_CLASSES = {
    "pending": "text-yellow-500",
    "outstanding": "text-red-500",
    "paid": "text-green-500",
    "canceled": "text-gray-500",
    "partially_paid": "text-blue-500",
}

PASSWORD_SYMBOLS = "!@#$%^&*()-_=+"


def setup_logging(log_file=config.LOG_FILE, level=logging.INFO):
    """Setup logging configuration"""
    logging.basicConfig(
        filename=log_file,
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Also log to console
    console = logging.StreamHandler()
    console.setLevel(level)
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    console.setFormatter(formatter)
    logging.getLogger('').addHandler(console)


def format_price(amount, currency=config.APP_CURRENCY):
    """Format an amount with two decimals and the currency symbol; unknown currencies use USD"""
    symbol, position = CURRENCIES.get(currency, CURRENCIES["USD"])
    formatted = f"{float(amount or 0):,.2f}"
    return f"{symbol}{formatted}" if position == "before" else f"{formatted}{symbol}"


def generate_invoice_number(prefix=config.INVOICE_PREFIX, today=None):
    today = today or datetime.now()
    return f"{prefix}-{today:%Y%m%d}-{secrets.randbelow(9000) + 1000}"


def invoice_status_class(status):
    return INVOICE_STATUS_CLASSES.get(status, "")


def truncate_text(text, length=100, suffix="..."):
    text = text or ""
    if len(text) <= length:
        return text
    return text[:length] + suffix


def create_slug(text):
    text = unicodedata.normalize("NFKD", str(text or "")).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^A-Za-z0-9]+", "-", text).strip("-").lower()
    return text or "n-a"


def generate_random_password(length=12):
    """Random password that satisfies the registration password rules"""
    length = max(length, 8)
    pools = (string.ascii_lowercase, string.ascii_uppercase, string.digits, PASSWORD_SYMBOLS)
    alphabet = "".join(pools)

    chars = [secrets.choice(pool) for pool in pools]
    chars += [secrets.choice(alphabet) for _ in range(length - len(pools))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
