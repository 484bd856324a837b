import logging
import re
from datetime import datetime

from billing_app import utils
from billing_app.validation import validate_password


def test_format_price_symbol_position():
    assert utils.format_price(1234.5) == "$1,234.50"
    assert utils.format_price(1234.5, "EUR") == "1,234.50€"
    assert utils.format_price(3, "GBP") == "£3.00"
    assert utils.format_price(99.999, "INR") == "₹100.00"
    assert utils.format_price(5, "XYZ") == "$5.00"


def test_invoice_number_format():
    number = utils.generate_invoice_number(today=datetime(2024, 5, 15))
    assert re.fullmatch(r"INV-20240515-\d{4}", number)
    assert utils.generate_invoice_number("BILL").startswith("BILL-")


def test_invoice_status_class():
    assert utils.invoice_status_class("paid") == "text-green-500"
    assert utils.invoice_status_class("unknown") == ""


def test_truncate_text():
    assert utils.truncate_text("short", 10) == "short"
    assert utils.truncate_text("a" * 12, 10) == "a" * 10 + "..."
    assert utils.truncate_text(None) == ""


def test_create_slug():
    assert utils.create_slug("Héllo, World!") == "hello-world"
    assert utils.create_slug("  --Cloud   Backup-- ") == "cloud-backup"
    assert utils.create_slug("!!!") == "n-a"


def test_random_password_passes_the_password_rules():
    for _ in range(20):
        password = utils.generate_random_password()
        assert len(password) == 12
        assert validate_password(password, True)
    assert len(utils.generate_random_password(4)) == 8


def test_setup_logging_adds_console_handler(tmp_path):
    root = logging.getLogger("")
    before = list(root.handlers)
    try:
        utils.setup_logging(str(tmp_path / "billing.log"))
        added = [h for h in root.handlers if h not in before]
        assert any(type(h) is logging.StreamHandler for h in added)
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
