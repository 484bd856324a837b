import io

import pytest
from PIL import Image
from werkzeug.datastructures import FileStorage

from billing_app.validation import (
    Err,
    Ok,
    collect_errors,
    sanitize_input,
    strip_tags,
    validate_date,
    validate_email,
    validate_file,
    validate_name,
    validate_numeric,
    validate_password,
    validate_payment_amount,
    validate_phone,
    validate_quantity,
    validate_rating,
    validate_service_id,
    validate_text,
    validate_url,
    validate_username,
)


def _png_upload(filename="logo.png", mimetype="image/png"):
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color="red").save(buffer, "PNG")
    buffer.seek(0)
    return FileStorage(stream=buffer, filename=filename, content_type=mimetype)


def test_results_are_truthy_and_falsy():
    assert Ok()
    assert not Err("nope")
    assert Ok(5).value == 5


@pytest.mark.parametrize("email", ["jane@example.com", "first.last+tag@sub.example.org"])
def test_valid_emails(email):
    assert validate_email(email) == Ok()


@pytest.mark.parametrize("email", ["plainaddress", "jane@", "@example.com", "jane@@example.com"])
def test_malformed_emails(email):
    result = validate_email(email)
    assert not result
    assert result.message


def test_missing_email():
    assert validate_email("   ") == Err("Email address is required")


def test_password_with_every_property_is_accepted():
    assert validate_password("Secret#123", True)


@pytest.mark.parametrize("password, message", [
    ("Sec#12a", "Password must be at least 8 characters long"),
    ("secret#123", "Password must contain at least one uppercase letter"),
    ("SECRET#123", "Password must contain at least one lowercase letter"),
    ("Secret#abc", "Password must contain at least one number"),
    ("Secret1234", "Password must contain at least one special character"),
])
def test_password_missing_a_property(password, message):
    assert validate_password(password, True) == Err(message)


def test_existing_password_only_needs_a_value():
    assert validate_password("weak", False)
    assert validate_password("", False) == Err("Password is required")


def test_username_rules():
    assert validate_username("jane_doe1")
    assert validate_username("jd") == Err("Username must be between 3 and 50 characters")
    assert not validate_username("jane doe")


def test_name_rules():
    assert validate_name("Mary-Jane O'Neil")
    assert validate_name("José Álvarez")
    assert validate_name("", "Full name") == Err("Full name is required")
    assert not validate_name("R2D2")
    assert not validate_name("x" * 101)


def test_text_length():
    assert validate_text("Hello", "Subject", 10)
    assert validate_text("", "Subject") == Err("Subject is required")
    assert not validate_text("x" * 11, "Subject", 10)


def test_phone_accepts_formatting():
    assert validate_phone("+1 (555) 123-4567")
    assert not validate_phone("12345")
    assert validate_phone("") == Err("Phone number is required")


def test_date_must_exist_on_the_calendar():
    assert validate_date("2024-02-29")
    assert validate_date("2023-02-29", "Due date") == Err("Please enter a valid Due date")
    assert validate_date("29/02/2024") == Err("Date must be in YYYY-MM-DD format")


def test_numeric_bounds():
    assert validate_numeric("3.5", "Rating", 0, 5)
    assert validate_numeric("6", "Rating", 0, 5) == Err("Rating must be no more than 5")
    assert validate_numeric("-1", "Rating", 0, 5) == Err("Rating must be at least 0")
    assert validate_numeric("abc", "Rating") == Err("Rating must be a number")


def test_url():
    assert validate_url("https://example.com/path")
    assert not validate_url("example.com")
    assert validate_url("", required=False)
    assert validate_url("") == Err("URL is required")


def test_quantity_and_service_id():
    assert validate_quantity("3") == Ok(3)
    assert validate_quantity("0") == Err("Quantity must be at least 1")
    assert validate_quantity("101") == Err("Quantity cannot exceed 100")
    assert validate_quantity("1.5") == Err("Quantity must be a whole number")
    assert validate_quantity("1e999") == Err("Quantity must be a whole number")
    assert validate_service_id("4") == Ok(4)
    assert validate_service_id(7) == Ok(7)
    assert not validate_service_id("0")
    assert not validate_service_id("abc")


@pytest.mark.parametrize("service_id", ["1.9", "1e999", "1e20", "-1", "", " ", "9" * 5000,
                                        str(2 ** 63), True])
def test_service_id_must_be_a_stored_row_id(service_id):
    assert validate_service_id(service_id) == Err("Invalid service selected")


def test_largest_service_id_is_accepted():
    assert validate_service_id(str(2 ** 63 - 1)) == Ok(2 ** 63 - 1)


def test_rating():
    assert validate_rating("0") == Ok(0)
    assert validate_rating("5") == Ok(5)
    assert validate_rating("4.0") == Ok(4)
    assert validate_rating("2.5") == Err("Rating must be a whole number")
    assert validate_rating("abc") == Err("Rating must be a whole number")
    assert validate_rating("6") == Err("Rating must be between 0 and 5")
    assert validate_rating("-1") == Err("Rating must be between 0 and 5")


def test_payment_amount():
    assert validate_payment_amount("10.00")
    assert validate_payment_amount("0") == Err("Payment amount must be at least 0.01")
    assert not validate_payment_amount("ten")


def test_file_type_is_sniffed_from_content():
    assert validate_file(_png_upload(), ("image/png",))

    # a PNG claiming to be a PDF is still a PNG
    disguised = _png_upload("report.pdf", "application/pdf")
    assert validate_file(disguised, ("application/pdf",)) == Err("File type not allowed")


def test_file_size_limit():
    upload = FileStorage(stream=io.BytesIO(b"x" * 2048), filename="notes.txt", content_type="text/plain")
    assert validate_file(upload, max_size=1024) == Err("File size exceeds limit of 0 MB")
    assert validate_file(None) == Err("No file was uploaded")


def test_sanitize_input_is_recursive():
    data = {"name": "  <b>Jane</b> & co ", "tags": ["<i>a</i>", "b\"c"]}
    assert sanitize_input(data) == {"name": "Jane &amp; co", "tags": ["a", "b&#34;c"]}
    assert strip_tags("<p>Hi</p>") == "Hi"


def test_collect_errors_keeps_only_failures():
    errors = collect_errors(email=validate_email("nope"), name=validate_name("Jane"))
    assert list(errors) == ["email"]
