"""
validation.py
-------------
Input validation used by every form in the app. Each validator is total and
returns either ``Ok`` or ``Err(message)``; ``Err`` is falsy so callers can
simply write ``if not result: ...``.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Union
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email as check_email_syntax
from markupsafe import escape
from PIL import Image, UnidentifiedImageError

from billing_app import config


@dataclass(frozen=True)
class Ok:
    value: Any = None

    def __bool__(self):
        return True


@dataclass(frozen=True)
class Err:
    message: str

    def __bool__(self):
        return False


Result = Union[Ok, Err]

NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
NAME_RE = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ\s'-]+$")
TAG_RE = re.compile(r"<[^>]*>")
DIGITS_RE = re.compile(r"^[0-9]+$")

# largest value an sqlite INTEGER column holds
MAX_ROW_ID = 2 ** 63 - 1


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _number(value):
    """Parse a numeric string the way a form would submit it, else None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    text = _text(value)
    if not NUMBER_RE.match(text):
        return None
    return float(text)


def _fmt(number) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def validate_email(email) -> Result:
    email = _text(email)

    if not email:
        return Err("Email address is required")

    try:
        check_email_syntax(email, check_deliverability=False)
    except EmailNotValidError:
        return Err("Please enter a valid email address")

    return Ok()


def validate_password(password, is_new=True) -> Result:
    password = password or ""

    if is_new:
        if len(password) < 8:
            return Err("Password must be at least 8 characters long")
        if not re.search(r"[A-Z]", password):
            return Err("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", password):
            return Err("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", password):
            return Err("Password must contain at least one number")
        if not re.search(r"[^A-Za-z0-9]", password):
            return Err("Password must contain at least one special character")
    elif not password:
        return Err("Password is required")

    return Ok()


def validate_username(username) -> Result:
    username = _text(username)

    if not username:
        return Err("Username is required")
    if len(username) < 3 or len(username) > 50:
        return Err("Username must be between 3 and 50 characters")
    if not USERNAME_RE.match(username):
        return Err("Username can only contain letters, numbers, and underscores")

    return Ok()


def validate_name(name, field_name="Name") -> Result:
    name = _text(name)

    if not name:
        return Err(f"{field_name} is required")
    if len(name) > 100:
        return Err(f"{field_name} must be less than 100 characters")
    if not NAME_RE.match(name):
        return Err(f"{field_name} can only contain letters, spaces, hyphens, and apostrophes")

    return Ok()


def validate_text(value, field_name="Field", max_length=None) -> Result:
    value = _text(value)

    if not value:
        return Err(f"{field_name} is required")
    if max_length is not None and len(value) > max_length:
        return Err(f"{field_name} must be less than {max_length} characters")

    return Ok()


def validate_phone(phone) -> Result:
    digits = re.sub(r"[^0-9+]", "", _text(phone))

    if not digits:
        return Err("Phone number is required")
    if len(digits) < 10 or len(digits) > 15:
        return Err("Please enter a valid phone number")

    return Ok()


def validate_date(value, field_name="Date") -> Result:
    value = _text(value)

    if not value:
        return Err(f"{field_name} is required")
    if not DATE_RE.match(value):
        return Err(f"{field_name} must be in YYYY-MM-DD format")

    year, month, day = (int(part) for part in value.split("-"))
    try:
        date(year, month, day)
    except ValueError:
        return Err(f"Please enter a valid {field_name}")

    return Ok()


def validate_numeric(value, field_name="Value", min=None, max=None) -> Result:
    if _text(value) == "":
        return Err(f"{field_name} is required")

    number = _number(value)
    if number is None:
        return Err(f"{field_name} must be a number")
    if min is not None and number < min:
        return Err(f"{field_name} must be at least {_fmt(min)}")
    if max is not None and number > max:
        return Err(f"{field_name} must be no more than {_fmt(max)}")

    return Ok()


def validate_url(url, required=True) -> Result:
    url = _text(url)

    if not url:
        return Err("URL is required") if required else Ok()

    parts = urlparse(url)
    if not parts.scheme or not parts.netloc or " " in url:
        return Err("Please enter a valid URL")

    return Ok()


def detect_mimetype(upload):
    """Sniff image content with Pillow; other files keep their declared type"""
    stream = upload.stream
    position = stream.tell()
    try:
        with Image.open(stream) as image:
            return Image.MIME.get(image.format, upload.mimetype)
    except (UnidentifiedImageError, OSError):
        return upload.mimetype
    finally:
        stream.seek(position)


def upload_size(upload) -> int:
    stream = upload.stream
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


def validate_file(upload, allowed_types=(), max_size=config.MAX_UPLOAD_SIZE) -> Result:
    if upload is None or not getattr(upload, "filename", ""):
        return Err("No file was uploaded")

    if upload_size(upload) > max_size:
        return Err(f"File size exceeds limit of {round(max_size / 1048576, 2):g} MB")

    if allowed_types and detect_mimetype(upload) not in allowed_types:
        return Err("File type not allowed")

    return Ok()


def validate_service_id(service_id) -> Result:
    if isinstance(service_id, int) and not isinstance(service_id, bool):
        number = service_id
    else:
        text = _text(service_id)
        if not DIGITS_RE.match(text) or len(text) > len(str(MAX_ROW_ID)):
            return Err("Invalid service selected")
        number = int(text)

    if number < 1 or number > MAX_ROW_ID:
        return Err("Invalid service selected")
    return Ok(number)


def validate_quantity(quantity, min=1, max=100) -> Result:
    number = _number(quantity)
    if number is None or not float(number).is_integer():
        return Err("Quantity must be a whole number")

    number = int(number)
    if number < min:
        return Err(f"Quantity must be at least {min}")
    if number > max:
        return Err(f"Quantity cannot exceed {max}")

    return Ok(number)


def validate_rating(rating, max=5) -> Result:
    number = _number(rating)
    if number is None or not float(number).is_integer():
        return Err("Rating must be a whole number")

    number = int(number)
    if number < 0 or number > max:
        return Err(f"Rating must be between 0 and {max}")

    return Ok(number)


def validate_payment_amount(amount, min=0.01) -> Result:
    number = _number(amount)
    if number is None:
        return Err("Payment amount must be a number")
    if number < min:
        return Err(f"Payment amount must be at least {min:,.2f}")
    return Ok()


def strip_tags(text) -> str:
    return TAG_RE.sub("", _text(text))


def sanitize_input(data):
    """Trim, strip tags and HTML-escape; lists and dicts are handled recursively"""
    if isinstance(data, dict):
        return {key: sanitize_input(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [sanitize_input(value) for value in data]
    return str(escape(strip_tags(data)))


def collect_errors(**results: Result) -> Dict[str, str]:
    """Build a field -> message mapping from validation results"""
    return {field: result.message for field, result in results.items() if not result}
