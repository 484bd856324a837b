"""
Web App Configuration
Centralized settings for the Digital Service Billing web application
"""

import os

# Application settings
APP_NAME = "Digital Service Billing"
APP_VERSION = "1.0.0"
APP_CURRENCY = "USD"
DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Secret used to sign anything Flask signs; override in production
SECRET_KEY = os.environ.get("BILLING_SECRET_KEY", "change_this_to_a_long_random_string")

# Database location (defaults to web app data directory)
DATABASE_PATH = os.environ.get(
    "BILLING_DATABASE_PATH",
    os.path.join(os.path.dirname(__file__), "data", "billing.db"),
)

# Session cookie settings
SESSION_COOKIE_NAME = "digital_billing_session"
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = os.environ.get("BILLING_COOKIE_SECURE", "0") == "1"
SESSION_COOKIE_SAMESITE = "Lax"

# Auth settings
SESSION_TIMEOUT = 1800  # seconds of inactivity before logout
FORM_TOKEN_EXPIRY = 3600  # seconds
MAX_FORM_TOKENS = 20
CSRF_FIELD_NAME = "csrf_token"

# Roles
ROLE_GUEST = "guest"
ROLE_CUSTOMER = "customer"
ROLE_STAFF = "staff"
ROLE_ADMIN = "admin"
ROLES = (ROLE_GUEST, ROLE_CUSTOMER, ROLE_STAFF, ROLE_ADMIN)

# Optional bootstrap admin account (only created when a password is given)
ADMIN_EMAIL = os.environ.get("BILLING_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("BILLING_ADMIN_PASSWORD")

# Notifications
FLASH_MAX_AGE = 300  # seconds a toast stays eligible for display
MAX_ACTIVITY_ENTRIES = 100

# Billing
TAX_RATE = 10.0  # percent
INVOICE_PREFIX = "INV"
INVOICE_DUE_DAYS = 14

# Pagination
ITEMS_PER_PAGE = 10

# Uploads
MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB request limit
MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5MB per attachment
ALLOWED_ATTACHMENT_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
)
UPLOAD_DIR = os.path.join(os.path.dirname(__file__), "data", "uploads")

# Logging
LOG_FILE = "billing.log"
