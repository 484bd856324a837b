"""
database.py
-----------
Creates and manages the SQLite database used by the billing app. Defines
functions for user accounts, the service catalogue, support tickets, the
activity log, and the server-side session records.
"""

import sqlite3
import os
import logging
from datetime import datetime, timezone

from billing_app import config

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

# Columns the admin user list may be sorted by
USER_SORT_COLUMNS = ("id", "fullname", "email", "role", "created_at")

DEFAULT_SERVICES = [
    ("Website Hosting", "Managed hosting with daily backups.", "Hosting", 9.99, "monthly"),
    ("Domain Registration", "Yearly registration for a .com domain.", "Domains", 14.99, "yearly"),
    ("Business Email", "Five mailboxes on your own domain.", "Email", 4.99, "monthly"),
    ("SSL Certificate", "Domain-validated certificate.", "Security", 49.00, "yearly"),
    ("Cloud Backup", "100GB encrypted offsite storage.", "Storage", 6.50, "monthly"),
]


def _now():
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def get_db():
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db():
    db_dir = os.path.dirname(DATABASE_PATH)
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)

    conn = get_db()
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            fullname TEXT NOT NULL,
            username TEXT,
            email TEXT NOT NULL UNIQUE,
            phone TEXT,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'customer',
            created_at TEXT NOT NULL,
            updated_at TEXT
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS services (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            category TEXT,
            price REAL NOT NULL,
            billing_cycle TEXT NOT NULL DEFAULT 'monthly',
            active BOOLEAN NOT NULL DEFAULT TRUE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS support_tickets (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            name TEXT NOT NULL,
            email TEXT NOT NULL,
            subject TEXT NOT NULL,
            message TEXT NOT NULL,
            rating INTEGER NOT NULL DEFAULT 0,
            attachment TEXT,
            created_at TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS activity_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            details TEXT,
            created_at TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS sessions (
            sid TEXT PRIMARY KEY,
            data TEXT NOT NULL,
            updated_at REAL NOT NULL
        )
    """)

    conn.commit()
    conn.close()


# ------------------------------------------------------------
# User Functions
# ------------------------------------------------------------
def create_user(fullname, email, password_hash, role="customer", username=None, phone=None):
    """Insert a user and return the new id"""
    conn = get_db()
    cursor = conn.cursor()

    cursor.execute("""
        INSERT INTO users (fullname, username, email, phone, password_hash, role, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """, (fullname, username, email.lower(), phone, password_hash, role, _now()))

    user_id = cursor.lastrowid
    conn.commit()
    conn.close()
    return user_id


def get_user_by_email(email):
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT * FROM users WHERE email = ? LIMIT 1", (email.strip().lower(),))
    user = cur.fetchone()
    conn.close()
    return user


def get_user_by_id(user_id):
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT * FROM users WHERE id = ? LIMIT 1", (user_id,))
    user = cur.fetchone()
    conn.close()
    return user


def email_exists(email, exclude_id=None):
    """Check whether an email is taken, optionally ignoring one user"""
    conn = get_db()
    cur = conn.cursor()
    if exclude_id is None:
        cur.execute("SELECT 1 FROM users WHERE email = ?", (email.strip().lower(),))
    else:
        cur.execute("SELECT 1 FROM users WHERE email = ? AND id != ?",
                    (email.strip().lower(), exclude_id))
    found = cur.fetchone() is not None
    conn.close()
    return found


def update_user(user_id, fullname, email, phone):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE users SET fullname = ?, email = ?, phone = ?, updated_at = ?
        WHERE id = ?
    """, (fullname, email.lower(), phone, _now(), user_id))
    conn.commit()
    conn.close()


def update_password(user_id, password_hash):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?",
                   (password_hash, _now(), user_id))
    conn.commit()
    conn.close()


def count_users():
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) FROM users")
    total = cur.fetchone()[0]
    conn.close()
    return total


def list_users(limit=10, offset=0, sort="created_at", order="desc"):
    """Get a page of users; unknown sort columns fall back to created_at"""
    if sort not in USER_SORT_COLUMNS:
        sort = "created_at"
    direction = "ASC" if order == "asc" else "DESC"

    conn = get_db()
    cur = conn.cursor()
    cur.execute(
        f"SELECT id, fullname, email, role, created_at FROM users "
        f"ORDER BY {sort} {direction}, id ASC LIMIT ? OFFSET ?",
        (limit, offset),
    )
    users = cur.fetchall()
    conn.close()
    return users


# ------------------------------------------------------------
# Service Catalogue Functions
# ------------------------------------------------------------
def seed_services():
    """Populate the catalogue on first run"""
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("SELECT COUNT(*) FROM services")
    if cursor.fetchone()[0] == 0:
        cursor.executemany("""
            INSERT INTO services (name, description, category, price, billing_cycle)
            VALUES (?, ?, ?, ?, ?)
        """, DEFAULT_SERVICES)
        conn.commit()
    conn.close()


def get_services(active_only=True):
    conn = get_db()
    cur = conn.cursor()
    if active_only:
        cur.execute("SELECT * FROM services WHERE active = 1 ORDER BY category, name")
    else:
        cur.execute("SELECT * FROM services ORDER BY category, name")
    services = cur.fetchall()
    conn.close()
    return services


def get_service(service_id):
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT * FROM services WHERE id = ? AND active = 1", (service_id,))
    service = cur.fetchone()
    conn.close()
    return service


# ------------------------------------------------------------
# Support Ticket Functions
# ------------------------------------------------------------
def create_ticket(user_id, name, email, subject, message, rating=0, attachment=None):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO support_tickets (user_id, name, email, subject, message, rating, attachment, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
    """, (user_id, name, email, subject, message, rating, attachment, _now()))
    ticket_id = cursor.lastrowid
    conn.commit()
    conn.close()
    return ticket_id


# ------------------------------------------------------------
# Activity Log Functions
# ------------------------------------------------------------
def log_activity(action, user_id=None, details=""):
    """Record an activity entry; failures are logged, never raised"""
    try:
        conn = get_db()
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO activity_log (user_id, action, details, created_at)
            VALUES (?, ?, ?, ?)
        """, (user_id, action, details, _now()))
        conn.commit()
        conn.close()
        return True
    except sqlite3.Error as e:
        logger.warning(f"Failed to write activity log: {e}")
        return False


def get_recent_activity(limit=50):
    try:
        conn = get_db()
        cur = conn.cursor()
        cur.execute("SELECT * FROM activity_log ORDER BY id DESC LIMIT ?", (limit,))
        entries = cur.fetchall()
        conn.close()
        return entries
    except sqlite3.Error as e:
        logger.warning(f"Failed to read activity log: {e}")
        return []


def get_dashboard_stats():
    """Get summary counts for the admin dashboard"""
    try:
        conn = get_db()
        cur = conn.cursor()

        cur.execute("""
            SELECT
                (SELECT COUNT(*) FROM users) AS total_users,
                (SELECT COUNT(*) FROM users WHERE role = 'customer') AS customers,
                (SELECT COUNT(*) FROM services WHERE active = 1) AS active_services,
                (SELECT COUNT(*) FROM support_tickets) AS tickets
        """)

        result = cur.fetchone()
        conn.close()

        return {
            'total_users': result['total_users'] or 0,
            'customers': result['customers'] or 0,
            'active_services': result['active_services'] or 0,
            'tickets': result['tickets'] or 0,
        }
    except sqlite3.Error as e:
        logger.error(f"Dashboard stats error: {e}")
        return {
            'total_users': 0,
            'customers': 0,
            'active_services': 0,
            'tickets': 0,
        }


# ------------------------------------------------------------
# Session Record Functions
# ------------------------------------------------------------
def load_session_record(sid):
    conn = get_db()
    cur = conn.cursor()
    cur.execute("SELECT data, updated_at FROM sessions WHERE sid = ?", (sid,))
    row = cur.fetchone()
    conn.close()
    return row


def save_session_record(sid, data, updated_at):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO sessions (sid, data, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(sid) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
    """, (sid, data, updated_at))
    conn.commit()
    conn.close()


def delete_session_record(sid):
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM sessions WHERE sid = ?", (sid,))
    conn.commit()
    conn.close()


def purge_session_records(older_than):
    """Delete session records last saved before the given unix time"""
    conn = get_db()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM sessions WHERE updated_at < ?", (older_than,))
    removed = cursor.rowcount
    conn.commit()
    conn.close()
    return removed
