"""
context.py
----------
Request-scoped view over the session record. Views and helpers receive a
RequestContext instead of reaching for a global session, which keeps the
auth, CSRF and form helpers testable against a plain dict.
"""

import time
from typing import Any, Callable, Iterable, List, Mapping, MutableMapping, Optional

from billing_app import config

NOTIFICATION_TYPES = ("success", "error", "warning", "info")

# Fields never cached for form repopulation
OLD_INPUT_EXCLUDE = ("password", "password_confirm", "current_password", "new_password",
                     config.CSRF_FIELD_NAME)


class RequestContext:
    def __init__(self, session: MutableMapping[str, Any], clock: Callable[[], float] = time.time):
        self.session = session
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    # --- identity flags ---

    @property
    def user_id(self) -> Optional[int]:
        return self.session.get("user_id")

    @property
    def user_email(self) -> Optional[str]:
        return self.session.get("user_email")

    @property
    def user_name(self) -> str:
        return self.session.get("user_name") or ""

    @property
    def user_role(self) -> str:
        return self.session.get("user_role") or config.ROLE_GUEST

    @property
    def logged_in(self) -> bool:
        return self.session.get("logged_in") is True

    @property
    def last_activity(self) -> Optional[int]:
        return self.session.get("last_activity")

    def touch(self):
        self.session["last_activity"] = self.now()

    # --- lifecycle ---

    def clear(self):
        self.session.clear()

    def regenerate(self):
        """Ask the session backend for a fresh identifier, if it supports one."""
        regenerate = getattr(self.session, "regenerate", None)
        if regenerate is not None:
            regenerate()

    def mark_modified(self):
        # nested list/dict edits are invisible to the session's own tracking
        if hasattr(self.session, "modified"):
            self.session.modified = True

    # --- cart ---

    @property
    def cart(self) -> List[dict]:
        return self.session.setdefault("cart", [])

    def cart_count(self) -> int:
        return len(self.session.get("cart") or [])

    # --- notifications ---

    def notify(self, type: str, message: str):
        if type not in NOTIFICATION_TYPES:
            type = "info"
        notifications = self.session.setdefault("notifications", [])
        notifications.append({"type": type, "message": message, "created": self.now()})
        self.mark_modified()

    def pop_notifications(self) -> List[dict]:
        """Return pending notifications and clear them. Stale ones are dropped."""
        pending = self.session.pop("notifications", None) or []
        cutoff = self.now() - config.FLASH_MAX_AGE
        return [
            {"type": n["type"], "message": n["message"]}
            for n in pending
            if n.get("created", cutoff) >= cutoff
        ]

    # --- old input ---

    def remember_input(self, form: Mapping[str, Any], exclude: Iterable[str] = OLD_INPUT_EXCLUDE):
        excluded = set(exclude)
        self.session["old_input"] = {
            key: value for key, value in form.items() if key not in excluded
        }

    def old(self, field: str, default: Any = "") -> Any:
        """Read a cached input value once."""
        old_input = self.session.get("old_input")
        if not old_input or field not in old_input:
            return default
        value = old_input.pop(field)
        if not old_input:
            del self.session["old_input"]
        self.mark_modified()
        return value
