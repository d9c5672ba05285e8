"""CRM user lookups."""

from typing import Optional

from normalizer import decode

# users.role / users.status values for active managers and team leaders
LEAD_ROLE = 5
ACTIVE_STATUS = "1"


def to_int(value) -> int:
    """Lenient id parsing; anything unusable becomes 0."""
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


def display_name(row: dict) -> Optional[str]:
    first = row.get("first_name") or ""
    last = row.get("last_name") or ""
    name = f"{first} {last}".strip()
    return name or None


class UserDirectory:
    def __init__(self, query):
        self.query = query

    def full_name(self, user_id) -> Optional[str]:
        user_id = to_int(user_id)
        if user_id <= 0:
            return None
        result = self.query(
            "SELECT first_name, last_name FROM users WHERE user_id = %s LIMIT 1",
            (user_id,),
        )
        rows = decode(result, "users")
        if not rows:
            return None
        return display_name(rows[0])

    def _by_role(self) -> list[dict]:
        result = self.query(
            "SELECT user_id, CONCAT_WS(' ', first_name, last_name) AS fullname "
            "FROM users WHERE role = %s AND status = %s "
            "ORDER BY fullname ASC",
            (LEAD_ROLE, ACTIVE_STATUS),
        )
        return decode(result, "users")

    def managers(self) -> list[dict]:
        return self._by_role()

    def team_leaders(self) -> list[dict]:
        # Team leaders share the manager role in the CRM.
        return self._by_role()
