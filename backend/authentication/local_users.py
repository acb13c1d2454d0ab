import os
from dataclasses import dataclass
from functools import lru_cache

from authentication.security import hash_password, verify_password


@dataclass
class LocalUser:
    username: str
    role: str
    is_active: bool = True


# Dev users, used when DASHBOARD_USERS is not set.
# DASHBOARD_USERS format: "email:password:role,email:password:role"
DEFAULT_USERS = [
    {"email": "admin@pinintel.io", "password": "admin123", "role": "admin"},
    {"email": "viewer@pinintel.io", "password": "viewer123", "role": "viewer"},
]


def _parse_users(raw: str) -> list[dict]:
    users = []
    for entry in raw.split(","):
        parts = entry.strip().split(":")
        if len(parts) != 3 or not all(parts):
            continue
        email, password, role = parts
        users.append({"email": email.strip().lower(), "password": password, "role": role.strip()})
    return users


@lru_cache(maxsize=1)
def _user_table() -> dict[str, dict]:
    raw = os.getenv("DASHBOARD_USERS", "").strip()
    users = _parse_users(raw) if raw else DEFAULT_USERS
    return {
        u["email"]: {"role": u["role"], "password_hash": hash_password(u["password"])}
        for u in users
    }


def reload_users() -> None:
    _user_table.cache_clear()


def get_local_user(email: str) -> LocalUser | None:
    item = _user_table().get((email or "").strip().lower())
    if item is None:
        return None
    return LocalUser(username=(email or "").strip().lower(), role=item["role"], is_active=True)


def verify_local_user(email: str, password: str) -> LocalUser | None:
    key = (email or "").strip().lower()
    item = _user_table().get(key)
    if item is None or not verify_password(password, item["password_hash"]):
        return None
    return LocalUser(username=key, role=item["role"], is_active=True)
