"""User accounts: registration and password authentication.

Passwords are never stored. Each user gets a random salt and the password is
stretched with PBKDF2-HMAC-SHA256; verification compares digests in constant
time. Roles are ``user`` (borrowers) and ``admin``.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import sqlite3
from dataclasses import dataclass
from typing import Optional, Tuple

from lending.database import connection_scope, initialize_database

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ADMIN = "admin"
_ROLES = (ROLE_USER, ROLE_ADMIN)
_PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """Return ``(hex_digest, salt)`` for ``password``, generating a salt if none is given."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), _PBKDF2_ITERATIONS)
    return digest.hex(), salt


def verify_password(password: str, password_hash: str, salt: str) -> bool:
    candidate, _ = hash_password(password, salt)
    return hmac.compare_digest(candidate, password_hash)


@dataclass
class User:
    id: int
    username: str
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class UserStore:
    def __init__(self, db_file: Optional[str] = None, initialize: bool = True) -> None:
        self.db_file = db_file
        if initialize:
            initialize_database(db_file)

    def register(self, username: str, password: str, role: str = ROLE_USER) -> User:
        """Create an account. Raises ValueError on empty fields, unknown role or a taken username."""
        username = (username or "").strip()
        if not username or not password:
            raise ValueError("Username and password must be non-empty.")
        if role not in _ROLES:
            raise ValueError(f"Unknown role: {role}")
        if self.find_by_username(username):
            raise ValueError(f"Username {username} is already taken.")

        password_hash, salt = hash_password(password)
        try:
            with connection_scope(self.db_file) as conn:
                cursor = conn.execute(
                    "INSERT INTO users (username, password_hash, salt, role) VALUES (?, ?, ?, ?)",
                    (username, password_hash, salt, role),
                )
                user_id = int(cursor.lastrowid)
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Username {username} is already taken.") from e

        logger.info("Registered %s account %s", role, username)
        return User(id=user_id, username=username, role=role)

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, else None."""
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute(
                    "SELECT id, username, password_hash, salt, role FROM users WHERE username = ?",
                    ((username or "").strip(),),
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load user %s: %s", username, e)
            return None
        if row is None or not verify_password(password or "", row["password_hash"], row["salt"]):
            logger.warning("Failed login attempt for %s", username)
            return None
        return User(id=row["id"], username=row["username"], role=row["role"])

    def find_by_username(self, username: str) -> Optional[User]:
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute(
                    "SELECT id, username, role FROM users WHERE username = ?", (username,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load user %s: %s", username, e)
            return None
        return User(id=row["id"], username=row["username"], role=row["role"]) if row else None

    def find_by_id(self, user_id: int) -> Optional[User]:
        try:
            with connection_scope(self.db_file) as conn:
                row = conn.execute("SELECT id, username, role FROM users WHERE id = ?", (user_id,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to load user %s: %s", user_id, e)
            return None
        return User(id=row["id"], username=row["username"], role=row["role"]) if row else None
