"""
Session lookup for the catalog API.

The session cookie carries an opaque signed token. Verifying it is the job of
a TokenVerifier; this module only interprets the verified payload:

    {"user": {"id": 42}, "expires": "2026-01-01T00:00:00+00:00"}

and loads the matching user row. Anything short of a valid, unexpired session
for an existing user yields None.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Protocol

from itsdangerous import BadData, URLSafeSerializer

SESSION_COOKIE = "session"


class TokenVerifier(Protocol):
    def verify(self, token: str) -> dict[str, Any] | None:
        """Return the token payload, or None if the signature is bad."""
        ...


class SignedTokenVerifier:
    """Verifier for itsdangerous-signed session payloads."""

    def __init__(self, secret: str, salt: str = "session"):
        self._serializer = URLSafeSerializer(secret, salt=salt)

    def issue(self, user_id: int, expires: datetime) -> str:
        return self._serializer.dumps(
            {"user": {"id": user_id}, "expires": expires.isoformat()}
        )

    def verify(self, token: str) -> dict[str, Any] | None:
        try:
            payload = self._serializer.loads(token)
        except BadData:
            return None
        return payload if isinstance(payload, dict) else None


def _parse_expires(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        expires = datetime.fromisoformat(value)
    except ValueError:
        return None
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)
    return expires


def get_user(
    store,
    session_token: str | None,
    verifier: TokenVerifier,
    *,
    now: datetime | None = None,
) -> dict | None:
    """Return the user row for a session token, or None."""
    if not session_token:
        return None

    session = verifier.verify(session_token)
    if not session:
        return None

    user = session.get("user")
    user_id = user.get("id") if isinstance(user, dict) else None
    # bool is an int subclass; reject it explicitly
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return None

    expires = _parse_expires(session.get("expires"))
    if expires is None or expires < (now or datetime.now(UTC)):
        return None

    return store.query_one(
        "SELECT id, username, created_at, updated_at FROM users WHERE id = %s LIMIT 1",
        [user_id],
    )
