from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from http.cookies import SimpleCookie
from typing import Any

from fastapi import Request

from storefront.config import settings

logger = logging.getLogger(__name__)


class StorefrontSession:
    """Session data for a single request/response cycle.

    ``commit`` serializes the current data into a ``Set-Cookie`` header value;
    nothing is written anywhere else.
    """

    def __init__(self, *, storage: CookieSessionStorage, data: dict[str, Any] | None = None) -> None:
        self._storage = storage
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def commit(self) -> str:
        return self._storage.serialize(self._data)

    @property
    def data(self) -> dict[str, Any]:
        return dict(self._data)


class CookieSessionStorage:
    def __init__(
        self,
        *,
        secret: str,
        cookie_name: str = "session",
        max_age_seconds: int = 60 * 60 * 24 * 30,
        secure: bool = True,
    ) -> None:
        self._secret = secret.encode("utf-8")
        self.cookie_name = cookie_name
        self._max_age_seconds = max_age_seconds
        self._secure = secure

    def _sign(self, payload: str) -> str:
        return hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def encode(self, data: dict[str, Any]) -> str:
        raw = json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")
        payload = base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
        return f"{payload}.{self._sign(payload)}"

    def decode(self, value: str | None) -> dict[str, Any]:
        if not value:
            return {}
        payload, _, supplied_signature = value.rpartition(".")
        expected_signature = self._sign(payload).encode("ascii")
        supplied = supplied_signature.encode("utf-8", "surrogateescape")
        if not payload or not hmac.compare_digest(expected_signature, supplied):
            logger.warning("Rejected session cookie with an invalid signature")
            return {}
        padded = payload + "=" * (-len(payload) % 4)
        try:
            data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        except (binascii.Error, ValueError):
            logger.warning("Rejected undecodable session cookie")
            return {}
        if not isinstance(data, dict):
            logger.warning("Rejected session cookie that is not a JSON object")
            return {}
        return data

    def serialize(self, data: dict[str, Any]) -> str:
        cookie: SimpleCookie = SimpleCookie()
        cookie[self.cookie_name] = self.encode(data)
        morsel = cookie[self.cookie_name]
        morsel["path"] = "/"
        morsel["httponly"] = True
        morsel["samesite"] = "Lax"
        morsel["max-age"] = str(self._max_age_seconds)
        if self._secure:
            morsel["secure"] = True
        return morsel.OutputString()

    def read(self, cookies: dict[str, str]) -> StorefrontSession:
        return StorefrontSession(storage=self, data=self.decode(cookies.get(self.cookie_name)))


session_storage = CookieSessionStorage(
    secret=settings.SESSION_SECRET,
    cookie_name=settings.SESSION_COOKIE_NAME,
    max_age_seconds=settings.SESSION_COOKIE_MAX_AGE_SECONDS,
    secure=settings.SESSION_COOKIE_SECURE,
)


async def get_session(request: Request) -> StorefrontSession:
    return session_storage.read(request.cookies)
