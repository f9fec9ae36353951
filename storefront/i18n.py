from __future__ import annotations

import re
from dataclasses import dataclass

from storefront.config import settings

_LOCALE_SEGMENT_RE = re.compile(r"^[a-zA-Z]{2}-[a-zA-Z]{2}$")
_LOCALE_PREFIX_RE = re.compile(r"^/([a-zA-Z]{2}-[a-zA-Z]{2})(?=/)")


@dataclass(frozen=True)
class StorefrontLocale:
    language: str
    country: str
    path_prefix: str | None = None

    @property
    def context_variables(self) -> dict[str, str]:
        return {"language": self.language, "country": self.country}


def default_locale() -> StorefrontLocale:
    return StorefrontLocale(
        language=settings.STOREFRONT_DEFAULT_LANGUAGE,
        country=settings.STOREFRONT_DEFAULT_COUNTRY,
    )


def parse_locale(segment: str | None) -> StorefrontLocale | None:
    """Map an ``en-ca`` style path segment to a Storefront locale; ``None`` if malformed."""
    if segment is None:
        return default_locale()
    if not _LOCALE_SEGMENT_RE.fullmatch(segment):
        return None
    language, country = segment.split("-")
    return StorefrontLocale(language=language.upper(), country=country.upper(), path_prefix=segment.lower())


def split_locale_prefix(pathname: str) -> tuple[str | None, str]:
    match = _LOCALE_PREFIX_RE.match(pathname)
    if not match:
        return None, pathname
    return match.group(1), pathname[match.end():]


def localize_path(path: str, prefix: str | None) -> str:
    if not prefix:
        return path
    return f"/{prefix}{path}"
