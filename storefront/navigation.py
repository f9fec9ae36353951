from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from storefront.selection import SelectionParams


@dataclass(frozen=True)
class NavigationState:
    """Either idle or pending towards ``destination`` (a path or URL with query)."""

    destination: str | None = None

    @classmethod
    def idle(cls) -> NavigationState:
        return cls()

    @classmethod
    def pending(cls, destination: str) -> NavigationState:
        return cls(destination=destination)

    @property
    def is_pending(self) -> bool:
        return self.destination is not None


def display_selection(current_url: str, navigation: NavigationState) -> SelectionParams:
    # While an option click is in flight, show the destination's choice.
    source = navigation.destination if navigation.is_pending else current_url
    return SelectionParams.decode(urlsplit(source).query)
