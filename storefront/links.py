from __future__ import annotations

from dataclasses import dataclass

from storefront.i18n import localize_path, split_locale_prefix
from storefront.selection import SelectionParams


@dataclass(frozen=True)
class OptionLink:
    to: str
    prefetch: str = "intent"
    replace: bool = True


def build_option_link(
    *,
    pathname: str,
    selection: SelectionParams,
    option_name: str,
    option_value: str,
) -> OptionLink:
    """Destination for choosing ``option_value`` of ``option_name``.

    Every other entry of ``selection`` is kept as is. The locale prefix of
    ``pathname`` is stripped and re-applied so the link stays in the active
    locale whether or not it is embedded in the path.
    """
    prefix, path = split_locale_prefix(pathname)
    query = selection.with_value(option_name, option_value).encode()
    return OptionLink(to=f"{localize_path(path, prefix)}?{query}")
