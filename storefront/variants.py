from __future__ import annotations

from dataclasses import dataclass

from storefront.schemas import Product, ProductOption, ProductVariant
from storefront.selection import SelectionParams


@dataclass(frozen=True)
class VariantResolution:
    variant: ProductVariant | None
    selection: SelectionParams
    default_variant: ProductVariant | None

    @property
    def display_variant(self) -> ProductVariant | None:
        """Variant used for price and availability when the selection matches nothing."""
        return self.variant or self.default_variant


def default_variant(product: Product) -> ProductVariant | None:
    return product.variants[0] if product.variants else None


def selectable_options(product: Product) -> list[ProductOption]:
    return [option for option in product.options if len(option.values) > 1]


def fill_selection(product: Product, params: SelectionParams) -> SelectionParams:
    first = default_variant(product)
    if first is None:
        return params
    return params.with_defaults((option.name, option.value) for option in first.selectedOptions)


def _matches(variant: ProductVariant, selection: SelectionParams, option_names: frozenset[str]) -> bool:
    options = variant.option_values()
    # A variant that does not name every product option cannot stand for a selection.
    if not options or not option_names <= options.keys():
        return False
    return all(selection.get(name) == value for name, value in options.items())


def resolve_variant(product: Product, params: SelectionParams) -> VariantResolution:
    """Resolve the selected variant for ``params``.

    Options missing from ``params`` are filled from the first variant. Keys
    already present are kept even when no variant carries that value, in which
    case no variant is resolved and the filled selection still reflects the
    user's choice.
    """
    selection = fill_selection(product, params)
    option_names = frozenset(option.name for option in product.options)
    match = next((variant for variant in product.variants if _matches(variant, selection, option_names)), None)
    return VariantResolution(variant=match, selection=selection, default_variant=default_variant(product))
