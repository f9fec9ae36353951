from __future__ import annotations

import re

from storefront.i18n import localize_path, split_locale_prefix
from storefront.links import build_option_link
from storefront.navigation import NavigationState, display_selection
from storefront.schemas import (
    AddToCartForm,
    DeferredSlot,
    OptionControl,
    OptionValueLink,
    Product,
    ProductDetail,
    ProductForm,
    ProductPage,
    ProductVariant,
    Shop,
    ShopPolicy,
)
from storefront.selection import SelectionParams
from storefront.variants import resolve_variant, selectable_options

# Options with more values than this render as a dropdown instead of links.
MAX_LINK_OPTION_VALUES = 7

_FIRST_PARAGRAPH_RE = re.compile(r"<p\b[^>]*>.*?</p>", re.IGNORECASE | re.DOTALL)


def get_excerpt(text: str) -> str:
    match = _FIRST_PARAGRAPH_RE.search(text)
    return match.group(0) if match else text


def is_on_sale(variant: ProductVariant | None) -> bool:
    if variant is None or variant.compareAtPrice is None:
        return False
    return variant.price.amount < variant.compareAtPrice.amount


def _policy_detail(title: str, policy: ShopPolicy | None, *, locale_prefix: str | None) -> ProductDetail | None:
    if policy is None or not policy.body:
        return None
    return ProductDetail(
        title=title,
        content=get_excerpt(policy.body),
        learnMore=localize_path(f"/policies/{policy.handle}", locale_prefix),
    )


def build_details(product: Product, shop: Shop, *, locale_prefix: str | None = None) -> list[ProductDetail]:
    details: list[ProductDetail | None] = [
        ProductDetail(title="Product Details", content=product.descriptionHtml) if product.descriptionHtml else None,
        _policy_detail("Shipping", shop.shippingPolicy, locale_prefix=locale_prefix),
        _policy_detail("Returns", shop.refundPolicy, locale_prefix=locale_prefix),
    ]
    return [detail for detail in details if detail is not None]


def _option_controls(product: Product, *, pathname: str, selection: SelectionParams) -> list[OptionControl]:
    controls: list[OptionControl] = []
    for option in selectable_options(product):
        selected_value = selection.get(option.name)
        controls.append(
            OptionControl(
                name=option.name,
                display="dropdown" if len(option.values) > MAX_LINK_OPTION_VALUES else "links",
                selectedValue=selected_value,
                values=[
                    OptionValueLink(
                        value=value,
                        checked=selected_value == value,
                        to=build_option_link(
                            pathname=pathname,
                            selection=selection,
                            option_name=option.name,
                            option_value=value,
                        ).to,
                    )
                    for value in option.values
                ],
            )
        )
    return controls


def build_product_form(
    product: Product,
    *,
    pathname: str,
    current_url: str,
    navigation: NavigationState,
) -> ProductForm:
    resolution = resolve_variant(product, display_selection(current_url, navigation))
    variant = resolution.display_variant
    out_of_stock = variant is None or not variant.availableForSale

    add_to_cart = None
    if variant is not None:
        add_to_cart = AddToCartForm(
            action=pathname,
            variantId=variant.id,
            disabled=out_of_stock,
            label="Sold out" if out_of_stock else "Add to bag",
            price=variant.price,
            compareAtPrice=variant.compareAtPrice if is_on_sale(variant) else None,
        )

    return ProductForm(
        options=_option_controls(product, pathname=pathname, selection=resolution.selection),
        selection=dict(resolution.selection),
        variantMatched=resolution.variant is not None,
        selectedVariant=variant,
        isOutOfStock=out_of_stock,
        isOnSale=is_on_sale(variant),
        addToCart=add_to_cart,
        shopPayVariantIds=[variant.id] if variant is not None and not out_of_stock else [],
    )


def build_product_page(
    product: Product,
    shop: Shop,
    *,
    pathname: str,
    current_url: str,
    navigation: NavigationState | None = None,
    deferred_keys: tuple[str, ...] = (),
) -> ProductPage:
    locale_prefix, _ = split_locale_prefix(pathname)
    form = build_product_form(
        product,
        pathname=pathname,
        current_url=current_url,
        navigation=navigation or NavigationState.idle(),
    )
    return ProductPage(
        product=product,
        shop=shop,
        details=build_details(product, shop, locale_prefix=locale_prefix),
        form=form,
        recommended=DeferredSlot(deferred="recommended") if "recommended" in deferred_keys else None,
    )
