from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from storefront.config import settings
from storefront.i18n import StorefrontLocale
from storefront.schemas import Cart, CartLine, Product, ProductData, ProductSummary, Shop
from storefront.selection import SelectionParams
from storefront.variants import resolve_variant

logger = logging.getLogger(__name__)

_VARIANT_FIELDS = """
    id
    title
    availableForSale
    price {
        amount
        currencyCode
    }
    compareAtPrice {
        amount
        currencyCode
    }
    selectedOptions {
        name
        value
    }
"""

_PRODUCT_CARD_FIELDS = """
    id
    title
    handle
    vendor
    variants(first: 1) {
        nodes {
            availableForSale
            price {
                amount
                currencyCode
            }
            compareAtPrice {
                amount
                currencyCode
            }
        }
    }
"""


class ShopifyApiError(RuntimeError):
    def __init__(self, *, message: str, status_code: int = 502) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorefrontApiClient:
    def __init__(self) -> None:
        self._timeout = settings.SHOPIFY_REQUEST_TIMEOUT_SECONDS

    async def get_product_data(
        self,
        *,
        handle: str,
        selection: SelectionParams,
        locale: StorefrontLocale,
    ) -> ProductData:
        query = f"""
        query product(
            $country: CountryCode
            $language: LanguageCode
            $handle: String!
        ) @inContext(country: $country, language: $language) {{
            shop {{
                name
                shippingPolicy {{
                    handle
                    title
                    body
                }}
                refundPolicy {{
                    handle
                    title
                    body
                }}
            }}
            product(handle: $handle) {{
                id
                handle
                title
                vendor
                description
                descriptionHtml
                options {{
                    name
                    values
                }}
                variants(first: 250) {{
                    nodes {{
                        {_VARIANT_FIELDS}
                    }}
                }}
            }}
        }}
        """
        payload = {
            "query": query,
            "variables": {**locale.context_variables, "handle": handle},
        }
        response = await self._storefront_graphql(payload=payload)

        shop = response.get("shop")
        if not isinstance(shop, dict):
            raise ShopifyApiError(message="Product query response is missing shop")
        product = response.get("product")
        if product is not None and not isinstance(product, dict):
            raise ShopifyApiError(message="Product query response has an invalid product")

        try:
            shop_model = Shop.model_validate(shop)
            product_model = Product.model_validate(self._flatten_variants(product)) if product else None
        except ValidationError as exc:
            raise ShopifyApiError(message=f"Product query response is malformed: {exc}") from exc

        if product_model is not None:
            # Resolved locally so default-fill applies and non-option keys are ignored.
            resolved = resolve_variant(product_model, selection).variant
            product_model = product_model.model_copy(update={"selectedVariant": resolved})
        return ProductData(shop=shop_model, product=product_model)

    async def get_recommended_products(
        self,
        *,
        product_id: str,
        locale: StorefrontLocale,
        count: int | None = None,
    ) -> list[ProductSummary]:
        limit = count or settings.STOREFRONT_RECOMMENDED_PRODUCTS_COUNT
        query = f"""
        query productRecommendations(
            $productId: ID!
            $count: Int
            $country: CountryCode
            $language: LanguageCode
        ) @inContext(country: $country, language: $language) {{
            recommended: productRecommendations(productId: $productId) {{
                {_PRODUCT_CARD_FIELDS}
            }}
            additional: products(first: $count, sortKey: BEST_SELLING) {{
                nodes {{
                    {_PRODUCT_CARD_FIELDS}
                }}
            }}
        }}
        """
        payload = {
            "query": query,
            "variables": {**locale.context_variables, "productId": product_id, "count": limit},
        }
        response = await self._storefront_graphql(payload=payload)

        recommended = response.get("recommended") or []
        additional = (response.get("additional") or {}).get("nodes") or []
        merged: list[ProductSummary] = []
        seen: set[str] = {product_id}
        for node in [*recommended, *additional]:
            if not isinstance(node, dict):
                continue
            node_id = node.get("id")
            if not isinstance(node_id, str) or node_id in seen:
                continue
            seen.add(node_id)
            try:
                merged.append(self._coerce_product_card(node))
            except ValidationError as exc:
                raise ShopifyApiError(message=f"Recommended product {node_id} is malformed: {exc}") from exc
        return merged[:limit]

    async def create_cart(self, *, lines: list[CartLine], locale: StorefrontLocale) -> Cart:
        query = """
        mutation cartCreate($input: CartInput!, $country: CountryCode, $language: LanguageCode)
        @inContext(country: $country, language: $language) {
            cartCreate(input: $input) {
                cart {
                    id
                    checkoutUrl
                    totalQuantity
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """
        payload = {
            "query": query,
            "variables": {
                **locale.context_variables,
                "input": {
                    "lines": [line.model_dump() for line in lines],
                    "buyerIdentity": {"countryCode": locale.country},
                },
            },
        }
        response = await self._storefront_graphql(payload=payload)
        return self._coerce_cart_mutation(response.get("cartCreate"), mutation_name="cartCreate")

    async def add_cart_lines(self, *, cart_id: str, lines: list[CartLine]) -> Cart:
        query = """
        mutation cartLinesAdd($cartId: ID!, $lines: [CartLineInput!]!) {
            cartLinesAdd(cartId: $cartId, lines: $lines) {
                cart {
                    id
                    checkoutUrl
                    totalQuantity
                }
                userErrors {
                    field
                    message
                }
            }
        }
        """
        payload = {
            "query": query,
            "variables": {"cartId": cart_id, "lines": [line.model_dump() for line in lines]},
        }
        response = await self._storefront_graphql(payload=payload)
        return self._coerce_cart_mutation(response.get("cartLinesAdd"), mutation_name="cartLinesAdd")

    @staticmethod
    def _flatten_variants(product: dict[str, Any]) -> dict[str, Any]:
        variants = product.get("variants") or {}
        nodes = variants.get("nodes") if isinstance(variants, dict) else variants
        return {**product, "variants": nodes or []}

    @staticmethod
    def _coerce_product_card(node: dict[str, Any]) -> ProductSummary:
        variants = (node.get("variants") or {}).get("nodes") or []
        first_variant = variants[0] if variants and isinstance(variants[0], dict) else {}
        return ProductSummary.model_validate(
            {
                "id": node.get("id"),
                "title": node.get("title"),
                "handle": node.get("handle"),
                "vendor": node.get("vendor"),
                "availableForSale": bool(first_variant.get("availableForSale")),
                "price": first_variant.get("price"),
                "compareAtPrice": first_variant.get("compareAtPrice"),
            }
        )

    @staticmethod
    def _coerce_cart_mutation(data: Any, *, mutation_name: str) -> Cart:
        data = data or {}
        user_errors = data.get("userErrors") or []
        if user_errors:
            messages = "; ".join(str(error.get("message")) for error in user_errors)
            raise ShopifyApiError(message=f"{mutation_name} failed: {messages}", status_code=409)

        cart = data.get("cart") or {}
        cart_id = cart.get("id")
        if not isinstance(cart_id, str) or not cart_id:
            raise ShopifyApiError(message=f"{mutation_name} response is missing cart.id")
        return Cart(
            id=cart_id,
            checkoutUrl=cart.get("checkoutUrl"),
            totalQuantity=cart.get("totalQuantity"),
        )

    async def _storefront_graphql(self, *, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "X-Shopify-Storefront-Access-Token": settings.SHOPIFY_STOREFRONT_ACCESS_TOKEN,
        }
        response = await self._post_json(url=settings.storefront_graphql_url, payload=payload, headers=headers)
        data = response.get("data")
        errors = response.get("errors")
        if errors:
            raise ShopifyApiError(message=f"Storefront GraphQL errors: {errors}", status_code=409)
        if not isinstance(data, dict):
            raise ShopifyApiError(message="Storefront GraphQL response is missing data", status_code=409)
        return data

    async def _post_json(
        self,
        *,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            logger.warning("Storefront request failed", extra={"url": url, "error": str(exc)})
            raise ShopifyApiError(message=f"Network error while calling Shopify: {exc}") from exc

        if response.status_code >= 400:
            raise ShopifyApiError(
                message=f"Shopify API call failed ({response.status_code}): {response.text}",
                status_code=502,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ShopifyApiError(message="Shopify API returned invalid JSON") from exc

        if not isinstance(body, dict):
            raise ShopifyApiError(message="Shopify API response must be a JSON object")
        return body
