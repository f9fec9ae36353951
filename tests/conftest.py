import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("SHOPIFY_STORE_DOMAIN", "example-shop.myshopify.com")
os.environ.setdefault("SHOPIFY_STOREFRONT_ACCESS_TOKEN", "storefront_token")
os.environ.setdefault("SESSION_SECRET", "test_session_secret_value")
os.environ.setdefault("SESSION_COOKIE_SECURE", "false")

import pytest

from storefront.schemas import Product


def _variant(variant_id: str, options: dict[str, str], *, price: str = "20.00", compare_at: str | None = None, available: bool = True) -> dict:
    return {
        "id": variant_id,
        "title": " / ".join(options.values()),
        "availableForSale": available,
        "price": {"amount": price, "currencyCode": "USD"},
        "compareAtPrice": {"amount": compare_at, "currencyCode": "USD"} if compare_at else None,
        "selectedOptions": [{"name": name, "value": value} for name, value in options.items()],
    }


@pytest.fixture()
def p1_payload() -> dict:
    return {
        "id": "gid://shopify/Product/1",
        "handle": "p1",
        "title": "Classic Tee",
        "vendor": "Acme",
        "descriptionHtml": "<p>Soft cotton tee.</p>",
        "options": [
            {"name": "Color", "values": ["Red", "Blue"]},
            {"name": "Size", "values": ["S", "M"]},
        ],
        "variants": [
            _variant("gid://shopify/ProductVariant/red-s", {"Color": "Red", "Size": "S"}),
            _variant("gid://shopify/ProductVariant/red-m", {"Color": "Red", "Size": "M"}),
            _variant("gid://shopify/ProductVariant/blue-s", {"Color": "Blue", "Size": "S"}, price="15.00", compare_at="25.00"),
            _variant("gid://shopify/ProductVariant/blue-m", {"Color": "Blue", "Size": "M"}, available=False),
        ],
    }


@pytest.fixture()
def p1(p1_payload) -> Product:
    return Product.model_validate(p1_payload)


@pytest.fixture()
def single_value_product() -> Product:
    return Product.model_validate(
        {
            "id": "gid://shopify/Product/2",
            "handle": "mug",
            "title": "Mug",
            "options": [
                {"name": "Material", "values": ["Ceramic"]},
                {"name": "Size", "values": ["8oz", "12oz"]},
            ],
            "variants": [
                _variant("gid://shopify/ProductVariant/mug-8", {"Material": "Ceramic", "Size": "8oz"}),
                _variant("gid://shopify/ProductVariant/mug-12", {"Material": "Ceramic", "Size": "12oz"}),
            ],
        }
    )
