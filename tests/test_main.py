from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

import storefront.main as main_module
from storefront.schemas import Cart, ProductData, ProductSummary, Shop
from storefront.storefront_api import ShopifyApiError


@pytest.fixture()
def api_client():
    with TestClient(main_module.app) as client:
        yield client


@pytest.fixture()
def fake_product_data(p1, monkeypatch):
    observed: dict[str, object] = {}

    async def fake_get_product_data(*, handle, selection, locale):
        observed["handle"] = handle
        observed["selection"] = dict(selection)
        observed["locale"] = locale
        if handle != "p1":
            return ProductData(shop=Shop(name="Example"), product=None)
        return ProductData(shop=Shop(name="Example"), product=p1)

    monkeypatch.setattr(main_module.storefront_api, "get_product_data", fake_get_product_data)
    return observed


def _ndjson(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line]


def test_health(api_client):
    assert api_client.get("/health").json() == {"ok": True}


def test_product_page_streams_page_then_recommendations(api_client, fake_product_data, monkeypatch):
    async def fake_get_recommended_products(*, product_id, locale, count=None):
        assert product_id == "gid://shopify/Product/1"
        return [ProductSummary(id="gid://shopify/Product/2", title="Beta", handle="beta")]

    monkeypatch.setattr(main_module.storefront_api, "get_recommended_products", fake_get_recommended_products)

    response = api_client.get("/products/p1", params={"Color": "Blue"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    page, recommended = _ndjson(response)
    assert page["product"]["id"] == "gid://shopify/Product/1"
    assert page["form"]["selectedVariant"]["id"] == "gid://shopify/ProductVariant/blue-s"
    assert page["form"]["selection"] == {"Color": "Blue", "Size": "S"}
    assert page["recommended"] == {"deferred": "recommended", "status": "pending"}
    assert recommended["deferred"] == "recommended"
    assert [item["id"] for item in recommended["data"]] == ["gid://shopify/Product/2"]
    assert fake_product_data["selection"] == {"Color": "Blue"}


def test_recommendation_failure_does_not_fail_page(api_client, fake_product_data, monkeypatch):
    async def fake_get_recommended_products(*, product_id, locale, count=None):
        raise ShopifyApiError(message="Storefront GraphQL errors: boom", status_code=409)

    monkeypatch.setattr(main_module.storefront_api, "get_recommended_products", fake_get_recommended_products)

    response = api_client.get("/products/p1", params={"Color": "Green"})

    assert response.status_code == 200
    page, recommended = _ndjson(response)
    assert page["form"]["variantMatched"] is False
    assert page["form"]["selection"]["Color"] == "Green"
    assert recommended == {"deferred": "recommended", "error": "There was a problem loading related products"}


def test_localized_product_page_uses_locale_context(api_client, fake_product_data, monkeypatch):
    async def fake_get_recommended_products(*, product_id, locale, count=None):
        return []

    monkeypatch.setattr(main_module.storefront_api, "get_recommended_products", fake_get_recommended_products)

    response = api_client.get("/fr-ca/products/p1")

    assert response.status_code == 200
    page, _ = _ndjson(response)
    assert fake_product_data["locale"].context_variables == {"language": "FR", "country": "CA"}
    color = next(option for option in page["form"]["options"] if option["name"] == "Color")
    assert color["values"][1]["to"] == "/fr-ca/products/p1?Color=Blue&Size=S"
    assert color["values"][1]["prefetch"] == "intent"


def test_unknown_product_returns_404(api_client, fake_product_data):
    response = api_client.get("/products/missing")

    assert response.status_code == 404


def test_malformed_locale_returns_404(api_client, fake_product_data):
    response = api_client.get("/france/products/p1")

    assert response.status_code == 404


def test_product_fetch_failure_is_fatal(api_client, monkeypatch):
    async def fake_get_product_data(*, handle, selection, locale):
        raise ShopifyApiError(message="Network error while calling Shopify: timeout")

    monkeypatch.setattr(main_module.storefront_api, "get_product_data", fake_get_product_data)

    response = api_client.get("/products/p1")

    assert response.status_code == 502
    assert "Network error" in response.json()["detail"]


def test_add_to_cart_creates_then_reuses_cart(api_client, monkeypatch):
    calls: list[tuple[str, object]] = []

    async def fake_create_cart(*, lines, locale):
        calls.append(("createCart", [line.merchandiseId for line in lines]))
        return Cart(id="gid://shopify/Cart/abc")

    async def fake_add_cart_lines(*, cart_id, lines):
        calls.append(("addCartLine", (cart_id, [line.merchandiseId for line in lines])))
        return Cart(id=cart_id)

    monkeypatch.setattr(main_module.storefront_api, "create_cart", fake_create_cart)
    monkeypatch.setattr(main_module.storefront_api, "add_cart_lines", fake_add_cart_lines)

    first = api_client.post(
        "/products/p1?Color=Red",
        content="variantId=V1",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    assert first.status_code == 302
    assert first.headers["location"] == "/products/p1"
    assert "set-cookie" in first.headers

    second = api_client.post(
        "/products/p1",
        content="variantId=V2",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    assert second.status_code == 302
    assert "set-cookie" not in second.headers
    assert calls == [
        ("createCart", ["V1"]),
        ("addCartLine", ("gid://shopify/Cart/abc", ["V2"])),
    ]


def test_add_to_cart_on_localized_route_redirects_within_locale(api_client, monkeypatch):
    async def fake_create_cart(*, lines, locale):
        assert locale.country == "CA"
        assert lines[0].quantity == 2
        return Cart(id="gid://shopify/Cart/ca")

    monkeypatch.setattr(main_module.storefront_api, "create_cart", fake_create_cart)

    response = api_client.post(
        "/en-ca/products/p1",
        content="variantId=V1&quantity=2",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == "/en-ca/products/p1"


def test_add_to_cart_requires_variant_id(api_client):
    response = api_client.post(
        "/products/p1",
        content="quantity=1",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing variantId"


def test_add_to_cart_rejects_invalid_quantity(api_client):
    response = api_client.post(
        "/products/p1",
        content="variantId=V1&quantity=0",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    assert response.status_code == 400


def test_cart_failure_does_not_set_cookie(api_client, monkeypatch):
    async def fake_create_cart(*, lines, locale):
        raise ShopifyApiError(message="cartCreate failed: Merchandise does not exist", status_code=409)

    monkeypatch.setattr(main_module.storefront_api, "create_cart", fake_create_cart)

    response = api_client.post(
        "/products/p1",
        content="variantId=V1",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    assert response.status_code == 409
    assert "set-cookie" not in response.headers


def test_add_to_cart_with_garbled_cookie_starts_new_cart(api_client, monkeypatch):
    async def fake_create_cart(*, lines, locale):
        return Cart(id="gid://shopify/Cart/fresh")

    monkeypatch.setattr(main_module.storefront_api, "create_cart", fake_create_cart)

    response = api_client.post(
        "/products/p1",
        content="variantId=V1",
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Cookie": 'session="abc.\\351"',
        },
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert "set-cookie" in response.headers
