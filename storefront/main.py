from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import parse_qs, quote

import orjson
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import ORJSONResponse, RedirectResponse, StreamingResponse
from pydantic import ValidationError

from storefront.cart import add_to_cart
from storefront.deferred import Deferred, defer_recommendations
from storefront.i18n import StorefrontLocale, localize_path, parse_locale
from storefront.navigation import NavigationState
from storefront.product_page import build_product_page
from storefront.schemas import CartLine, ProductPage
from storefront.selection import SelectionParams
from storefront.session import get_session
from storefront.storefront_api import ShopifyApiError, StorefrontApiClient

logger = logging.getLogger(__name__)

app = FastAPI(title="Storefront Product Page", default_response_class=ORJSONResponse)
storefront_api = StorefrontApiClient()


@app.exception_handler(Exception)
async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception("Unhandled server exception", exc_info=exc)
    return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


def _resolve_locale(segment: str | None) -> StorefrontLocale:
    locale = parse_locale(segment)
    if locale is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return locale


async def _fetch_recommended_payload(product_id: str, locale: StorefrontLocale) -> list[dict[str, Any]]:
    products = await storefront_api.get_recommended_products(product_id=product_id, locale=locale)
    return [product.model_dump(mode="json") for product in products]


async def _stream_page(page: ProductPage, deferred: list[Deferred[Any]]) -> AsyncIterator[bytes]:
    yield orjson.dumps(page.to_payload()) + b"\n"
    for handle in deferred:
        outcome = await handle.settle()
        yield orjson.dumps(handle.as_payload(outcome)) + b"\n"


async def _render_product_page(request: Request, *, handle: str, locale: StorefrontLocale) -> StreamingResponse:
    selection = SelectionParams.decode(request.url.query)
    try:
        data = await storefront_api.get_product_data(handle=handle, selection=selection, locale=locale)
    except ShopifyApiError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    product = data.product
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Product not found: {handle}")

    recommended = defer_recommendations(
        product.id,
        lambda product_id: _fetch_recommended_payload(product_id, locale),
    )
    page = build_product_page(
        product,
        data.shop,
        pathname=request.url.path,
        current_url=str(request.url),
        navigation=NavigationState.idle(),
        deferred_keys=(recommended.key,),
    )
    return StreamingResponse(_stream_page(page, [recommended]), media_type="application/x-ndjson")


@app.get("/products/{handle}")
async def product_page(handle: str, request: Request):
    return await _render_product_page(request, handle=handle, locale=_resolve_locale(None))


@app.get("/{locale}/products/{handle}")
async def localized_product_page(locale: str, handle: str, request: Request):
    return await _render_product_page(request, handle=handle, locale=_resolve_locale(locale))


def _parse_cart_line(body: bytes) -> CartLine:
    try:
        form = parse_qs(body.decode("utf-8"), keep_blank_values=True)
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Form body must be UTF-8") from exc

    variant_id = (form.get("variantId") or [""])[0].strip()
    if not variant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing variantId")

    raw_quantity = (form.get("quantity") or ["1"])[0].strip() or "1"
    try:
        return CartLine(merchandiseId=variant_id, quantity=int(raw_quantity))
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="quantity must be a positive integer") from exc


async def _submit_add_to_cart(request: Request, *, handle: str, locale: StorefrontLocale) -> RedirectResponse:
    body, session = await asyncio.gather(request.body(), get_session(request))
    line = _parse_cart_line(body)

    try:
        result = await add_to_cart(session=session, line=line, storefront=storefront_api, locale=locale)
    except ShopifyApiError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

    headers = {"Set-Cookie": result.set_cookie} if result.set_cookie else None
    return RedirectResponse(
        url=localize_path(f"/products/{quote(handle)}", locale.path_prefix),
        status_code=status.HTTP_302_FOUND,
        headers=headers,
    )


@app.post("/products/{handle}")
async def product_add_to_cart(handle: str, request: Request):
    return await _submit_add_to_cart(request, handle=handle, locale=_resolve_locale(None))


@app.post("/{locale}/products/{handle}")
async def localized_product_add_to_cart(locale: str, handle: str, request: Request):
    return await _submit_add_to_cart(request, handle=handle, locale=_resolve_locale(locale))
