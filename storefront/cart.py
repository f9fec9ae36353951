from __future__ import annotations

import logging
from dataclasses import dataclass

from storefront.i18n import StorefrontLocale
from storefront.schemas import CartLine
from storefront.session import StorefrontSession
from storefront.storefront_api import StorefrontApiClient

logger = logging.getLogger(__name__)

CART_ID_SESSION_KEY = "cartId"


@dataclass(frozen=True)
class CartTransactionResult:
    cart_id: str
    created: bool
    set_cookie: str | None = None


async def add_to_cart(
    *,
    session: StorefrontSession,
    line: CartLine,
    storefront: StorefrontApiClient,
    locale: StorefrontLocale,
) -> CartTransactionResult:
    """Add ``line`` to the session's cart, creating the cart on first use.

    Only the creation branch writes to the session, and only after Shopify has
    returned the new cart, so a failed create leaves the session without a cart
    id. Two concurrent first adds from the same session create two carts; the
    later cookie wins.
    """
    cart_id = session.get(CART_ID_SESSION_KEY)

    if not cart_id:
        cart = await storefront.create_cart(lines=[line], locale=locale)
        session.set(CART_ID_SESSION_KEY, cart.id)
        logger.info("Created cart for session", extra={"cart_id": cart.id, "merchandise_id": line.merchandiseId})
        return CartTransactionResult(cart_id=cart.id, created=True, set_cookie=session.commit())

    await storefront.add_cart_lines(cart_id=cart_id, lines=[line])
    logger.info("Added line to cart", extra={"cart_id": cart_id, "merchandise_id": line.merchandiseId})
    return CartTransactionResult(cart_id=cart_id, created=False)
