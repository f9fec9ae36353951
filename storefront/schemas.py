from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StorefrontModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Money(StorefrontModel):
    amount: Decimal
    currencyCode: str


class SelectedOption(StorefrontModel):
    name: str
    value: str


class ProductOption(StorefrontModel):
    name: str
    values: list[str] = Field(default_factory=list)


class ProductVariant(StorefrontModel):
    id: str
    title: str = ""
    availableForSale: bool = False
    price: Money
    compareAtPrice: Money | None = None
    selectedOptions: list[SelectedOption] = Field(default_factory=list)

    def option_values(self) -> dict[str, str]:
        return {option.name: option.value for option in self.selectedOptions}


class Product(StorefrontModel):
    id: str
    handle: str
    title: str
    vendor: str | None = None
    description: str = ""
    descriptionHtml: str = ""
    options: list[ProductOption] = Field(default_factory=list)
    variants: list[ProductVariant] = Field(default_factory=list)
    selectedVariant: ProductVariant | None = None


class ShopPolicy(StorefrontModel):
    handle: str
    title: str | None = None
    body: str = ""


class Shop(StorefrontModel):
    name: str
    shippingPolicy: ShopPolicy | None = None
    refundPolicy: ShopPolicy | None = None


class ProductData(StorefrontModel):
    shop: Shop
    product: Product | None = None


class ProductSummary(StorefrontModel):
    id: str
    title: str
    handle: str
    vendor: str | None = None
    availableForSale: bool = False
    price: Money | None = None
    compareAtPrice: Money | None = None


class CartLine(StorefrontModel):
    merchandiseId: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)


class Cart(StorefrontModel):
    id: str
    checkoutUrl: str | None = None
    totalQuantity: int | None = None


class ProductDetail(BaseModel):
    title: str
    content: str
    learnMore: str | None = None


class OptionValueLink(BaseModel):
    value: str
    checked: bool
    to: str
    prefetch: Literal["intent"] = "intent"
    replace: bool = True


class OptionControl(BaseModel):
    name: str
    display: Literal["links", "dropdown"]
    selectedValue: str | None = None
    values: list[OptionValueLink]


class AddToCartForm(BaseModel):
    method: Literal["post"] = "post"
    action: str
    variantId: str
    disabled: bool
    label: str
    price: Money
    compareAtPrice: Money | None = None


class ProductForm(BaseModel):
    options: list[OptionControl]
    selection: dict[str, str]
    variantMatched: bool
    selectedVariant: ProductVariant | None = None
    isOutOfStock: bool
    isOnSale: bool
    addToCart: AddToCartForm | None = None
    shopPayVariantIds: list[str] = Field(default_factory=list)


class DeferredSlot(BaseModel):
    deferred: str
    status: Literal["pending"] = "pending"


class ProductPage(BaseModel):
    product: Product
    shop: Shop
    details: list[ProductDetail]
    form: ProductForm
    recommended: DeferredSlot | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
