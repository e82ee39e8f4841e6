"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands. Field names follow the storefront's wire format,
which uses the Polish customer field names (``imieNazwisko``, ``telefon``...).
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from checkout.order.order import Order
from checkout.order.placement import CartLine, CustomerInfo, InvoiceInfo


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CustomerSchema(BaseModel):
    model_config = {"populate_by_name": True}

    email: str | None = Field(None, max_length=254)
    telefon: str | None = Field(None, max_length=30)
    imie_nazwisko: str | None = Field(None, alias="imieNazwisko", max_length=200)
    miasto: str | None = Field(None, max_length=100)
    kod: str | None = Field(None, max_length=20)
    ulica: str | None = Field(None, max_length=255)
    nr_bud: str | None = Field(None, alias="nrBud", max_length=20)
    pietro: str | None = Field(None, max_length=20)
    lokal: str | None = Field(None, max_length=20)

    def to_customer_info(self) -> CustomerInfo:
        return CustomerInfo(
            full_name=self.imie_nazwisko or "",
            phone=self.telefon or "",
            email=self.email or "",
            city=self.miasto or "",
            postal_code=self.kod or "",
            street=self.ulica or "",
            building_no=self.nr_bud or "",
            floor=self.pietro or "",
            apartment=self.lokal or "",
        )


class BoxProductSchema(BaseModel):
    id: str | None = None
    name: str | None = Field(None, max_length=200)


class CartItemSchema(BaseModel):
    name: str = Field(..., max_length=200)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    qty: int = Field(1, ge=1)
    type: Literal["custom-box", "ready-box"] | None = None
    items: list[BoxProductSchema] = Field(default_factory=list)

    def to_cart_line(self) -> CartLine:
        return CartLine(
            name=self.name,
            price=self.price,
            qty=self.qty,
            kind=self.type,
            contents=tuple(p.name for p in self.items if p.name),
        )


class InvoiceSchema(BaseModel):
    nip: str | None = Field(None, max_length=20)
    firma: str | None = Field(None, max_length=255)

    def to_invoice_info(self) -> InvoiceInfo | None:
        if not (self.nip or self.firma):
            return None
        return InvoiceInfo(tax_id=self.nip or "", company=self.firma or "")


class PlaceOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer": {
                        "email": "jan@example.com",
                        "telefon": "+48 600 100 200",
                        "imieNazwisko": "Jan Kowalski",
                    },
                    "cart": [{"name": "Box 1", "price": 32, "qty": 1}],
                    "total": 32,
                }
            ]
        }
    }

    customer: CustomerSchema = Field(default_factory=CustomerSchema)
    cart: list[CartItemSchema] = Field(default_factory=list, validation_alias=AliasChoices("cart", "items"))
    total: float | None = Field(None, allow_inf_nan=False)
    uwagi: str | None = Field(None, max_length=2000)
    faktura: InvoiceSchema | None = None


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Sandbox rejection"
    unreachable: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PlaceOrderResponse(BaseModel):
    redirect_uri: str = Field(serialization_alias="redirectUri")
    local_order_id: str = Field(serialization_alias="localOrderId")
    gateway_order_id: str = Field(serialization_alias="gatewayOrderId")


class OrderItemResponse(BaseModel):
    name: str
    type: str | None = None
    price: float
    unit_price_minor: int = Field(serialization_alias="unitPriceMinor")
    qty: int
    products: list[str] = Field(default_factory=list)


class OrderResponse(BaseModel):
    local_order_id: str = Field(serialization_alias="localOrderId")
    gateway_order_id: str = Field(serialization_alias="gatewayOrderId")
    status: str
    total: float
    amount_minor_units: int = Field(serialization_alias="amountMinorUnits")
    currency: str
    items: list[OrderItemResponse]
    customer: dict[str, str | None] = Field(default_factory=dict)
    invoice: dict[str, str | None] | None = None
    notes: str | None = None
    created_at: datetime | None = Field(None, serialization_alias="createdAt")
    updated_at: datetime | None = Field(None, serialization_alias="updatedAt")
    paid_at: datetime | None = Field(None, serialization_alias="paidAt")

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        customer = order.customer
        invoice = order.invoice
        return cls(
            local_order_id=str(order.local_order_id),
            gateway_order_id=order.gateway_order_id,
            status=order.status,
            total=order.total,
            amount_minor_units=order.amount_minor_units,
            currency=order.currency,
            items=[
                OrderItemResponse(
                    name=item.name,
                    type=item.kind,
                    price=item.unit_price,
                    unit_price_minor=item.unit_price_minor,
                    qty=item.quantity,
                    products=list(item.contents or []),
                )
                for item in order.items
            ],
            customer={
                "imieNazwisko": customer.full_name,
                "telefon": customer.phone,
                "email": customer.email,
                "miasto": customer.city,
                "kod": customer.postal_code,
                "ulica": customer.street,
                "nrBud": customer.building_no,
                "pietro": customer.floor,
                "lokal": customer.apartment,
            }
            if customer
            else {},
            invoice={"nip": invoice.tax_id, "firma": invoice.company} if invoice else None,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            paid_at=order.paid_at,
        )


class OrderListResponse(BaseModel):
    orders: list[OrderResponse] = Field(serialization_alias="list")
    total: int
    page: int
    pages: int


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    unreachable: bool
