"""Customer message rendering.

Templates are plain text with ``{slot}`` placeholders from a closed vocabulary
(see ``CONFIRMATION_SLOTS`` / ``PIX_SLOTS``). Any placeholder without a value
renders as an empty string, and the blank lines this leaves behind collapse,
which is how optional lines such as the change-due line disappear.
"""

from __future__ import annotations

import re
from typing import assert_never
from urllib.parse import quote

from orderdesk.core.config import settings
from orderdesk.db.models import FulfillmentType, Order, PaymentMethod

DEFAULT_CONFIRMATION_TEMPLATE = "\n".join([
    "✅ *{storeName}*",
    "Pedido *{orderNumber}* impresso e confirmado.",
    "Tipo: {fulfillmentType}",
    "Itens:",
    "{itemsSummary}",
    "Total: {total}",
    "Pagamento: {paymentMethod}",
    "{changeForLine}",
    "{receiptUrlLine}",
])

DEFAULT_PIX_TEMPLATE = "\n".join([
    "Pagamento via Pix:",
    "Chave: {pixKey}",
    "Favorecido: {pixName}",
    "Banco: {pixBank}",
])

CONFIRMATION_SLOTS = frozenset({
    "storeName", "orderNumber", "orderCode", "fulfillmentType", "itemsSummary",
    "total", "paymentMethod", "changeForLine", "receiptUrl", "receiptUrlLine", "menuUrl",
})
PIX_SLOTS = frozenset({
    "storeName", "orderNumber", "total", "paymentMethod", "receiptUrl", "menuUrl",
    "pixKey", "pixName", "pixBank",
})

_SLOT = re.compile(r"\{(\w+)\}")


def render_template(template: str, values: dict[str, str], slots: frozenset[str] = CONFIRMATION_SLOTS) -> str:
    def substitute(m: re.Match) -> str:
        name = m.group(1)
        if name not in slots:
            return ""
        return values.get(name) or ""

    text = _SLOT.sub(substitute, template)

    lines: list[str] = []
    for line in text.split("\n"):
        line = line.rstrip()
        # keep a blank line only right after a non-blank one
        if line or (lines and lines[-1]):
            lines.append(line)
    return "\n".join(lines).strip()


def format_currency_cents(amount_cents: int) -> str:
    sign = "-" if amount_cents < 0 else ""
    reais, cents = divmod(abs(amount_cents), 100)
    return f"{sign}R$ {reais},{cents:02d}"


def payment_method_label(method: PaymentMethod) -> str:
    match method:
        case PaymentMethod.CASH:
            return "Dinheiro"
        case PaymentMethod.CARD:
            return "Cartão"
        case PaymentMethod.PIX:
            return "Pix"
        case _:
            assert_never(method)


def fulfillment_type_label(fulfillment: FulfillmentType) -> str:
    match fulfillment:
        case FulfillmentType.PICKUP:
            return "Retirada"
        case FulfillmentType.DELIVERY:
            return "Delivery"
        case FulfillmentType.DINE_IN:
            return "Mesa"
        case _:
            assert_never(fulfillment)


def order_code(order_id: int) -> str:
    return f"{order_id:05d}"


def receipt_url(order: Order) -> str:
    base = settings.PUBLIC_BASE_URL.rstrip("/")
    return f"{base}/api/v1/public/orders/{order.order_id}/receipt?token={quote(order.receipt_token, safe='')}"


def menu_url(store_slug: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/p/{store_slug}"


def items_summary(order: Order) -> str:
    lines = []
    for item in order.items:
        line = f"{item.quantity}x {item.product_name}"
        options = "; ".join(f"+ {option.item_name}" for option in item.options)
        lines.append(f"{line}\n  {options}" if options else line)
    return "\n".join(lines)


def change_for_line(order: Order) -> str:
    if order.payment_method == PaymentMethod.CASH and order.change_for_cents:
        return f"Troco para {format_currency_cents(order.change_for_cents)}"
    return ""


def confirmation_values(order: Order, include_receipt_link: bool = True) -> dict[str, str]:
    code = order_code(order.order_id)
    url = receipt_url(order) if include_receipt_link and order.receipt_token else ""
    return {
        "storeName": order.store.name,
        "orderNumber": code,
        "orderCode": code,
        "fulfillmentType": fulfillment_type_label(order.fulfillment_type),
        "itemsSummary": items_summary(order),
        "total": format_currency_cents(order.total_cents),
        "paymentMethod": payment_method_label(order.payment_method),
        "changeForLine": change_for_line(order),
        "receiptUrl": url,
        "receiptUrlLine": f"Comprovante: {url}" if url else "",
        "menuUrl": menu_url(order.store.slug),
    }
