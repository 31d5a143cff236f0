"""
Job financials

One calculation for every place that needs job money figures: the pipeline
stage that stores subtotal/tax/total on the job, the financial summary
endpoint and the payment matcher. All inputs are coerced with safe_float so
a blank or garbage value counts as 0 instead of poisoning the totals.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client, Product
from ...shared.relations import normalize_relation_id
from ...shared.validators import safe_float
from ..workflows.context import JobChangeContext, JobDraft

logger = logging.getLogger(__name__)


@dataclass
class PricedLine:
    product_id: Optional[int]
    description: str
    quantity: float
    rate: float
    amount: float
    taxable: bool


@dataclass
class JobFinancials:
    subtotal: float
    discount_amount: float
    taxable_amount: float
    tax_rate: float
    tax_amount: float
    total_with_tax: float
    tech_payout: float
    external_expenses: float
    total_costs: float
    gross_profit: float
    margin_percent: float

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "discountAmount": self.discount_amount,
            "taxableAmount": self.taxable_amount,
            "taxRate": self.tax_rate,
            "taxAmount": self.tax_amount,
            "totalWithTax": self.total_with_tax,
            "techPayout": self.tech_payout,
            "externalExpenses": self.external_expenses,
            "totalCosts": self.total_costs,
            "grossProfit": self.gross_profit,
            "marginPercent": self.margin_percent,
        }


def load_products(db: Session, line_items: list) -> dict[int, Product]:
    ids = set()
    for item in line_items or []:
        product_id = normalize_relation_id((item or {}).get("product"))
        if isinstance(product_id, int):
            ids.add(product_id)
    if not ids:
        return {}
    return {p.id: p for p in db.query(Product).filter(Product.id.in_(ids)).all()}


def line_quantity(product: Product, item: dict, sq_ft) -> float:
    """per-sq-ft products are priced on the job's square footage when known, everything else on quantity (default 1)"""
    sq_ft = safe_float(sq_ft)
    if product.unit_type == "per-sq-ft" and sq_ft > 0:
        return sq_ft
    return safe_float(item.get("quantity"), default=1.0) or 1.0


def price_line_items(line_items: list, products: dict[int, Product], sq_ft) -> list[PricedLine]:
    lines = []
    for item in line_items or []:
        if not item:
            continue
        product_id = normalize_relation_id(item.get("product"))
        product = products.get(product_id) if isinstance(product_id, int) else None
        if not product:
            logger.debug(f"Skipping line item with unknown product {item.get('product')}")
            continue
        quantity = line_quantity(product, item, sq_ft)
        rate = safe_float(product.base_price)
        lines.append(
            PricedLine(
                product_id=product.id,
                description=product.name,
                quantity=quantity,
                rate=rate,
                amount=rate * quantity,
                taxable=product.taxable is not False,
            )
        )
    return lines


def client_tax_settings(client: Optional[Client]) -> tuple[float, bool]:
    prefs = (client.invoicing_preferences if client else None) or {}
    return safe_float(prefs.get("taxRate")), bool(prefs.get("taxExempt"))


def discount_amount(discount: Optional[dict], subtotal: float) -> float:
    discount = discount or {}
    value = safe_float(discount.get("value"))
    if discount.get("type") == "fixed":
        return value
    if discount.get("type") == "percentage":
        return subtotal * value / 100
    return 0.0


def calculate_job_financials(
    lines: list[PricedLine],
    discount: Optional[dict] = None,
    tax_rate: float = 0.0,
    tax_exempt: bool = False,
    vendor_price=None,
    travel_payout=None,
    off_hours_payout=None,
    external_expenses: Optional[list] = None,
) -> JobFinancials:
    subtotal = sum(line.amount for line in lines)
    discount_value = discount_amount(discount, subtotal)

    tax_rate = safe_float(tax_rate)
    taxable_amount = sum(line.amount for line in lines if line.taxable)
    tax = taxable_amount * tax_rate / 100 if not tax_exempt and tax_rate > 0 else 0.0

    total_with_tax = subtotal + tax - discount_value

    tech_payout = safe_float(vendor_price) + safe_float(travel_payout) + safe_float(off_hours_payout)
    expenses = sum(safe_float((e or {}).get("amount")) for e in external_expenses or [])
    total_costs = tech_payout + expenses

    gross_profit = total_with_tax - total_costs
    margin = gross_profit / total_with_tax * 100 if total_with_tax > 0 else 0.0

    return JobFinancials(
        subtotal=round(subtotal, 2),
        discount_amount=round(discount_value, 2),
        taxable_amount=round(taxable_amount, 2),
        tax_rate=tax_rate,
        tax_amount=round(tax, 2),
        total_with_tax=round(total_with_tax, 2),
        tech_payout=round(tech_payout, 2),
        external_expenses=round(expenses, 2),
        total_costs=round(total_costs, 2),
        gross_profit=round(gross_profit, 2),
        margin_percent=round(margin, 2),
    )


def financials_for_draft(db: Session, draft: JobDraft) -> JobFinancials:
    products = load_products(db, draft.get("lineItems"))
    lines = price_line_items(draft.get("lineItems"), products, draft.get("sqFt"))

    client = None
    client_id = normalize_relation_id(draft.get("client"))
    if isinstance(client_id, int):
        client = db.query(Client).filter(Client.id == client_id).first()
    tax_rate, tax_exempt = client_tax_settings(client)

    return calculate_job_financials(
        lines,
        discount=draft.get("discount"),
        tax_rate=tax_rate,
        tax_exempt=tax_exempt,
        vendor_price=draft.get("vendorPrice"),
        travel_payout=draft.get("travelPayout"),
        off_hours_payout=draft.get("offHoursPayout"),
        external_expenses=draft.get("externalExpenses"),
    )


async def recalculate_financials(draft: JobDraft, ctx: JobChangeContext) -> JobDraft:
    summary = financials_for_draft(ctx.db, draft)

    discount = dict(draft.get("discount") or {"type": "none", "value": 0})
    discount["amount"] = summary.discount_amount
    draft["discount"] = discount
    draft["subtotal"] = summary.subtotal
    draft["taxAmount"] = summary.tax_amount
    draft["totalWithTax"] = summary.total_with_tax
    return draft

