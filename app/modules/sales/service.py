# app/modules/sales/service.py
import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.activity import log_activity
from app.modules.customers.repository import CustomersRepository
from app.modules.customers.ledger import (
    add_loyalty_points, points_for, record_purchase, remove_loyalty_points, reverse_purchase
)
from app.modules.products.repository import InsufficientStock, ProductsRepository
from app.shared.database.models import Customer, Product, Sale, SaleItem, User
from app.shared.money import ZERO, to_money
from app.shared.pagination import paginate
from app.shared.sequences import INVOICE_PREFIX, next_document_number, run_with_retry
from .calculations import (
    Cart, CartLine, LineAmounts, compute_balance_due, compute_change, compute_sale_totals,
    payment_status_for, settlement_direction, tax_from_rate
)
from .repository import SalesRepository
from .schemas import (
    PartySummary, PaymentUpdateRequest, PopulatedProduct, ProductRef, QuoteLineResponse,
    QuoteRequest, QuoteResponse, RefundRequest, ReturnLinesRequest, SaleCreateRequest,
    SaleItemResponse, SaleResponse, SaleStatus
)

logger = logging.getLogger(__name__)

INVOICE_DOCUMENT = "invoice"


def serialize_sale(sale: Sale, populate: bool = False) -> SaleResponse:
    """
    Build the API view of a sale. With populate=False every line carries a
    {"kind": "ref"} product; with populate=True the full product.
    """
    items = []
    for item in sale.items:
        if populate and item.product is not None:
            product = PopulatedProduct(
                id=item.product.id,
                name=item.product.name,
                sku=item.product.sku,
                barcode=item.product.barcode,
                unit=item.product.unit,
                price=item.product.price,
                selling_price=item.product.selling_price,
                cost_price=item.product.cost_price,
                tax_rate=item.product.tax_rate
            )
        else:
            product = ProductRef(id=item.product_id)

        items.append(SaleItemResponse(
            id=item.id,
            product=product,
            quantity=item.quantity,
            unit_price=item.unit_price,
            cost_price=item.cost_price,
            discount=item.discount,
            tax=item.tax,
            total=item.total,
            profit=item.profit
        ))

    return SaleResponse(
        id=sale.id,
        invoice_number=sale.invoice_number,
        items=items,
        subtotal=sale.subtotal,
        discount=sale.discount,
        tax=sale.tax,
        shipping=sale.shipping,
        total=sale.total,
        gross_profit=sale.gross_profit,
        net_profit=sale.net_profit,
        payment_method=sale.payment_method,
        payment_status=sale.payment_status,
        amount_paid=sale.amount_paid,
        change=sale.change,
        balance_due=sale.balance_due,
        sale_type=sale.sale_type,
        status=sale.status,
        notes=sale.notes,
        customer=_customer_summary(sale.customer),
        cashier=_user_summary(sale.cashier),
        refunded_by=_user_summary(sale.refunded_by),
        refunded_at=sale.refunded_at,
        refund_reason=sale.refund_reason,
        created_at=sale.created_at
    )


def _customer_summary(customer: Optional[Customer]) -> Optional[PartySummary]:
    if customer is None:
        return None
    return PartySummary(id=customer.id, name=customer.name, phone=customer.phone, email=customer.email)


def _user_summary(user: Optional[User]) -> Optional[PartySummary]:
    if user is None:
        return None
    return PartySummary(id=user.id, name=user.full_name, phone=user.phone, email=user.email)


class SalesService:
    """
    Sale lifecycle: checkout, lookup, refund, payment updates, cart quotes
    and daily stats
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = SalesRepository(db)
        self.products = ProductsRepository(db)
        self.customers = CustomersRepository(db)

    def _get_or_404(self, sale_id: int) -> Sale:
        sale = self.repository.get_by_id(sale_id)
        if not sale:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")
        return sale

    def _load_products(self, product_ids: List[int]) -> Dict[int, Product]:
        products = {p.id: p for p in self.products.get_many(list(set(product_ids)))}
        for product_id in product_ids:
            product = products.get(product_id)
            if product is None or not product.is_active:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Product {product_id} not found"
                )
        return products

    # ==================== CHECKOUT ====================

    async def create_sale(self, payload: SaleCreateRequest, cashier: User) -> dict:
        """
        Register a sale. Invoice number, sale rows, stock decrements, customer
        stats and the activity entry are committed together or not at all.
        A unique-constraint conflict on the invoice number retries the whole
        unit of work with a fresh number.
        """
        try:
            sale_id = run_with_retry(
                lambda: self._create_sale_once(payload, cashier),
                self.db,
                attempts=settings.sequence_retry_attempts
            )
        except IntegrityError:
            logger.error("Invoice number allocation kept conflicting, giving up")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Could not allocate an invoice number, please retry"
            )

        sale = self.repository.get_by_id(sale_id)
        return {
            "success": True,
            "message": "Sale created successfully",
            "data": serialize_sale(sale, populate=True)
        }

    def _create_sale_once(self, payload: SaleCreateRequest, cashier: User) -> int:
        try:
            products = self._load_products([item.product_id for item in payload.items])

            lines: List[LineAmounts] = []
            for item in payload.items:
                product = products[item.product_id]
                unit_price = to_money(item.unit_price if item.unit_price is not None else product.selling_price)
                tax = to_money(item.tax) if item.tax is not None else tax_from_rate(item.quantity, unit_price, product.tax_rate)
                line = LineAmounts(
                    quantity=item.quantity,
                    unit_price=unit_price,
                    discount=to_money(item.discount),
                    tax=tax,
                    cost_price=to_money(product.cost_price)
                )
                if line.total < 0:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Discount on {product.name} exceeds the line amount"
                    )
                lines.append(line)

            totals = compute_sale_totals(
                lines,
                discount=payload.discount,
                tax=payload.tax,
                shipping=payload.shipping,
                discount_type=payload.discount_type.value
            )
            if totals.total < 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Discount exceeds the sale amount"
                )

            amount_paid = to_money(payload.amount_paid) if payload.amount_paid is not None else totals.total

            customer = None
            if payload.customer_id:
                customer = self.customers.get_for_update(payload.customer_id)
                if not customer or not customer.is_active:
                    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")

            invoice_number = next_document_number(self.db, INVOICE_DOCUMENT, INVOICE_PREFIX)

            sale = Sale(
                invoice_number=invoice_number,
                customer_id=customer.id if customer else None,
                subtotal=totals.subtotal,
                discount=totals.discount,
                tax=totals.tax,
                shipping=totals.shipping,
                total=totals.total,
                gross_profit=totals.gross_profit,
                net_profit=totals.net_profit,
                payment_method=payload.payment_method.value,
                payment_status=payment_status_for(amount_paid, totals.total),
                amount_paid=amount_paid,
                change=compute_change(amount_paid, totals.total),
                sale_type=payload.sale_type.value,
                status=SaleStatus.COMPLETED.value,
                notes=payload.notes,
                cashier_id=cashier.id
            )
            for item, line in zip(payload.items, lines):
                sale.items.append(SaleItem(
                    product_id=item.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    cost_price=line.cost_price,
                    discount=line.discount,
                    tax=line.tax,
                    total=line.total,
                    profit=line.profit
                ))
            self.repository.add(sale)

            for item in payload.items:
                try:
                    self.products.take_stock(item.product_id, item.quantity)
                except InsufficientStock:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Insufficient stock for {products[item.product_id].name}"
                    )

            if customer:
                record_purchase(customer, totals.total, settings.customer_tier_thresholds)
                add_loyalty_points(customer, points_for(totals.total, settings.loyalty_points_rate))

            log_activity(
                self.db, cashier.id, "sale_created",
                f"Sale {invoice_number} for {totals.total}", "sale", sale.id
            )
            self.db.commit()
        except (HTTPException, SQLAlchemyError):
            self.db.rollback()
            raise

        logger.info(f"Sale {invoice_number} created by user {cashier.id}: total {totals.total}")
        return sale.id

    # ==================== QUERIES ====================

    async def list_sales(
        self,
        page: int = 1,
        limit: int = 10,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        payment_method: Optional[str] = None,
        payment_status: Optional[str] = None,
        sale_status: Optional[str] = None,
        customer_id: Optional[int] = None,
        populate: bool = False
    ) -> dict:
        query = self.repository.search_query(
            start_date, end_date, payment_method, payment_status, sale_status, customer_id
        )
        sales, pagination = paginate(query, page, limit)
        return {
            "success": True,
            "count": len(sales),
            "pagination": pagination,
            "data": [serialize_sale(s, populate) for s in sales]
        }

    async def get_sale(self, sale_id: int, populate: bool = True) -> dict:
        sale = self._get_or_404(sale_id)
        return {"success": True, "data": serialize_sale(sale, populate)}

    async def get_sale_by_invoice(self, invoice_number: str, populate: bool = True) -> dict:
        sale = self.repository.get_by_invoice_number(invoice_number)
        if not sale:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
        return {"success": True, "data": serialize_sale(sale, populate)}

    # ==================== REFUND ====================

    async def refund_sale(self, sale_id: int, payload: RefundRequest, user: User) -> dict:
        """
        Refund a completed sale: restore stock, reverse customer stats and
        earned points. A sale can only be refunded once.
        """
        sale = self._get_or_404(sale_id)
        if sale.status == SaleStatus.REFUNDED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale has already been refunded")
        if sale.status != SaleStatus.COMPLETED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only completed sales can be refunded")

        try:
            # Conditional transition so two concurrent refunds cannot both pass
            result = self.db.execute(
                update(Sale)
                .where(Sale.id == sale.id, Sale.status == SaleStatus.COMPLETED.value)
                .values(
                    status=SaleStatus.REFUNDED.value,
                    payment_status="refunded",
                    refunded_by_id=user.id,
                    refunded_at=datetime.now(),
                    refund_reason=payload.reason
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale has already been refunded")

            for item in sale.items:
                self.products.increment_stock(item.product_id, item.quantity)

            if sale.customer_id:
                customer = self.customers.get_for_update(sale.customer_id)
                if customer:
                    reverse_purchase(customer, Decimal(sale.total))
                    remove_loyalty_points(customer, points_for(Decimal(sale.total), settings.loyalty_points_rate))

            log_activity(
                self.db, user.id, "sale_refunded",
                f"Sale {sale.invoice_number} refunded: {payload.reason}", "sale", sale.id
            )
            self.db.commit()
        except (HTTPException, SQLAlchemyError):
            self.db.rollback()
            raise

        logger.info(f"Sale {sale.invoice_number} refunded by user {user.id}")
        sale = self._get_or_404(sale_id)
        return {
            "success": True,
            "message": "Sale refunded successfully",
            "data": serialize_sale(sale, populate=True)
        }

    # ==================== PAYMENT ====================

    async def update_payment(self, sale_id: int, payload: PaymentUpdateRequest) -> dict:
        sale = self._get_or_404(sale_id)
        if sale.status == SaleStatus.REFUNDED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot update payment of a refunded sale")
        if payload.amount_paid is None and payload.payment_status is None and payload.payment_method is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update")

        if payload.amount_paid is not None:
            sale.amount_paid = to_money(payload.amount_paid)
            sale.change = compute_change(sale.amount_paid, sale.total)
            sale.payment_status = payment_status_for(sale.amount_paid, sale.total)
        if payload.payment_status is not None:
            sale.payment_status = payload.payment_status.value
        if payload.payment_method is not None:
            sale.payment_method = payload.payment_method.value

        self.db.commit()
        sale = self._get_or_404(sale_id)
        return {
            "success": True,
            "message": "Payment updated successfully",
            "data": serialize_sale(sale, populate=False)
        }

    # ==================== CART QUOTE & RETURNS ====================

    def _return_line(self, sale_item: SaleItem, quantity: Optional[int]) -> CartLine:
        cart = Cart()
        try:
            return cart.add_return(
                product_id=sale_item.product_id,
                name=sale_item.product.name if sale_item.product else f"Product {sale_item.product_id}",
                sold_quantity=sale_item.quantity,
                unit_price=sale_item.unit_price,
                return_quantity=quantity,
                source_sale_item_id=sale_item.id,
                sold_discount=sale_item.discount,
                sold_tax=sale_item.tax
            )
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    async def quote(self, payload: QuoteRequest) -> dict:
        """
        Price a POS cart without persisting it. Return lines (negative
        quantities) reduce the total; a negative total means money goes back
        to the customer.
        """
        products = self._load_products([line.product_id for line in payload.items])
        cart = Cart()

        for line in payload.items:
            product = products[line.product_id]
            if line.quantity > 0:
                unit_price = line.unit_price if line.unit_price is not None else product.selling_price
                tax = line.tax if line.tax is not None else tax_from_rate(line.quantity, unit_price, product.tax_rate)
                cart.add_item(product.id, product.name, line.quantity, unit_price, line.discount, tax)
                continue

            if line.source_sale_item_id:
                sale_item = self.db.query(SaleItem).filter(SaleItem.id == line.source_sale_item_id).first()
                if not sale_item or sale_item.product_id != product.id:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Returned line does not match a sold item")
                if sale_item.sale.status == SaleStatus.REFUNDED.value:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale has already been refunded")
                cart.lines.append(self._return_line(sale_item, abs(line.quantity)))
            else:
                unit_price = line.unit_price if line.unit_price is not None else product.selling_price
                cart.add_return(product.id, product.name, abs(line.quantity), unit_price)

        totals = cart.totals(payload.discount, payload.tax, payload.shipping, payload.discount_type.value)
        settlement = settlement_direction(totals.total)

        change = balance_due = None
        if payload.amount_paid is not None and settlement == "collect":
            change = compute_change(payload.amount_paid, totals.total)
            balance_due = compute_balance_due(payload.amount_paid, totals.total)

        quote = QuoteResponse(
            lines=[_quote_line(l) for l in cart.lines],
            purchase_subtotal=cart.purchase_subtotal,
            return_subtotal=cart.return_subtotal,
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            shipping=totals.shipping,
            total=totals.total,
            settlement=settlement,
            amount_due=abs(totals.total),
            change=change,
            balance_due=balance_due
        )
        return {"success": True, "data": quote}

    async def build_return_lines(self, sale_id: int, payload: ReturnLinesRequest) -> dict:
        """Negative-quantity cart lines for items of a previous invoice"""
        sale = self._get_or_404(sale_id)
        if sale.status == SaleStatus.REFUNDED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale has already been refunded")

        items_by_id = {item.id: item for item in sale.items}
        if payload.items:
            duplicates = [k for k, n in Counter(s.sale_item_id for s in payload.items).items() if n > 1]
            if duplicates:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Line {duplicates[0]} selected twice")
            selections = []
            for selection in payload.items:
                if selection.sale_item_id not in items_by_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Line {selection.sale_item_id} is not part of invoice {sale.invoice_number}"
                    )
                selections.append((items_by_id[selection.sale_item_id], selection.quantity))
        else:
            selections = [(item, None) for item in sale.items]

        lines = [self._return_line(item, quantity) for item, quantity in selections]
        return_total = to_money(sum((abs(l.total) for l in lines), ZERO))
        return {
            "success": True,
            "data": {
                "sale_id": sale.id,
                "invoice_number": sale.invoice_number,
                "lines": [_quote_line(l) for l in lines],
                "return_total": return_total
            }
        }

    # ==================== STATS ====================

    async def get_stats_overview(self, day: Optional[date] = None) -> dict:
        """Completed sales of the day, with a payment method breakdown"""
        day = day or date.today()
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)

        sales = self.repository.completed_between(start, end)
        total_sales = to_money(sum((Decimal(s.total) for s in sales), ZERO))
        total_orders = len(sales)
        average = to_money(total_sales / total_orders) if total_orders else ZERO

        return {
            "success": True,
            "data": {
                "date": day.isoformat(),
                "today_sales": float(total_sales),
                "today_orders": total_orders,
                "average_order_value": float(average),
                "today_profit": float(to_money(sum((Decimal(s.net_profit) for s in sales), ZERO))),
                "payment_methods": {
                    method: {"total": float(to_money(values["total"])), "count": values["count"]}
                    for method, values in self.repository.totals_by_payment_method(start, end).items()
                }
            }
        }


def _quote_line(line: CartLine) -> QuoteLineResponse:
    return QuoteLineResponse(
        product_id=line.product_id,
        name=line.name,
        quantity=line.quantity,
        unit_price=line.unit_price,
        discount=line.discount,
        tax=line.tax,
        total=line.total,
        is_return=line.is_return,
        source_sale_item_id=line.source_sale_item_id
    )
