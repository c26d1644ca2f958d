"""
Order Service - turns carts into persisted orders.

Commit re-validates stock against the database and decrements it with
conditional updates; every write happens in the caller's session, so
``get_db_session()`` either commits the whole order or nothing.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from database.models import Customer, Order, OrderItemRow
from services.catalog_repository import CatalogRepository
from services.crm_repository import CRMRepository
from services.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from services.pricing import Adjustments, Cart, build_cart
from validators import parse_date

logger = logging.getLogger(__name__)

ORDER_STATUSES = ('pending', 'completed', 'canceled')


class OrderService:
    """Checkout and order history."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id
        self.catalog = CatalogRepository(session, organization_id)
        self.customers = CRMRepository(session, organization_id)

    def _query(self):
        return self.session.query(Order).filter(Order.organization_id == self.organization_id)

    def preview(self, lines: Iterable[Dict], adjustments: Optional[Dict] = None) -> Dict:
        """Totals for a prospective order without touching stock."""
        cart = build_cart(self.catalog.snapshot(), lines)
        totals = cart.totals(Adjustments.from_dict(adjustments))
        return {
            'items': [item.to_dict() for item in cart.items],
            'totals': totals.to_dict(),
        }

    def checkout(self, data: Dict) -> Dict:
        """
        Build a cart from ``data['items']`` against the live catalog and commit it.

        Expected payload: customer_id, items [{item_id, type, quantity}],
        optional discount/surcharge fields, notes and date.
        """
        customer_id = data.get('customer_id')
        if not customer_id:
            raise ValidationError("Selecione um cliente", field='customer_id')
        cart = build_cart(self.catalog.snapshot(), data.get('items'))
        order = self.commit(
            cart,
            customer_id=customer_id,
            adjustments=Adjustments.from_dict(data),
            notes=data.get('notes'),
            order_date=parse_date(data.get('date'), required=False),
        )
        return order.to_dict()

    def commit(self, cart: Cart, customer_id: str = None, customer: Customer = None,
               adjustments: Optional[Adjustments] = None, notes: str = None,
               order_date: Optional[date] = None, budget_id: str = None,
               total_value: Optional[float] = None) -> Order:
        """
        Persist ``cart`` as a completed order and take its products out of stock.

        Stock is checked again here because the catalog may have moved since
        the items were added; the decrement itself is a conditional update.
        Any failure raises before the cart is marked committed, and the
        surrounding transaction rolls back.
        """
        if not cart.is_open:
            raise InvalidTransitionError('cart', cart.state, 'committed')
        if not cart.items:
            raise ValidationError("Adicione ao menos um item ao pedido", field='items')

        if customer is None and customer_id:
            customer = self.customers.get_customer_model(customer_id)
            if customer is None:
                raise NotFoundError('Customer', customer_id)

        quantities = cart.product_quantities()
        self.catalog.check_stock(quantities)
        for product_id, quantity in quantities.items():
            self.catalog.decrement_stock(product_id, quantity)

        adjustments = adjustments or Adjustments()
        totals = cart.totals(adjustments)
        order = Order(
            organization_id=self.organization_id,
            customer=customer,
            budget_id=budget_id,
            date=order_date or date.today(),
            status='completed',
            subtotal=totals.subtotal,
            discount_value=adjustments.discount_value,
            discount_percent=adjustments.discount_percent,
            surcharge_value=adjustments.surcharge_value,
            surcharge_percent=adjustments.surcharge_percent,
            total_value=totals.total if total_value is None else total_value,
            notes=notes,
        )
        for position, item in enumerate(cart.items):
            order.items.append(OrderItemRow(
                item_id=item.item_id,
                name=item.name,
                type=item.type,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                position=position,
            ))
        self.session.add(order)
        self.session.flush()
        cart.mark_committed()
        logger.info(f"Created order {order.id} ({len(cart.items)} items, total={order.total_value})")
        return order

    def list_orders(self, customer_id: str = None, status: str = None) -> List[Dict]:
        query = self._query()
        if customer_id:
            query = query.filter(Order.customer_id == customer_id)
        if status:
            query = query.filter(Order.status == status)
        orders = query.order_by(Order.date.desc(), Order.created_at.desc()).all()
        return [o.to_dict() for o in orders]

    def get_order(self, order_id: str) -> Optional[Dict]:
        order = self._query().filter(Order.id == order_id).first()
        return order.to_dict() if order else None

    def update_status(self, order_id: str, status: str) -> Dict:
        """Only the status of an order may change. Canceling does not restock."""
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Status inválido: {status}", field='status')
        order = self._query().filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError('Order', order_id)
        order.status = status
        order.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Order {order_id} status -> {status}")
        return order.to_dict()
