"""
Budget Service - quotes/proposals and their lifecycle.

draft <-> sent -> approved -> converted. Draft and sent budgets can be
rejected, and a rejected one can be reopened as draft or approved directly.
Approval generates the sale: an order for the matching (or a new) customer
and the stock decrement, inside a savepoint of the caller's transaction.
Approved and converted budgets are read-only.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from database.models import Budget, BudgetItemRow
from services.catalog_repository import CatalogRepository
from services.crm_repository import CRMRepository
from services.exceptions import (
    BudgetLockedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from services.order_service import OrderService
from services.pricing import Adjustments, Cart, OrderItem, budget_total
from validators import parse_date, require_valid, validate_budget_request

logger = logging.getLogger(__name__)

BUDGET_STATUSES = ('draft', 'sent', 'approved', 'rejected', 'converted')
LOCKED_STATUSES = ('approved', 'converted')
INITIAL_STATUSES = ('draft', 'sent')

BUDGET_TRANSITIONS = {
    'draft': {'sent', 'approved', 'rejected'},
    'sent': {'draft', 'approved', 'rejected'},
    'rejected': {'draft', 'approved'},
    'approved': {'converted'},
    'converted': set(),
}

EDITABLE_FIELDS = ['customer_name', 'customer_email', 'customer_phone', 'customer_address',
                   'notes', 'payment_method', 'payment_terms', 'warranty_notes',
                   'responsible', 'signature']

DEFAULT_VALIDITY_DAYS = 7


def can_transition(current: str, target: str) -> bool:
    return target in BUDGET_TRANSITIONS.get(current, set())


class BudgetService:
    """Budget CRUD, approval and conversion."""

    def __init__(self, session: Session, organization_id: str,
                 validity_days: int = DEFAULT_VALIDITY_DAYS):
        self.session = session
        self.organization_id = organization_id
        self.validity_days = validity_days
        self.catalog = CatalogRepository(session, organization_id)
        self.customers = CRMRepository(session, organization_id)
        self.orders = OrderService(session, organization_id)

    def _query(self):
        return self.session.query(Budget).filter(Budget.organization_id == self.organization_id)

    def _get(self, budget_id: str) -> Budget:
        budget = self._query().filter(Budget.id == budget_id).first()
        if not budget:
            raise NotFoundError('Budget', budget_id)
        return budget

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_budgets(self, status: str = None, search: str = None) -> List[Dict]:
        query = self._query()
        if status and status != 'all':
            query = query.filter(Budget.status == status)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Budget.customer_name.ilike(term), Budget.id.ilike(term)))
        budgets = query.order_by(Budget.date.desc(), Budget.created_at.desc()).all()
        return [b.to_dict() for b in budgets]

    def get_budget(self, budget_id: str) -> Optional[Dict]:
        budget = self._query().filter(Budget.id == budget_id).first()
        return budget.to_dict() if budget else None

    # =========================================================================
    # ITEMS
    # =========================================================================

    def resolve_items(self, raw_items: Optional[List[Dict]],
                      stored: Optional[List[OrderItem]] = None) -> List[OrderItem]:
        """
        Turn request lines into snapshots against the live catalog.

        Every line must name an existing catalog entry, and product lines are
        stock-checked together with everything listed before them. Names and
        prices never come from the request: a line echoing an existing one
        (it carries a ``unit_price``) keeps the price stored on the budget,
        matched by item id and type; bare ``{item_id, type, quantity}`` lines
        are priced from the catalog now.
        """
        kept = {(item.item_id, item.type): item for item in stored or []}
        catalog = self.catalog.snapshot()
        cart = Cart()
        for raw in raw_items or []:
            if not isinstance(raw, dict):
                raise ValidationError("Item inválido", field='items')
            priced_as = None
            if raw.get('unit_price') is not None:
                priced_as = kept.get((raw.get('item_id'), raw.get('type')))
            cart.add_item(catalog, raw.get('item_id'), raw.get('type'), raw.get('quantity'),
                          priced_as=priced_as)
        return list(cart.items)

    def _replace_items(self, budget: Budget, items: List[OrderItem]):
        budget.items.clear()
        for position, item in enumerate(items):
            budget.items.append(BudgetItemRow(
                item_id=item.item_id,
                name=item.name,
                type=item.type,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
                position=position,
            ))

    @staticmethod
    def _snapshots(budget: Budget) -> List[OrderItem]:
        return [OrderItem(row.item_id, row.name, row.type, row.quantity, row.unit_price)
                for row in budget.items]

    def _recompute_total(self, budget: Budget):
        budget.total_value = budget_total(self._snapshots(budget), budget.discount or 0)

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_budget(self, data: Dict) -> Dict:
        require_valid(validate_budget_request(data))
        status = data.get('status') or 'draft'
        if status not in INITIAL_STATUSES:
            raise ValidationError(f"Orçamento novo não pode iniciar como '{status}'", field='status')

        budget_date = parse_date(data.get('date'), required=False) or date.today()
        validity = parse_date(data.get('validity_date'), required=False, field='validity_date')
        customer = self.customers.find_customer(data.get('customer_id'))

        budget = Budget(
            organization_id=self.organization_id,
            customer_id=customer.id if customer else None,
            date=budget_date,
            validity_date=validity or budget_date + timedelta(days=self.validity_days),
            status=status,
            discount=float(data.get('discount') or 0),
        )
        for key in EDITABLE_FIELDS:
            if key in data:
                setattr(budget, key, data[key])
        self._replace_items(budget, self.resolve_items(data.get('items')))
        self._recompute_total(budget)

        self.session.add(budget)
        self.session.flush()
        logger.info(f"Created budget: {budget.id} (total={budget.total_value})")
        return budget.to_dict()

    def update_budget(self, budget_id: str, data: Dict) -> Dict:
        """Edit a budget that is not yet approved or converted."""
        require_valid(validate_budget_request(data, partial=True))
        budget = self._get(budget_id)
        if budget.status in LOCKED_STATUSES:
            raise BudgetLockedError(
                f"Orçamento {budget.status} não pode ser alterado", field='status'
            )

        for key in EDITABLE_FIELDS:
            if key in data:
                setattr(budget, key, data[key])
        if 'customer_id' in data:
            customer = self.customers.find_customer(data['customer_id'])
            budget.customer_id = customer.id if customer else None
        if 'date' in data:
            budget.date = parse_date(data['date'])
        if 'validity_date' in data:
            budget.validity_date = parse_date(data['validity_date'], required=False,
                                              field='validity_date')
        if 'discount' in data:
            budget.discount = float(data['discount'] or 0)
        if 'items' in data:
            self._replace_items(budget, self.resolve_items(data['items'], self._snapshots(budget)))
        self._recompute_total(budget)

        budget.updated_at = datetime.utcnow()
        self.session.flush()

        if data.get('status') and data['status'] != budget.status:
            return self.change_status(budget_id, data['status'])

        logger.info(f"Updated budget: {budget_id}")
        return budget.to_dict()

    def delete_budget(self, budget_id: str) -> bool:
        budget = self._query().filter(Budget.id == budget_id).first()
        if not budget:
            return False
        if budget.status in LOCKED_STATUSES:
            raise BudgetLockedError(
                f"Orçamento {budget.status} não pode ser excluído", field='status'
            )
        self.session.delete(budget)
        self.session.flush()
        logger.info(f"Deleted budget: {budget_id}")
        return True

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def change_status(self, budget_id: str, status: str) -> Dict:
        """Move a budget along its lifecycle; approval and conversion have side effects."""
        if status not in BUDGET_STATUSES:
            raise ValidationError(f"Status inválido: {status}", field='status')
        if status == 'approved':
            return self.approve(budget_id)
        if status == 'converted':
            return self.convert(budget_id)

        budget = self._get(budget_id)
        if budget.status == status:
            return budget.to_dict()
        if not can_transition(budget.status, status):
            raise InvalidTransitionError('budget', budget.status, status)
        budget.status = status
        budget.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Budget {budget_id} status -> {status}")
        return budget.to_dict()

    def approve(self, budget_id: str) -> Dict:
        """
        Approve a budget and generate its sale.

        Approving an approved or converted budget is a no-op. The status flip
        is a conditional UPDATE, so of two concurrent approvals only one
        generates an order. The status flip, the customer upsert, the order
        and the stock decrements run inside one SAVEPOINT: if any of them
        fails the budget is back to its previous status whatever the caller
        does with its own transaction.
        """
        budget = self._get(budget_id)
        if budget.status in LOCKED_STATUSES:
            logger.info(f"Budget {budget_id} already {budget.status}; approval ignored")
            return budget.to_dict()
        if not can_transition(budget.status, 'approved'):
            raise InvalidTransitionError('budget', budget.status, 'approved')
        items = self._snapshots(budget)
        if not items:
            raise ValidationError("Orçamento sem itens não pode ser aprovado", field='items')
        self.session.flush()

        try:
            with self.session.begin_nested():
                order = self._generate_sale(budget, items)
        except Exception:
            # objects loaded inside the savepoint still hold its values
            self.session.expire_all()
            logger.warning(f"Approval of budget {budget_id} rolled back")
            raise

        if order is None:
            logger.info(f"Budget {budget_id} approved concurrently; approval ignored")
            self.session.refresh(budget)
            return budget.to_dict()

        logger.info(f"Approved budget {budget_id} -> order {order.id}")
        return budget.to_dict()

    def _generate_sale(self, budget: Budget, items: List[OrderItem]):
        """Claim the budget and write its order; None when another approval won the claim."""
        claimed = self._query().filter(
            Budget.id == budget.id,
            Budget.status.notin_(LOCKED_STATUSES)
        ).update(
            {Budget.status: 'approved', Budget.updated_at: datetime.utcnow()},
            synchronize_session='fetch'
        )
        if claimed == 0:
            return None

        customer = self.customers.find_customer(budget.customer_id, budget.customer_name)
        if customer is None:
            customer = self.customers.create_customer_model({
                'name': budget.customer_name,
                'email': '',
                'phone': '',
            })
            logger.info(f"Created customer {customer.id} from budget {budget.id}")

        order = self.orders.commit(
            Cart(items=items),
            customer=customer,
            adjustments=Adjustments(discount_value=budget.discount or 0),
            notes=f"Gerado a partir do orçamento #{budget.id}",
            budget_id=budget.id,
            total_value=budget.total_value,
        )

        budget.customer_id = customer.id
        budget.order_id = order.id
        self.session.flush()
        return order

    def convert(self, budget_id: str) -> Dict:
        """Mark an approved budget as converted (its order exists since approval)."""
        budget = self._get(budget_id)
        if budget.status == 'converted':
            return budget.to_dict()
        if not can_transition(budget.status, 'converted'):
            raise InvalidTransitionError('budget', budget.status, 'converted')
        budget.status = 'converted'
        budget.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Converted budget {budget_id}")
        return budget.to_dict()
