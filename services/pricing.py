"""
Pricing engine - line snapshots, carts, order/budget totals and the price simulator.

Everything here is pure: no session, no I/O. Repositories hand in a
CatalogSnapshot and persist what comes back out.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from services.exceptions import (
    InsufficientStock,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PRODUCT = 'product'
SERVICE = 'service'
ITEM_TYPES = (PRODUCT, SERVICE)

# Cart lifecycle
CART_EMPTY = 'empty'
CART_BUILDING = 'building'
CART_COMMITTED = 'committed'
CART_DISCARDED = 'discarded'

MAX_SIMULATED_MARGIN = 99


def _coerce_quantity(value) -> int:
    """Accept ints, integral floats and digit strings; anything else is invalid."""
    if isinstance(value, bool):
        raise ValidationError("Quantidade inválida", field='quantity')
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError("Quantidade deve ser um inteiro maior ou igual a 1", field='quantity')
    return value


def _coerce_amount(value, field_name: str) -> float:
    if value in (None, ''):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Valor inválido para {field_name}", field=field_name)


def _check_type(item_type: str) -> str:
    if item_type not in ITEM_TYPES:
        raise ValidationError(f"Tipo de item inválido: {item_type}", field='type')
    return item_type


@dataclass(frozen=True)
class CatalogRef:
    """Point-in-time view of a product or service as the pricing engine needs it."""
    id: str
    name: str
    type: str
    price: float
    stock: Optional[int] = None  # None for services


@dataclass(frozen=True)
class OrderItem:
    """
    Immutable line snapshot. Name and unit price are captured once and never
    re-read from the catalog, so later price changes leave it untouched.
    """
    item_id: str
    name: str
    type: str
    quantity: int
    unit_price: float

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price

    @classmethod
    def snapshot(cls, ref: CatalogRef, quantity,
                 priced_as: Optional['OrderItem'] = None) -> 'OrderItem':
        """
        Capture ``ref`` at ``quantity``. ``priced_as`` is an earlier snapshot of
        the same entry whose name and unit price are carried over instead of
        the current catalog values.
        """
        source = priced_as or ref
        return cls(
            item_id=ref.id,
            name=source.name,
            type=ref.type,
            quantity=_coerce_quantity(quantity),
            unit_price=float((priced_as.unit_price if priced_as else ref.price) or 0),
        )

    def to_dict(self) -> Dict:
        return {
            'item_id': self.item_id,
            'name': self.name,
            'type': self.type,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'total': self.total,
        }


class CatalogSnapshot:
    """Read-only lookup of products and services by id."""

    def __init__(self, products: Iterable[CatalogRef] = (), services: Iterable[CatalogRef] = ()):
        self._refs = {PRODUCT: {}, SERVICE: {}}
        for ref in products:
            self._refs[PRODUCT][ref.id] = ref
        for ref in services:
            self._refs[SERVICE][ref.id] = ref

    @classmethod
    def from_dicts(cls, products: Iterable[Dict] = (), services: Iterable[Dict] = ()):
        return cls(
            products=[CatalogRef(p['id'], p['name'], PRODUCT, float(p.get('price') or 0),
                                 int(p.get('stock') or 0)) for p in products],
            services=[CatalogRef(s['id'], s['name'], SERVICE, float(s.get('price') or 0))
                      for s in services],
        )

    def lookup(self, item_id: str, item_type: str) -> CatalogRef:
        ref = self._refs[_check_type(item_type)].get(item_id)
        if ref is None:
            entity = 'Product' if item_type == PRODUCT else 'Service'
            raise NotFoundError(entity, item_id)
        return ref


@dataclass(frozen=True)
class Adjustments:
    """Discount and surcharge inputs of an order."""
    discount_value: float = 0.0
    discount_percent: float = 0.0
    surcharge_value: float = 0.0
    surcharge_percent: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> 'Adjustments':
        data = data or {}
        return cls(**{name: _coerce_amount(data.get(name), name)
                      for name in ('discount_value', 'discount_percent',
                                   'surcharge_value', 'surcharge_percent')})


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    discount_total: float
    surcharge_total: float
    total: float

    def to_dict(self) -> Dict:
        return {
            'subtotal': round(self.subtotal, 2),
            'discount_total': round(self.discount_total, 2),
            'surcharge_total': round(self.surcharge_total, 2),
            'total': round(self.total, 2),
        }


def subtotal_of(items: Iterable[OrderItem]) -> float:
    return sum(item.total for item in items)


def compute_totals(items: Iterable[OrderItem], discount_value: float = 0,
                   discount_percent: float = 0, surcharge_value: float = 0,
                   surcharge_percent: float = 0) -> OrderTotals:
    """
    Order totals. The result is not clamped: a discount larger than the
    subtotal yields a negative total.
    """
    subtotal = subtotal_of(items)
    discount_total = discount_value + subtotal * discount_percent / 100
    surcharge_total = surcharge_value + subtotal * surcharge_percent / 100
    return OrderTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        surcharge_total=surcharge_total,
        total=subtotal - discount_total + surcharge_total,
    )


def budget_total(items: Iterable[OrderItem], discount: float = 0) -> float:
    """Budget total: a single flat discount, never below zero."""
    return max(0.0, subtotal_of(items) - (discount or 0))


def quantities_by_product(items: Iterable[OrderItem]) -> Dict[str, int]:
    """Aggregate product quantities per id (services are ignored)."""
    totals: Dict[str, int] = {}
    for item in items:
        if item.type == PRODUCT:
            totals[item.item_id] = totals.get(item.item_id, 0) + item.quantity
    return totals


@dataclass
class Cart:
    """
    Transient list of line snapshots being assembled into an order or budget.

    empty -> building (add/remove) -> committed | discarded. Once committed
    or discarded the cart refuses every change.
    """
    items: List[OrderItem] = field(default_factory=list)
    _closed: Optional[str] = None

    @property
    def state(self) -> str:
        if self._closed:
            return self._closed
        return CART_BUILDING if self.items else CART_EMPTY

    @property
    def is_open(self) -> bool:
        return self._closed is None

    def _ensure_open(self, target: str):
        if not self.is_open:
            raise InvalidTransitionError('cart', self.state, target)

    def quantity_in_cart(self, item_id: str) -> int:
        return sum(item.quantity for item in self.items if item.item_id == item_id)

    def add_item(self, catalog: CatalogSnapshot, item_id: str, item_type: str,
                 quantity, priced_as: Optional[OrderItem] = None) -> OrderItem:
        """
        Append a snapshot of a catalog entry. Products are checked against
        stock counting what is already in the cart; the catalog itself is
        never modified here. ``priced_as`` keeps the name and price of an
        earlier snapshot of the same entry.
        """
        self._ensure_open(CART_BUILDING)
        quantity = _coerce_quantity(quantity)
        ref = catalog.lookup(item_id, item_type)

        if ref.type == PRODUCT:
            already_in_cart = self.quantity_in_cart(ref.id)
            if quantity + already_in_cart > (ref.stock or 0):
                logger.warning(
                    f"Rejected cart add for {ref.id}: stock={ref.stock}, "
                    f"in_cart={already_in_cart}, requested={quantity}"
                )
                raise InsufficientStock(ref.id, ref.name, ref.stock or 0, quantity,
                                        in_cart=already_in_cart)

        item = OrderItem.snapshot(ref, quantity, priced_as=priced_as)
        self.items.append(item)
        return item

    def remove_item(self, index: int) -> Optional[OrderItem]:
        """Remove the line at ``index``; out-of-range indexes are ignored."""
        self._ensure_open(CART_BUILDING)
        if not isinstance(index, int) or index < 0 or index >= len(self.items):
            return None
        return self.items.pop(index)

    def totals(self, adjustments: Optional[Adjustments] = None) -> OrderTotals:
        adj = adjustments or Adjustments()
        return compute_totals(self.items, adj.discount_value, adj.discount_percent,
                              adj.surcharge_value, adj.surcharge_percent)

    def product_quantities(self) -> Dict[str, int]:
        return quantities_by_product(self.items)

    def mark_committed(self):
        self._ensure_open(CART_COMMITTED)
        if not self.items:
            raise ValidationError("Adicione ao menos um item ao pedido", field='items')
        self._closed = CART_COMMITTED

    def discard(self):
        self._ensure_open(CART_DISCARDED)
        self._closed = CART_DISCARDED


def build_cart(catalog: CatalogSnapshot, lines: Iterable[Dict]) -> Cart:
    """Replay a list of ``{item_id, type, quantity}`` lines into a new cart."""
    cart = Cart()
    for line in lines or []:
        if not isinstance(line, dict):
            raise ValidationError("Item inválido", field='items')
        cart.add_item(catalog, line.get('item_id'), line.get('type'), line.get('quantity'))
    return cart


# =============================================================================
# PRICE SIMULATOR
# =============================================================================

@dataclass(frozen=True)
class PriceSimulation:
    current_cost: float
    current_price: float
    simulated_cost: float
    simulated_price: float
    profit: float
    margin: float

    def to_dict(self) -> Dict:
        return {
            'current_cost': self.current_cost,
            'current_price': self.current_price,
            'simulated_cost': round(self.simulated_cost, 2),
            'simulated_price': round(self.simulated_price, 2),
            'profit': round(self.profit, 2),
            'margin': self.margin,
        }


def margin_of(price: float, cost: float) -> float:
    """Gross margin as a fraction of price; 0 when there is no price."""
    if not price or price <= 0:
        return 0.0
    return (price - (cost or 0)) / price


def simulate_price(cost: float, margin: float, cost_increase: float = 0,
                   current_price: float = 0) -> PriceSimulation:
    """
    Price needed to keep ``margin`` percent after the cost rises by
    ``cost_increase`` percent. Margin is capped at 99%.
    """
    cost = _coerce_amount(cost, 'cost')
    margin = _coerce_amount(margin, 'margin')
    cost_increase = _coerce_amount(cost_increase, 'cost_increase')
    if cost < 0:
        raise ValidationError("Custo não pode ser negativo", field='cost')

    simulated_cost = cost * (1 + cost_increase / 100)
    applied_margin = min(margin, MAX_SIMULATED_MARGIN)
    simulated_price = simulated_cost / (1 - applied_margin / 100)
    return PriceSimulation(
        current_cost=cost,
        current_price=_coerce_amount(current_price, 'current_price'),
        simulated_cost=simulated_cost,
        simulated_price=simulated_price,
        profit=simulated_price - simulated_cost,
        margin=applied_margin,
    )


def price_history_entry(price: float, when: Optional[datetime] = None) -> Dict:
    return {'date': (when or datetime.utcnow()).isoformat(), 'price': price}
