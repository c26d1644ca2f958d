"""
Dashboard - read-only aggregates over the catalog, sales, agenda and expenses.

Every function here is a pure fold over ``to_dict()`` payloads; the
``build_dashboard`` entry point loads them once per request.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from services.appointment_repository import AppointmentRepository
from services.catalog_repository import CatalogRepository
from services.expense_repository import ExpenseRepository
from services.order_service import OrderService
from services.pricing import margin_of

logger = logging.getLogger(__name__)

SHORT_MONTHS = ['jan', 'fev', 'mar', 'abr', 'mai', 'jun',
                'jul', 'ago', 'set', 'out', 'nov', 'dez']

LOW_MARGIN_PRODUCT = 0.2
LOW_MARGIN_SERVICE = 0.3

# (revenue factor, profit factor) for the two projected months
PROJECTION_FACTORS = [(0.15, 0.05), (0.18, 0.06)]

TRAILING_MONTHS = 6


def _as_date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _shift_month(anchor: date, months: int) -> date:
    """First day of the month ``months`` away from ``anchor``."""
    index = anchor.year * 12 + (anchor.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _same_month(value, anchor: date) -> bool:
    day = _as_date(value)
    return day is not None and day.year == anchor.year and day.month == anchor.month


def month_label(anchor: date) -> str:
    return SHORT_MONTHS[anchor.month - 1]


# =============================================================================
# CATALOG
# =============================================================================

def inventory_metrics(products: List[Dict], services: List[Dict],
                      low_margin_product: float = LOW_MARGIN_PRODUCT,
                      low_margin_service: float = LOW_MARGIN_SERVICE) -> Dict:
    stock_value = sum((p.get('cost') or 0) * (p.get('stock') or 0) for p in products)
    potential_sales = sum((p.get('price') or 0) * (p.get('stock') or 0) for p in products)

    priced_products = [p for p in products if (p.get('price') or 0) > 0]
    active_services = [s for s in services if s.get('active', True)]
    priced_services = [s for s in active_services if (s.get('price') or 0) > 0]

    def average_margin(items):
        if not items:
            return 0.0
        return sum(margin_of(i['price'], i.get('cost')) for i in items) / len(items) * 100

    return {
        'total_stock_value': round(stock_value, 2),
        'potential_sales': round(potential_sales, 2),
        'potential_profit': round(potential_sales - stock_value, 2),
        'avg_product_margin': round(average_margin(priced_products), 2),
        'avg_service_margin': round(average_margin(priced_services), 2),
        'low_stock': [p for p in products if (p.get('stock') or 0) <= (p.get('min_stock') or 0)],
        'low_margin_products': [
            p for p in priced_products
            if margin_of(p['price'], p.get('cost')) < low_margin_product
        ],
        'low_margin_services': [
            s for s in priced_services
            if margin_of(s['price'], s.get('cost')) < low_margin_service
        ],
        'product_count': len(products),
        'active_service_count': len(active_services),
    }


def category_distribution(products: List[Dict], services: List[Dict]) -> Dict:
    """Products weighted by price x stock, active services by count."""
    product_totals: Dict[str, float] = {}
    for product in products:
        category = product.get('category') or 'Sem categoria'
        value = (product.get('price') or 0) * (product.get('stock') or 0)
        product_totals[category] = product_totals.get(category, 0) + value

    service_counts: Dict[str, int] = {}
    for service in services:
        if not service.get('active', True):
            continue
        category = service.get('category') or 'Sem categoria'
        service_counts[category] = service_counts.get(category, 0) + 1

    return {
        'products': [{'name': k, 'value': round(v, 2)} for k, v in product_totals.items()],
        'services': [{'name': k, 'value': v} for k, v in service_counts.items()],
    }


def top_products(products: List[Dict], limit: int = 5) -> List[Dict]:
    ranked = sorted(products, key=lambda p: (p.get('price') or 0) * (p.get('stock') or 0),
                    reverse=True)
    return [{
        'name': p.get('name'),
        'category': p.get('category'),
        'value': round((p.get('price') or 0) * (p.get('stock') or 0), 2),
    } for p in ranked[:limit]]


def top_services(services: List[Dict], limit: int = 5) -> List[Dict]:
    active = [s for s in services if s.get('active', True)]
    ranked = sorted(active, key=lambda s: s.get('price') or 0, reverse=True)
    return [{'name': s.get('name'), 'category': s.get('category'), 'value': s.get('price') or 0}
            for s in ranked[:limit]]


# =============================================================================
# FINANCE
# =============================================================================

def financial_metrics(orders: List[Dict], expenses: List[Dict], today: date) -> Dict:
    revenue = sum(o.get('total_value') or 0 for o in orders)
    total_expenses = sum(e.get('amount') or 0 for e in expenses)
    month_expenses = sum(e.get('amount') or 0 for e in expenses if _same_month(e.get('date'), today))
    return {
        'realized_revenue': round(revenue, 2),
        'order_count': len(orders),
        'total_expenses': round(total_expenses, 2),
        'expenses_this_month': round(month_expenses, 2),
        'net_profit': round(revenue - total_expenses, 2),
    }


def monthly_series(orders: List[Dict], expenses: List[Dict], today: date) -> List[Dict]:
    """
    Six trailing months (current included) of revenue, expenses and profit,
    followed by two projected months derived from total realized revenue.
    """
    series = []
    for offset in range(TRAILING_MONTHS - 1, -1, -1):
        anchor = _shift_month(today, -offset)
        revenue = sum(o.get('total_value') or 0 for o in orders if _same_month(o.get('date'), anchor))
        spent = sum(e.get('amount') or 0 for e in expenses if _same_month(e.get('date'), anchor))
        series.append({
            'name': month_label(anchor),
            'year': anchor.year,
            'month': anchor.month,
            'revenue': round(revenue, 2),
            'expenses': round(spent, 2),
            'profit': round(revenue - spent, 2),
            'real': True,
        })

    realized = sum(o.get('total_value') or 0 for o in orders)
    for offset, (revenue_factor, profit_factor) in enumerate(PROJECTION_FACTORS, start=1):
        anchor = _shift_month(today, offset)
        series.append({
            'name': month_label(anchor),
            'year': anchor.year,
            'month': anchor.month,
            'revenue': round(realized * revenue_factor, 2),
            'expenses': 0,
            'profit': round(realized * profit_factor, 2),
            'real': False,
        })
    return series


# =============================================================================
# AGENDA
# =============================================================================

def appointment_metrics(appointments: List[Dict], today: date) -> Dict:
    return {
        'pending': sum(1 for a in appointments if a.get('status') == 'pending'),
        'canceled': sum(1 for a in appointments if a.get('status') == 'canceled'),
        'completed_this_month': sum(
            1 for a in appointments
            if a.get('status') == 'completed' and _same_month(a.get('date'), today)
        ),
        'today': sum(1 for a in appointments if _as_date(a.get('date')) == today),
        'this_month': sum(1 for a in appointments if _same_month(a.get('date'), today)),
    }


def appointment_evolution(appointments: List[Dict], today: date) -> List[Dict]:
    series = []
    for offset in range(TRAILING_MONTHS - 1, -1, -1):
        anchor = _shift_month(today, -offset)
        month_items = [a for a in appointments if _same_month(a.get('date'), anchor)]
        series.append({
            'name': month_label(anchor),
            'total': len(month_items),
            'completed': sum(1 for a in month_items if a.get('status') == 'completed'),
            'canceled': sum(1 for a in month_items if a.get('status') == 'canceled'),
            'pending': sum(1 for a in month_items if a.get('status') == 'pending'),
        })
    return series


def recent_activity(orders: Iterable[Dict], appointments: Iterable[Dict],
                    limit: int = 8) -> List[Dict]:
    """Latest orders and appointments merged into one feed, newest first."""
    feed = []
    for order in orders:
        feed.append({
            'type': 'order',
            'id': order.get('id'),
            'title': order.get('customer_name') or 'Venda',
            'date': order.get('date'),
            'value': order.get('total_value') or 0,
            'timestamp': order.get('created_at') or order.get('date') or '',
        })
    for appointment in appointments:
        feed.append({
            'type': 'appointment',
            'id': appointment.get('id'),
            'title': appointment.get('title'),
            'date': appointment.get('date'),
            'status': appointment.get('status'),
            'timestamp': appointment.get('created_at') or appointment.get('date') or '',
        })
    feed.sort(key=lambda entry: str(entry['timestamp']), reverse=True)
    return feed[:limit]


# =============================================================================
# ENTRY POINT
# =============================================================================

def summarize(products: List[Dict], services: List[Dict], orders: List[Dict],
              appointments: List[Dict], expenses: List[Dict], today: date = None,
              low_margin_product: float = LOW_MARGIN_PRODUCT,
              low_margin_service: float = LOW_MARGIN_SERVICE) -> Dict:
    """Whole dashboard payload from already-loaded collections."""
    today = today or date.today()
    completed_orders = [o for o in orders if o.get('status') != 'canceled']
    return {
        'inventory': inventory_metrics(products, services, low_margin_product, low_margin_service),
        'finance': financial_metrics(completed_orders, expenses, today),
        'appointments': appointment_metrics(appointments, today),
        'monthly': monthly_series(completed_orders, expenses, today),
        'appointment_evolution': appointment_evolution(appointments, today),
        'categories': category_distribution(products, services),
        'top_products': top_products(products),
        'top_services': top_services(services),
        'recent_activity': recent_activity(completed_orders, appointments),
        'generated_for': today.isoformat(),
    }


def build_dashboard(session: Session, organization_id: str, today: date = None,
                    low_margin_product: float = LOW_MARGIN_PRODUCT,
                    low_margin_service: float = LOW_MARGIN_SERVICE) -> Dict:
    """Load the organization's collections and summarize them."""
    catalog = CatalogRepository(session, organization_id)
    payload = summarize(
        products=catalog.list_products(),
        services=catalog.list_services(),
        orders=OrderService(session, organization_id).list_orders(),
        appointments=AppointmentRepository(session, organization_id).list_appointments(),
        expenses=ExpenseRepository(session, organization_id).list_expenses(),
        today=today,
        low_margin_product=low_margin_product,
        low_margin_service=low_margin_service,
    )
    logger.debug(f"Dashboard built for organization {organization_id}")
    return payload
