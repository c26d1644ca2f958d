"""
Tests for dashboard aggregates
"""
import pytest
from datetime import date

from services.dashboard import (
    _shift_month,
    appointment_evolution,
    appointment_metrics,
    build_dashboard,
    category_distribution,
    financial_metrics,
    inventory_metrics,
    monthly_series,
    recent_activity,
    summarize,
    top_products,
    top_services,
)


@pytest.fixture
def products():
    return [
        {'name': 'Disjuntor', 'category': 'Proteção', 'price': 100, 'cost': 60, 'stock': 10, 'min_stock': 2},
        {'name': 'Borne', 'category': 'Conexão', 'price': 10, 'cost': 9, 'stock': 1, 'min_stock': 5},
        {'name': 'Brinde', 'category': 'Conexão', 'price': 0, 'cost': 5, 'stock': 3, 'min_stock': 0},
    ]


@pytest.fixture
def services():
    return [
        {'name': 'Instalação', 'category': 'Instalação', 'price': 200, 'cost': 80, 'active': True},
        {'name': 'Hora técnica', 'category': 'Manutenção', 'price': 100, 'cost': 90, 'active': True},
        {'name': 'Antigo', 'category': 'Manutenção', 'price': 50, 'cost': 0, 'active': False},
    ]


@pytest.fixture
def orders():
    return [
        {'id': 'o1', 'date': '2024-03-05', 'total_value': 450, 'status': 'completed',
         'customer_name': 'Alfa', 'created_at': '2024-03-05T10:00:00'},
        {'id': 'o2', 'date': '2024-01-20', 'total_value': 200, 'status': 'completed',
         'customer_name': 'Beta', 'created_at': '2024-01-20T10:00:00'},
        {'id': 'o3', 'date': '2024-03-10', 'total_value': 1000, 'status': 'canceled',
         'customer_name': 'Gama', 'created_at': '2024-03-10T10:00:00'},
    ]


@pytest.fixture
def expenses():
    return [
        {'date': '2024-03-02', 'amount': 100, 'category': 'Combustível'},
        {'date': '2023-12-15', 'amount': 50, 'category': 'Outros'},
    ]


@pytest.fixture
def appointments():
    return [
        {'id': 'a1', 'title': 'Visita', 'date': '2024-03-15', 'status': 'pending',
         'created_at': '2024-03-01T08:00:00'},
        {'id': 'a2', 'title': 'Instalação', 'date': '2024-03-15', 'status': 'completed',
         'created_at': '2024-03-12T08:00:00'},
        {'id': 'a3', 'title': 'Orçamento', 'date': '2024-02-10', 'status': 'canceled',
         'created_at': '2024-02-01T08:00:00'},
    ]


@pytest.mark.unit
class TestInventory:
    """Tests for catalog metrics"""

    def test_stock_values(self, products, services):
        metrics = inventory_metrics(products, services)
        assert metrics['total_stock_value'] == 624.0
        assert metrics['potential_sales'] == 1010.0
        assert metrics['potential_profit'] == 386.0

    def test_margins_ignore_unpriced_items(self, products, services):
        metrics = inventory_metrics(products, services)
        assert metrics['avg_product_margin'] == 25.0
        assert metrics['avg_service_margin'] == 35.0

    def test_alert_lists(self, products, services):
        metrics = inventory_metrics(products, services)
        assert [p['name'] for p in metrics['low_stock']] == ['Borne']
        assert [p['name'] for p in metrics['low_margin_products']] == ['Borne']
        assert [s['name'] for s in metrics['low_margin_services']] == ['Hora técnica']
        assert metrics['active_service_count'] == 2

    def test_thresholds_are_configurable(self, products, services):
        metrics = inventory_metrics(products, services, low_margin_product=0.5)
        assert [p['name'] for p in metrics['low_margin_products']] == ['Disjuntor', 'Borne']

    def test_empty_catalog(self):
        metrics = inventory_metrics([], [])
        assert metrics['avg_product_margin'] == 0.0
        assert metrics['total_stock_value'] == 0

    def test_category_distribution(self, products, services):
        distribution = category_distribution(products, services)
        assert {c['name']: c['value'] for c in distribution['products']} == \
            {'Proteção': 1000.0, 'Conexão': 10.0}
        assert {c['name']: c['value'] for c in distribution['services']} == \
            {'Instalação': 1, 'Manutenção': 1}

    def test_rankings(self, products, services):
        assert [p['name'] for p in top_products(products, limit=2)] == ['Disjuntor', 'Borne']
        assert [s['name'] for s in top_services(services)] == ['Instalação', 'Hora técnica']


@pytest.mark.unit
class TestFinance:
    """Tests for revenue, expenses and the monthly series"""

    def test_financial_metrics(self, orders, expenses):
        metrics = financial_metrics(orders[:2], expenses, date(2024, 3, 15))
        assert metrics['realized_revenue'] == 650.0
        assert metrics['total_expenses'] == 150.0
        assert metrics['expenses_this_month'] == 100.0
        assert metrics['net_profit'] == 500.0

    def test_monthly_series_shape(self, orders, expenses):
        series = monthly_series(orders[:2], expenses, date(2024, 3, 15))
        assert [m['name'] for m in series] == ['out', 'nov', 'dez', 'jan', 'fev', 'mar', 'abr', 'mai']
        assert [m['real'] for m in series] == [True] * 6 + [False] * 2

    def test_monthly_series_values(self, orders, expenses):
        series = monthly_series(orders[:2], expenses, date(2024, 3, 15))
        march = series[5]
        assert (march['revenue'], march['expenses'], march['profit']) == (450.0, 100.0, 350.0)
        assert series[2]['profit'] == -50.0
        assert series[3]['revenue'] == 200.0

    def test_projection(self, orders, expenses):
        series = monthly_series(orders[:2], expenses, date(2024, 3, 15))
        assert (series[6]['revenue'], series[6]['profit']) == (97.5, 32.5)
        assert (series[7]['revenue'], series[7]['profit']) == (117.0, 39.0)

    def test_projection_wraps_year(self):
        series = monthly_series([], [], date(2024, 12, 10))
        assert [(m['year'], m['month']) for m in series[-2:]] == [(2025, 1), (2025, 2)]

    def test_shift_month(self):
        assert _shift_month(date(2024, 1, 31), -1) == date(2023, 12, 1)
        assert _shift_month(date(2024, 11, 5), 3) == date(2025, 2, 1)


@pytest.mark.unit
class TestAgendaMetrics:
    """Tests for appointment metrics"""

    def test_counts(self, appointments):
        metrics = appointment_metrics(appointments, date(2024, 3, 15))
        assert metrics == {'pending': 1, 'canceled': 1, 'completed_this_month': 1,
                           'today': 2, 'this_month': 2}

    def test_evolution(self, appointments):
        evolution = appointment_evolution(appointments, date(2024, 3, 15))
        assert len(evolution) == 6
        assert evolution[-1] == {'name': 'mar', 'total': 2, 'completed': 1, 'canceled': 0, 'pending': 1}
        assert evolution[-2]['canceled'] == 1

    def test_recent_activity_newest_first(self, orders, appointments):
        feed = recent_activity(orders[:2], appointments, limit=3)
        assert [(e['type'], e['id']) for e in feed] == [
            ('appointment', 'a2'), ('order', 'o1'), ('appointment', 'a1'),
        ]


@pytest.mark.unit
class TestSummary:
    """Tests for the full payload"""

    def test_canceled_orders_excluded(self, products, services, orders, appointments, expenses):
        payload = summarize(products, services, orders, appointments, expenses, today=date(2024, 3, 15))
        assert payload['finance']['realized_revenue'] == 650.0
        assert payload['finance']['order_count'] == 2
        assert payload['generated_for'] == '2024-03-15'
        assert all(e['id'] != 'o3' for e in payload['recent_activity'])

    def test_build_dashboard_from_database(self, db_session, org_id, sample_product, sample_service):
        payload = build_dashboard(db_session, org_id, today=date(2024, 3, 15))
        assert payload['inventory']['product_count'] == 1
        assert payload['inventory']['total_stock_value'] == 600.0
        assert payload['finance']['realized_revenue'] == 0
        assert len(payload['monthly']) == 8
