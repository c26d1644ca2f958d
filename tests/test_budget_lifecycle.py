"""
Tests for budgets: totals, editing locks and the approval that generates a sale
"""
import pytest
from datetime import date

from services.budget_service import BudgetService, can_transition
from services.crm_repository import CRMRepository
from services.exceptions import (
    BudgetLockedError,
    InsufficientStock,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from services.order_service import OrderService


@pytest.fixture
def budgets(db_session, org_id):
    return BudgetService(db_session, org_id)


@pytest.fixture
def draft(budgets, sample_product, sample_service):
    """Draft for a customer that does not exist yet: 2 products + 1 service, R$ 50 off"""
    return budgets.create_budget({
        'customer_name': 'Padaria Boa Massa',
        'customer_phone': '(71) 98888-7777',
        'date': '2024-03-01',
        'discount': 50,
        'items': [
            {'item_id': sample_product['id'], 'type': 'product', 'quantity': 2},
            {'item_id': sample_service['id'], 'type': 'service', 'quantity': 1},
        ],
        'payment_terms': '30/60 dias',
    })


@pytest.mark.unit
class TestTransitions:
    """Tests for the budget state machine"""

    @pytest.mark.parametrize('current,target', [
        ('draft', 'sent'), ('sent', 'draft'), ('draft', 'approved'),
        ('sent', 'rejected'), ('rejected', 'draft'), ('rejected', 'approved'),
        ('approved', 'converted'),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize('current,target', [
        ('draft', 'converted'), ('approved', 'draft'), ('converted', 'approved'),
        ('approved', 'rejected'),
    ])
    def test_forbidden(self, current, target):
        assert can_transition(current, target) is False


@pytest.mark.unit
class TestBudgetCrud:
    """Tests for creating and editing budgets"""

    def test_create_computes_total(self, draft):
        assert draft['status'] == 'draft'
        assert draft['total_value'] == 350.0
        assert len(draft['items']) == 2
        assert draft['payment_terms'] == '30/60 dias'

    def test_default_validity(self, draft):
        assert draft['validity_date'] == '2024-03-08'

    def test_total_never_negative(self, budgets, sample_service):
        budget = budgets.create_budget({
            'customer_name': 'Cliente',
            'discount': 1000,
            'items': [{'item_id': sample_service['id'], 'type': 'service', 'quantity': 1}],
        })
        assert budget['total_value'] == 0.0

    def test_create_requires_customer_name(self, budgets):
        with pytest.raises(ValidationError):
            budgets.create_budget({'items': []})

    def test_cannot_start_approved(self, budgets):
        with pytest.raises(ValidationError):
            budgets.create_budget({'customer_name': 'X', 'status': 'approved'})

    def test_items_over_stock_rejected(self, budgets, sample_product):
        with pytest.raises(InsufficientStock):
            budgets.create_budget({
                'customer_name': 'X',
                'items': [{'item_id': sample_product['id'], 'type': 'product', 'quantity': 11}],
            })

    def test_update_keeps_priced_lines(self, budgets, catalog, draft, sample_product):
        catalog.update_product(sample_product['id'], {'price': 500.0})
        updated = budgets.update_budget(draft['id'], {'items': draft['items'], 'discount': 0})
        assert updated['items'][0]['unit_price'] == 100.0
        assert updated['total_value'] == 400.0

    def test_update_reprices_bare_lines(self, budgets, catalog, draft, sample_product):
        catalog.update_product(sample_product['id'], {'price': 500.0})
        updated = budgets.update_budget(draft['id'], {
            'items': [{'item_id': sample_product['id'], 'type': 'product', 'quantity': 1}],
        })
        assert updated['items'][0]['unit_price'] == 500.0
        assert updated['total_value'] == 450.0

    def test_client_name_and_price_ignored(self, budgets, sample_product):
        budget = budgets.create_budget({
            'customer_name': 'X',
            'items': [{'item_id': sample_product['id'], 'type': 'product', 'quantity': 3,
                       'name': 'Qualquer coisa', 'unit_price': 0.01}],
        })
        assert budget['items'][0]['name'] == 'Disjuntor Tripolar 32A'
        assert budget['items'][0]['unit_price'] == 100.0
        assert budget['total_value'] == 300.0

    def test_priced_lines_over_stock_rejected(self, budgets, sample_product):
        with pytest.raises(InsufficientStock):
            budgets.create_budget({
                'customer_name': 'X',
                'items': [{'item_id': sample_product['id'], 'type': 'product', 'quantity': 1000,
                           'name': 'Disjuntor', 'unit_price': 0.01}],
            })

    @pytest.mark.parametrize('line', [
        {'item_id': 'nope', 'type': 'product', 'quantity': 1},
        {'item_id': 'nope', 'type': 'service', 'quantity': 1, 'name': 'X', 'unit_price': 10},
    ])
    def test_unknown_catalog_item_rejected(self, budgets, line):
        with pytest.raises(NotFoundError):
            budgets.create_budget({'customer_name': 'X', 'items': [line]})

    def test_update_keeps_stored_price_not_sent_price(self, budgets, draft):
        items = [dict(item, unit_price=1.0, name='Outro nome') for item in draft['items']]
        updated = budgets.update_budget(draft['id'], {'items': items})
        assert [i['unit_price'] for i in updated['items']] == [100.0, 200.0]
        assert updated['items'][0]['name'] == 'Disjuntor Tripolar 32A'

    def test_update_counts_kept_lines_toward_stock(self, budgets, draft, sample_product):
        extra = {'item_id': sample_product['id'], 'type': 'product', 'quantity': 9}
        with pytest.raises(InsufficientStock) as exc_info:
            budgets.update_budget(draft['id'], {'items': draft['items'] + [extra]})
        assert exc_info.value.in_cart == 2

    def test_update_with_status_moves_lifecycle(self, budgets, draft):
        assert budgets.update_budget(draft['id'], {'status': 'sent'})['status'] == 'sent'

    def test_delete_draft(self, budgets, draft):
        assert budgets.delete_budget(draft['id']) is True
        assert budgets.get_budget(draft['id']) is None

    def test_list_filters(self, budgets, draft):
        assert len(budgets.list_budgets(status='draft')) == 1
        assert budgets.list_budgets(status='sent') == []
        assert len(budgets.list_budgets(search='boa massa')) == 1


@pytest.mark.unit
class TestApproval:
    """Tests for approval side effects"""

    def test_approval_creates_customer_order_and_takes_stock(self, db_session, org_id, budgets,
                                                             catalog, draft, sample_product):
        approved = budgets.approve(draft['id'])

        assert approved['status'] == 'approved'
        assert approved['order_id']

        customer = CRMRepository(db_session, org_id).get_customer(approved['customer_id'])
        assert customer['name'] == 'Padaria Boa Massa'
        assert customer['email'] == ''
        assert customer['phone'] == ''

        order = OrderService(db_session, org_id).get_order(approved['order_id'])
        assert order['budget_id'] == draft['id']
        assert order['total_value'] == 350.0
        assert order['status'] == 'completed'
        assert catalog.get_product(sample_product['id'])['stock'] == 8

    def test_approval_reuses_customer_with_exact_name(self, db_session, org_id, budgets,
                                                      sample_customer, sample_service):
        budget = budgets.create_budget({
            'customer_name': 'Metalúrgica Alfa',
            'items': [{'item_id': sample_service['id'], 'type': 'service', 'quantity': 1}],
        })
        approved = budgets.approve(budget['id'])
        assert approved['customer_id'] == sample_customer['id']
        assert len(CRMRepository(db_session, org_id).list_customers()) == 1

    def test_approving_twice_creates_one_order(self, db_session, org_id, budgets, draft):
        first = budgets.approve(draft['id'])
        second = budgets.change_status(draft['id'], 'approved')
        assert second['order_id'] == first['order_id']
        assert len(OrderService(db_session, org_id).list_orders()) == 1

    def test_approval_without_items_rejected(self, budgets):
        budget = budgets.create_budget({'customer_name': 'Vazio'})
        with pytest.raises(ValidationError):
            budgets.approve(budget['id'])

    def test_approval_fails_when_stock_ran_out(self, db_session, org_id, budgets, catalog,
                                               draft, sample_product):
        catalog.decrement_stock(sample_product['id'], 9)
        with pytest.raises(InsufficientStock):
            budgets.approve(draft['id'])

        budget = budgets.get_budget(draft['id'])
        assert budget['status'] == 'draft'
        assert budget['order_id'] is None
        assert catalog.get_product(sample_product['id'])['stock'] == 1
        assert OrderService(db_session, org_id).list_orders() == []
        assert CRMRepository(db_session, org_id).list_customers() == []

    def test_failed_approval_can_be_retried(self, budgets, catalog, draft, sample_product):
        catalog.decrement_stock(sample_product['id'], 9)
        with pytest.raises(InsufficientStock):
            budgets.approve(draft['id'])
        catalog.receive_stock(sample_product['id'], 5)
        assert budgets.approve(draft['id'])['status'] == 'approved'
        assert catalog.get_product(sample_product['id'])['stock'] == 4

    def test_approved_budget_is_locked(self, budgets, draft):
        budgets.approve(draft['id'])
        with pytest.raises(BudgetLockedError):
            budgets.update_budget(draft['id'], {'notes': 'alterado'})
        with pytest.raises(BudgetLockedError):
            budgets.delete_budget(draft['id'])

    def test_convert_after_approval(self, budgets, draft):
        budgets.approve(draft['id'])
        converted = budgets.change_status(draft['id'], 'converted')
        assert converted['status'] == 'converted'

    def test_convert_draft_rejected(self, budgets, draft):
        with pytest.raises(InvalidTransitionError):
            budgets.convert(draft['id'])

    def test_rejected_can_be_reopened(self, budgets, draft):
        budgets.change_status(draft['id'], 'rejected')
        assert budgets.change_status(draft['id'], 'draft')['status'] == 'draft'

    def test_unknown_status(self, budgets, draft):
        with pytest.raises(ValidationError):
            budgets.change_status(draft['id'], 'archived')

    def test_missing_budget(self, budgets):
        with pytest.raises(NotFoundError):
            budgets.approve('missing')

    def test_budget_date_defaults_to_today(self, budgets):
        budget = budgets.create_budget({'customer_name': 'Hoje'})
        assert budget['date'] == date.today().isoformat()
