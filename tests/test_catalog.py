"""
Tests for the catalog repository: products, services, stock and prices
"""
import pytest

from services.catalog_repository import CatalogRepository
from services.exceptions import InsufficientStock, NotFoundError, ValidationError


@pytest.mark.unit
class TestProducts:
    """Tests for product CRUD"""

    def test_create_product(self, sample_product):
        assert sample_product['id']
        assert sample_product['stock'] == 10
        assert sample_product['price'] == 100.0

    def test_create_requires_name(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_product({'price': 10})

    def test_create_rejects_negative_stock(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_product({'name': 'Cabo', 'stock': -3})

    def test_update_ignores_stock(self, catalog, sample_product):
        updated = catalog.update_product(sample_product['id'], {'stock': 999, 'price': 120.0})
        assert updated['stock'] == 10
        assert updated['price'] == 120.0

    def test_update_missing_returns_none(self, catalog):
        assert catalog.update_product('nope', {'name': 'X'}) is None

    def test_delete_product(self, catalog, sample_product):
        assert catalog.delete_product(sample_product['id']) is True
        assert catalog.get_product(sample_product['id']) is None
        assert catalog.delete_product(sample_product['id']) is False

    def test_search_products(self, catalog, sample_product):
        assert [p['id'] for p in catalog.search_products('disjuntor')] == [sample_product['id']]
        assert catalog.search_products('weg')[0]['supplier'] == 'WEG'
        assert catalog.search_products('inexistente') == []

    def test_low_stock(self, catalog, sample_product):
        low = catalog.create_product({'name': 'Borne', 'stock': 1, 'min_stock': 5})
        ids = [p['id'] for p in catalog.get_low_stock_products()]
        assert ids == [low['id']]
        assert catalog.list_products(low_stock_only=True)[0]['id'] == low['id']

    def test_categories_and_stock_value(self, catalog, sample_product, sample_service):
        categories = catalog.get_categories()
        assert categories['products'] == ['Proteção']
        assert categories['services'] == ['Instalação']
        assert catalog.get_stock_value() == 600.0

    def test_products_are_scoped_to_organization(self, db_session, sample_product):
        from database.models import Organization
        other = Organization(name='Outra', slug='outra', settings={})
        db_session.add(other)
        db_session.flush()
        assert CatalogRepository(db_session, other.id).list_products() == []


@pytest.mark.unit
class TestStock:
    """Tests for restock and conditional decrement"""

    def test_receive_stock(self, catalog, sample_product):
        product = catalog.receive_stock(sample_product['id'], 5, reason='compra')
        assert product['stock'] == 15

    @pytest.mark.parametrize('quantity', [0, -2, 1.5, '3', True])
    def test_receive_stock_rejects_bad_quantity(self, catalog, sample_product, quantity):
        with pytest.raises(ValidationError):
            catalog.receive_stock(sample_product['id'], quantity)

    def test_decrement_stock(self, catalog, sample_product):
        catalog.decrement_stock(sample_product['id'], 4)
        assert catalog.get_product(sample_product['id'])['stock'] == 6

    def test_decrement_beyond_stock_refused(self, catalog, sample_product):
        with pytest.raises(InsufficientStock):
            catalog.decrement_stock(sample_product['id'], 11)
        assert catalog.get_product(sample_product['id'])['stock'] == 10

    def test_check_stock(self, catalog, sample_product):
        catalog.check_stock({sample_product['id']: 10})
        with pytest.raises(InsufficientStock):
            catalog.check_stock({sample_product['id']: 11})
        with pytest.raises(NotFoundError):
            catalog.check_stock({'missing': 1})


@pytest.mark.unit
class TestServices:
    """Tests for services and their price history"""

    def test_create_service_starts_history(self, sample_service):
        assert len(sample_service['price_history']) == 1
        assert sample_service['price_history'][0]['price'] == 200.0

    def test_price_change_appends_history(self, catalog, sample_service):
        updated = catalog.update_service(sample_service['id'], {'price': 250.0})
        assert [h['price'] for h in updated['price_history']] == [200.0, 250.0]

    def test_same_price_does_not_append(self, catalog, sample_service):
        updated = catalog.update_service(sample_service['id'], {'price': 200.0, 'description': 'Novo'})
        assert len(updated['price_history']) == 1
        assert updated['description'] == 'Novo'

    def test_inactive_services_leave_snapshot(self, catalog, sample_service):
        catalog.update_service(sample_service['id'], {'active': False})
        assert catalog.list_services(active_only=True) == []
        with pytest.raises(NotFoundError):
            catalog.snapshot().lookup(sample_service['id'], 'service')

    def test_get_price_history_missing(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.get_price_history('missing')


@pytest.mark.unit
class TestSetPrice:
    """Tests for applying simulated prices"""

    def test_set_product_price_rounds(self, catalog, sample_product):
        assert catalog.set_price('product', sample_product['id'], 157.142857)['price'] == 157.14

    def test_set_service_price_records_history(self, catalog, sample_service):
        service = catalog.set_price('service', sample_service['id'], 230)
        assert service['price'] == 230.0
        assert service['price_history'][-1]['price'] == 230.0

    def test_negative_price_rejected(self, catalog, sample_product):
        with pytest.raises(ValidationError):
            catalog.set_price('product', sample_product['id'], -5)

    def test_unknown_type_rejected(self, catalog, sample_product):
        with pytest.raises(ValidationError):
            catalog.set_price('kit', sample_product['id'], 5)
