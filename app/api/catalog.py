"""
Catalog Routes Blueprint

Products, services and the price simulator:
- /api/products, /api/products/<id>, /api/products/<id>/restock
- /api/products/low-stock, /api/catalog/categories, /api/catalog/stock-value
- /api/services, /api/services/<id>, /api/services/<id>/price-history
- /api/pricing/simulate, /api/pricing/apply
"""

import logging
from flask import Blueprint, request, jsonify

from auth import login_required
from app.utils.helpers import arg_bool, current_organization_id, get_json_body
from database.connection import get_db_session
from services.catalog_repository import CatalogRepository
from services.exceptions import NotFoundError, ValidationError
from services.pricing import PRODUCT, SERVICE, simulate_price

logger = logging.getLogger(__name__)

# Create blueprint
catalog_bp = Blueprint('catalog_bp', __name__)


# ============================================================================
# PRODUCTS
# ============================================================================

@catalog_bp.route('/api/products', methods=['GET', 'POST'])
@login_required
def handle_products():
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = CatalogRepository(session, org_id)
        if request.method == 'GET':
            search = request.args.get('search')
            if search:
                products = repo.search_products(search)
            else:
                products = repo.list_products(
                    category=request.args.get('category'),
                    low_stock_only=arg_bool('low_stock')
                )
            return jsonify({'success': True, 'products': products})

        product = repo.create_product(get_json_body())
    return jsonify({'success': True, 'product': product}), 201


@catalog_bp.route('/api/products/<product_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_product(product_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = CatalogRepository(session, org_id)
        if request.method == 'GET':
            product = repo.get_product(product_id)
        elif request.method == 'PUT':
            product = repo.update_product(product_id, get_json_body())
        else:
            if not repo.delete_product(product_id):
                raise NotFoundError('Product', product_id)
            return jsonify({'success': True})

    if not product:
        raise NotFoundError('Product', product_id)
    return jsonify({'success': True, 'product': product})


@catalog_bp.route('/api/products/<product_id>/restock', methods=['POST'])
@login_required
def restock_product(product_id):
    """Add received units to a product's stock"""
    data = get_json_body()
    quantity = data.get('quantity')
    if isinstance(quantity, str) and quantity.strip().isdigit():
        quantity = int(quantity)
    with get_db_session() as session:
        product = CatalogRepository(session, current_organization_id()).receive_stock(
            product_id, quantity, reason=data.get('reason')
        )
    return jsonify({'success': True, 'product': product})


@catalog_bp.route('/api/products/low-stock', methods=['GET'])
@login_required
def get_low_stock():
    with get_db_session() as session:
        products = CatalogRepository(session, current_organization_id()).get_low_stock_products()
    return jsonify({'success': True, 'products': products, 'count': len(products)})


@catalog_bp.route('/api/catalog/categories', methods=['GET'])
@login_required
def get_categories():
    with get_db_session() as session:
        categories = CatalogRepository(session, current_organization_id()).get_categories()
    return jsonify({'success': True, 'categories': categories})


@catalog_bp.route('/api/catalog/stock-value', methods=['GET'])
@login_required
def get_stock_value():
    with get_db_session() as session:
        value = CatalogRepository(session, current_organization_id()).get_stock_value()
    return jsonify({'success': True, 'stock_value': round(value, 2)})


# ============================================================================
# SERVICES
# ============================================================================

@catalog_bp.route('/api/services', methods=['GET', 'POST'])
@login_required
def handle_services():
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = CatalogRepository(session, org_id)
        if request.method == 'GET':
            services = repo.list_services(
                active_only=arg_bool('active_only'),
                category=request.args.get('category')
            )
            return jsonify({'success': True, 'services': services})

        service = repo.create_service(get_json_body())
    return jsonify({'success': True, 'service': service}), 201


@catalog_bp.route('/api/services/<service_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_service(service_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = CatalogRepository(session, org_id)
        if request.method == 'GET':
            service = repo.get_service(service_id)
        elif request.method == 'PUT':
            service = repo.update_service(service_id, get_json_body())
        else:
            if not repo.delete_service(service_id):
                raise NotFoundError('Service', service_id)
            return jsonify({'success': True})

    if not service:
        raise NotFoundError('Service', service_id)
    return jsonify({'success': True, 'service': service})


@catalog_bp.route('/api/services/<service_id>/price-history', methods=['GET'])
@login_required
def get_price_history(service_id):
    with get_db_session() as session:
        history = CatalogRepository(session, current_organization_id()).get_price_history(service_id)
    return jsonify({'success': True, 'history': history})


# ============================================================================
# PRICE SIMULATOR
# ============================================================================

@catalog_bp.route('/api/pricing/simulate', methods=['POST'])
@login_required
def simulate():
    """
    Simulate a new price for a target margin and cost increase.

    Either pass ``cost`` directly or ``item_id`` + ``type`` to start from a
    catalog entry's current cost and price.
    """
    data = get_json_body()
    cost = data.get('cost')
    current_price = data.get('current_price', 0)

    if data.get('item_id'):
        with get_db_session() as session:
            repo = CatalogRepository(session, current_organization_id())
            if data.get('type') == SERVICE:
                item = repo.get_service(data['item_id'])
            else:
                item = repo.get_product(data['item_id'])
        if not item:
            raise NotFoundError(data.get('type') or PRODUCT, data['item_id'])
        cost = item['cost']
        current_price = item['price']

    if cost is None:
        raise ValidationError("Informe o custo ou um item do catálogo", field='cost')

    result = simulate_price(cost, data.get('margin', 0), data.get('cost_increase', 0), current_price)
    return jsonify({'success': True, 'simulation': result.to_dict()})


@catalog_bp.route('/api/pricing/apply', methods=['POST'])
@login_required
def apply_price():
    """Write a simulated price back to a product or service"""
    data = get_json_body()
    if data.get('price') is None:
        raise ValidationError("Informe o preço", field='price')
    with get_db_session() as session:
        item = CatalogRepository(session, current_organization_id()).set_price(
            data.get('type'), data.get('item_id'), data['price']
        )
    return jsonify({'success': True, 'item': item})
