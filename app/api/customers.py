"""
Customers & Orders Routes Blueprint

- /api/customers, /api/customers/<id>, /api/customers/<id>/orders
- /api/orders (list, checkout), /api/orders/preview
- /api/orders/<id>, /api/orders/<id>/status
"""

import logging
from flask import Blueprint, request, jsonify

from auth import login_required
from app.utils.helpers import current_organization_id, get_json_body
from database.connection import get_db_session
from services.crm_repository import CRMRepository
from services.exceptions import NotFoundError
from services.order_service import OrderService

logger = logging.getLogger(__name__)

# Create blueprint
customers_bp = Blueprint('customers_bp', __name__)


# ============================================================================
# CUSTOMERS
# ============================================================================

@customers_bp.route('/api/customers', methods=['GET', 'POST'])
@login_required
def handle_customers():
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = CRMRepository(session, org_id)
        if request.method == 'GET':
            customers = repo.list_customers(search=request.args.get('search'))
            return jsonify({'success': True, 'customers': customers})

        customer = repo.create_customer(get_json_body())
    return jsonify({'success': True, 'customer': customer}), 201


@customers_bp.route('/api/customers/<customer_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_customer(customer_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = CRMRepository(session, org_id)
        if request.method == 'GET':
            customer = repo.get_customer(customer_id)
        elif request.method == 'PUT':
            customer = repo.update_customer(customer_id, get_json_body())
        else:
            if not repo.delete_customer(customer_id):
                raise NotFoundError('Customer', customer_id)
            return jsonify({'success': True})

    if not customer:
        raise NotFoundError('Customer', customer_id)
    return jsonify({'success': True, 'customer': customer})


@customers_bp.route('/api/customers/<customer_id>/orders', methods=['GET'])
@login_required
def get_customer_orders(customer_id):
    with get_db_session() as session:
        orders = CRMRepository(session, current_organization_id()).get_customer_orders(customer_id)
    if orders is None:
        raise NotFoundError('Customer', customer_id)
    return jsonify({'success': True, 'orders': orders})


# ============================================================================
# ORDERS
# ============================================================================

@customers_bp.route('/api/orders', methods=['GET', 'POST'])
@login_required
def handle_orders():
    """List orders, or check out a new one from catalog lines"""
    org_id = current_organization_id()
    with get_db_session() as session:
        service = OrderService(session, org_id)
        if request.method == 'GET':
            orders = service.list_orders(
                customer_id=request.args.get('customer_id'),
                status=request.args.get('status')
            )
            return jsonify({'success': True, 'orders': orders})

        order = service.checkout(get_json_body())
    return jsonify({'success': True, 'order': order}), 201


@customers_bp.route('/api/orders/preview', methods=['POST'])
@login_required
def preview_order():
    """Price a prospective order without touching stock"""
    data = get_json_body()
    with get_db_session() as session:
        preview = OrderService(session, current_organization_id()).preview(data.get('items'), data)
    return jsonify({'success': True, **preview})


@customers_bp.route('/api/orders/<order_id>', methods=['GET'])
@login_required
def get_order(order_id):
    with get_db_session() as session:
        order = OrderService(session, current_organization_id()).get_order(order_id)
    if not order:
        raise NotFoundError('Order', order_id)
    return jsonify({'success': True, 'order': order})


@customers_bp.route('/api/orders/<order_id>/status', methods=['PUT', 'PATCH'])
@login_required
def update_order_status(order_id):
    data = get_json_body()
    with get_db_session() as session:
        order = OrderService(session, current_organization_id()).update_status(order_id, data.get('status'))
    return jsonify({'success': True, 'order': order})
