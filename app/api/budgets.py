"""
Budgets Routes Blueprint

Quotes/proposals and their lifecycle:
- /api/budgets, /api/budgets/<id>
- /api/budgets/<id>/status, /api/budgets/<id>/approve, /api/budgets/<id>/convert
- /api/budgets/<id>/pdf
"""

import io
import logging
from flask import Blueprint, request, jsonify, send_file

from auth import login_required
from app.utils.helpers import config_value, current_organization_id, current_user_id, get_json_body
from database.connection import get_db_session
from services.budget_service import BudgetService
from services.documents import budget_filename, generate_budget_pdf
from services.exceptions import NotFoundError
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)

# Create blueprint
budgets_bp = Blueprint('budgets_bp', __name__)


def _service(session, org_id):
    return BudgetService(session, org_id, validity_days=config_value('DEFAULT_BUDGET_VALIDITY_DAYS', 7))


@budgets_bp.route('/api/budgets', methods=['GET', 'POST'])
@login_required
def handle_budgets():
    org_id = current_organization_id()
    with get_db_session() as session:
        service = _service(session, org_id)
        if request.method == 'GET':
            budgets = service.list_budgets(
                status=request.args.get('status'),
                search=request.args.get('search')
            )
            return jsonify({'success': True, 'budgets': budgets})

        budget = service.create_budget(get_json_body())
    return jsonify({'success': True, 'budget': budget}), 201


@budgets_bp.route('/api/budgets/<budget_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_budget(budget_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        service = _service(session, org_id)
        if request.method == 'GET':
            budget = service.get_budget(budget_id)
            if not budget:
                raise NotFoundError('Budget', budget_id)
        elif request.method == 'PUT':
            budget = service.update_budget(budget_id, get_json_body())
        else:
            if not service.delete_budget(budget_id):
                raise NotFoundError('Budget', budget_id)
            return jsonify({'success': True})
    return jsonify({'success': True, 'budget': budget})


@budgets_bp.route('/api/budgets/<budget_id>/status', methods=['PUT', 'PATCH'])
@login_required
def change_budget_status(budget_id):
    """Move a budget along draft/sent/approved/rejected/converted"""
    data = get_json_body()
    with get_db_session() as session:
        budget = _service(session, current_organization_id()).change_status(budget_id, data.get('status'))
    return jsonify({'success': True, 'budget': budget})


@budgets_bp.route('/api/budgets/<budget_id>/approve', methods=['POST'])
@login_required
def approve_budget(budget_id):
    """Approve a budget; generates its order and takes products out of stock"""
    with get_db_session() as session:
        budget = _service(session, current_organization_id()).approve(budget_id)
    return jsonify({'success': True, 'budget': budget})


@budgets_bp.route('/api/budgets/<budget_id>/convert', methods=['POST'])
@login_required
def convert_budget(budget_id):
    with get_db_session() as session:
        budget = _service(session, current_organization_id()).convert(budget_id)
    return jsonify({'success': True, 'budget': budget})


@budgets_bp.route('/api/budgets/<budget_id>/pdf', methods=['GET'])
@login_required
def download_budget_pdf(budget_id):
    """Render the budget as a proposal PDF"""
    org_id = current_organization_id()
    with get_db_session() as session:
        budget = _service(session, org_id).get_budget(budget_id)
        if not budget:
            raise NotFoundError('Budget', budget_id)
        settings = SettingsService(session, org_id).document_settings(
            current_user_id(), default_warranty=config_value('DEFAULT_WARRANTY_TEXT', '')
        )

    pdf = generate_budget_pdf(budget, settings)
    return send_file(io.BytesIO(pdf), mimetype='application/pdf', as_attachment=True,
                     download_name=budget_filename(budget))
