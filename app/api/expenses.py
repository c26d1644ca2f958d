"""
Expenses Routes Blueprint

- /api/expenses, /api/expenses/<id>
- /api/expenses/categories
- /api/expenses/summary
"""

import logging
from flask import Blueprint, request, jsonify

from auth import login_required
from app.utils.helpers import arg_date, current_organization_id, get_json_body
from database.connection import get_db_session
from services.exceptions import NotFoundError
from services.expense_repository import ExpenseRepository

logger = logging.getLogger(__name__)

# Create blueprint
expenses_bp = Blueprint('expenses_bp', __name__)


@expenses_bp.route('/api/expenses', methods=['GET', 'POST'])
@login_required
def handle_expenses():
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = ExpenseRepository(session, org_id)
        if request.method == 'GET':
            expenses = repo.list_expenses(
                search=request.args.get('search'),
                category=request.args.get('category'),
                start=arg_date('start'),
                end=arg_date('end')
            )
            total = round(sum(e['amount'] for e in expenses), 2)
            return jsonify({'success': True, 'expenses': expenses, 'total': total})

        expense = repo.create_expense(get_json_body())
    return jsonify({'success': True, 'expense': expense}), 201


@expenses_bp.route('/api/expenses/<expense_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_expense(expense_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = ExpenseRepository(session, org_id)
        if request.method == 'GET':
            expense = repo.get_expense(expense_id)
            if not expense:
                raise NotFoundError('Expense', expense_id)
        elif request.method == 'PUT':
            expense = repo.update_expense(expense_id, get_json_body())
        else:
            if not repo.delete_expense(expense_id):
                raise NotFoundError('Expense', expense_id)
            return jsonify({'success': True})
    return jsonify({'success': True, 'expense': expense})


@expenses_bp.route('/api/expenses/categories', methods=['GET'])
@login_required
def get_expense_categories():
    with get_db_session() as session:
        categories = ExpenseRepository(session, current_organization_id()).get_categories()
    return jsonify({'success': True, 'categories': categories})


@expenses_bp.route('/api/expenses/summary', methods=['GET'])
@login_required
def get_expense_summary():
    """Totals per category within an optional date range"""
    start, end = arg_date('start'), arg_date('end')
    with get_db_session() as session:
        repo = ExpenseRepository(session, current_organization_id())
        by_category = repo.totals_by_category(start, end)
        total = repo.get_total(start, end)
    return jsonify({'success': True, 'by_category': by_category, 'total': total})
