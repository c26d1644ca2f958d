"""
Expense Repository - Database access layer for operating expenses.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Dict
from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import Expense
from services.exceptions import NotFoundError
from validators import (
    EXPENSE_CATEGORIES,
    parse_date,
    require_fields,
    require_valid,
    validate_expense_request,
)

logger = logging.getLogger(__name__)


class ExpenseRepository:
    """Repository for expense database operations."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id

    def _query(self):
        return self.session.query(Expense).filter(
            Expense.organization_id == self.organization_id
        )

    def list_expenses(self, search: str = None, category: str = None,
                      start: date = None, end: date = None) -> List[Dict]:
        """List expenses, newest first, optionally filtered."""
        query = self._query()
        if search:
            query = query.filter(Expense.description.ilike(f"%{search}%"))
        if category and category != 'all':
            query = query.filter(Expense.category == category)
        if start:
            query = query.filter(Expense.date >= start)
        if end:
            query = query.filter(Expense.date <= end)
        expenses = query.order_by(Expense.date.desc(), Expense.created_at.desc()).all()
        return [e.to_dict() for e in expenses]

    def get_expense(self, expense_id: str) -> Optional[Dict]:
        expense = self._query().filter(Expense.id == expense_id).first()
        return expense.to_dict() if expense else None

    def create_expense(self, data: Dict) -> Dict:
        require_valid(validate_expense_request(data))
        expense = Expense(
            organization_id=self.organization_id,
            description=data['description'].strip(),
            amount=float(data['amount']),
            date=parse_date(data['date']),
            category=data.get('category') or 'Outros',
            payment_method=data.get('payment_method'),
        )
        self.session.add(expense)
        self.session.flush()
        logger.info(f"Created expense: {expense.id} ({expense.amount})")
        return expense.to_dict()

    def update_expense(self, expense_id: str, data: Dict) -> Dict:
        require_valid(validate_expense_request(data, partial=True))
        expense = self._query().filter(Expense.id == expense_id).first()
        if not expense:
            raise NotFoundError('Expense', expense_id)

        if 'description' in data:
            require_fields(data, ['description'])
            expense.description = data['description'].strip()
        if 'amount' in data:
            expense.amount = float(data['amount'])
        if 'date' in data:
            expense.date = parse_date(data['date'])
        if 'category' in data:
            expense.category = data['category'] or 'Outros'
        if 'payment_method' in data:
            expense.payment_method = data['payment_method']

        expense.updated_at = datetime.utcnow()
        self.session.flush()
        return expense.to_dict()

    def delete_expense(self, expense_id: str) -> bool:
        expense = self._query().filter(Expense.id == expense_id).first()
        if not expense:
            return False
        self.session.delete(expense)
        self.session.flush()
        logger.info(f"Deleted expense: {expense_id}")
        return True

    def get_categories(self) -> List[str]:
        return list(EXPENSE_CATEGORIES)

    def totals_by_category(self, start: date = None, end: date = None) -> Dict[str, float]:
        """Sum of amounts per category, largest first."""
        query = self.session.query(Expense.category, func.sum(Expense.amount)).filter(
            Expense.organization_id == self.organization_id
        )
        if start:
            query = query.filter(Expense.date >= start)
        if end:
            query = query.filter(Expense.date <= end)
        rows = query.group_by(Expense.category).all()
        totals = {category or 'Outros': round(total or 0, 2) for category, total in rows}
        return dict(sorted(totals.items(), key=lambda kv: kv[1], reverse=True))

    def get_total(self, start: date = None, end: date = None) -> float:
        query = self.session.query(func.sum(Expense.amount)).filter(
            Expense.organization_id == self.organization_id
        )
        if start:
            query = query.filter(Expense.date >= start)
        if end:
            query = query.filter(Expense.date <= end)
        return round(query.scalar() or 0, 2)
