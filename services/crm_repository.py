"""
CRM Repository - Database access layer for customers and their order history.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session
from sqlalchemy import or_

from database.models import Customer, Order
from services.exceptions import ReferentialIntegrityError
from validators import require_valid, validate_email, validate_required_fields

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ['name', 'email', 'phone', 'address', 'notes']


class CRMRepository:
    """Repository for customer database operations."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id

    def _query(self):
        return self.session.query(Customer).filter(
            Customer.organization_id == self.organization_id
        )

    def _validate(self, data: Dict, partial: bool = False):
        if not partial:
            require_valid(validate_required_fields(data, ['name']), field='name')
        if data.get('email'):
            require_valid(validate_email(data['email']), field='email')

    def list_customers(self, search: str = None) -> List[Dict]:
        """List customers alphabetically, optionally filtered by a search term."""
        query = self._query()
        if search:
            term = f"%{search}%"
            query = query.filter(or_(
                Customer.name.ilike(term),
                Customer.email.ilike(term),
                Customer.phone.ilike(term)
            ))
        return [c.to_dict() for c in query.order_by(Customer.name).all()]

    def get_customer(self, customer_id: str) -> Optional[Dict]:
        customer = self._query().filter(Customer.id == customer_id).first()
        return customer.to_dict() if customer else None

    def get_customer_model(self, customer_id: str) -> Optional[Customer]:
        return self._query().filter(Customer.id == customer_id).first()

    def find_customer(self, customer_id: str = None, name: str = None) -> Optional[Customer]:
        """
        Match a customer by id, falling back to an exact name match.
        Name matching is case-sensitive and untrimmed.
        """
        if customer_id:
            customer = self.get_customer_model(customer_id)
            if customer:
                return customer
        if name:
            return self._query().filter(Customer.name == name).order_by(Customer.created_at).first()
        return None

    def create_customer(self, data: Dict) -> Dict:
        return self.create_customer_model(data).to_dict()

    def create_customer_model(self, data: Dict) -> Customer:
        self._validate(data)
        customer = Customer(
            organization_id=self.organization_id,
            name=data['name'],
            email=data.get('email') or '',
            phone=data.get('phone') or '',
            address=data.get('address'),
            notes=data.get('notes'),
        )
        self.session.add(customer)
        self.session.flush()
        logger.info(f"Created customer: {customer.id}")
        return customer

    def update_customer(self, customer_id: str, data: Dict) -> Optional[Dict]:
        self._validate(data, partial=True)
        customer = self.get_customer_model(customer_id)
        if not customer:
            return None
        for key in CUSTOMER_FIELDS:
            if key in data:
                setattr(customer, key, data[key])
        customer.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated customer: {customer_id}")
        return customer.to_dict()

    def delete_customer(self, customer_id: str) -> bool:
        """Delete a customer without order history."""
        customer = self.get_customer_model(customer_id)
        if not customer:
            return False
        order_count = self.session.query(Order).filter(Order.customer_id == customer_id).count()
        if order_count:
            raise ReferentialIntegrityError(
                f"Cliente possui {order_count} pedido(s) e não pode ser excluído",
                field='customer_id'
            )
        self.session.delete(customer)
        self.session.flush()
        logger.info(f"Deleted customer: {customer_id}")
        return True

    def get_customer_orders(self, customer_id: str) -> Optional[List[Dict]]:
        """Orders of a customer, newest first."""
        customer = self.get_customer_model(customer_id)
        if not customer:
            return None
        return [order.to_dict() for order in customer.orders]
