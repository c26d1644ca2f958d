"""
SQLAlchemy models for BizDesk.
Defines the tables for catalog, sales, budgets, agenda, kanban and expenses.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime, Date,
    ForeignKey, JSON, Index, CheckConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from database.connection import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSON_TYPE = JSON().with_variant(JSONB, 'postgresql')
ID_TYPE = String(36)


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# ORGANIZATION & USERS
# =============================================================================

class Organization(Base):
    """
    The business using the system. Company data printed on documents
    (name, address, CNPJ...) lives in ``settings``.
    """
    __tablename__ = 'organizations'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    settings = Column(JSON_TYPE, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = relationship("UserProfile", back_populates="organization")

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'settings': self.settings or {},
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class UserProfile(Base):
    """Application users; passwords are stored as werkzeug hashes."""
    __tablename__ = 'user_profiles'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255))
    role = Column(String(100), default='user')
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="users")

    __table_args__ = (
        Index('ix_user_profiles_organization', 'organization_id'),
    )

    def to_dict(self, include_sensitive=False):
        data = {
            'id': self.id,
            'organization_id': self.organization_id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'is_active': self.is_active,
            'last_login': _iso(self.last_login),
            'created_at': _iso(self.created_at)
        }
        if include_sensitive:
            data['password_hash'] = self.password_hash
        return data


class Responsible(Base):
    """People appointments and budgets can be assigned to."""
    __tablename__ = 'responsibles'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


# =============================================================================
# CATALOG
# =============================================================================

class Product(Base):
    """Stocked goods. ``stock`` only moves through order fulfillment or restock."""
    __tablename__ = 'products'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100))
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, default=0)
    cost = Column(Float, default=0)
    price = Column(Float, default=0)
    supplier = Column(String(255))
    batch = Column(String(100))
    expiry_date = Column(Date)
    image = Column(Text)
    observation = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        Index('ix_products_organization', 'organization_id'),
        Index('ix_products_category', 'category'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'stock': self.stock,
            'min_stock': self.min_stock,
            'cost': self.cost or 0,
            'price': self.price or 0,
            'supplier': self.supplier,
            'batch': self.batch,
            'expiry_date': _iso(self.expiry_date),
            'image': self.image,
            'observation': self.observation,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Service(Base):
    """Billable services; ``price_history`` is an append-only list of {date, price}."""
    __tablename__ = 'services'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100))
    description = Column(Text)
    price = Column(Float, default=0)
    cost = Column(Float, default=0)
    estimated_hours = Column(Float, default=0)
    active = Column(Boolean, default=True)
    price_history = Column(JSON_TYPE, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_services_organization', 'organization_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'description': self.description,
            'price': self.price or 0,
            'cost': self.cost or 0,
            'estimated_hours': self.estimated_hours or 0,
            'active': self.active,
            'price_history': list(self.price_history or []),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# CUSTOMERS & ORDERS
# =============================================================================

class Customer(Base):
    """Customer records; orders accumulate newest first."""
    __tablename__ = 'customers'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = relationship(
        "Order", back_populates="customer",
        order_by=lambda: [Order.date.desc(), Order.created_at.desc()]
    )

    __table_args__ = (
        Index('ix_customers_organization', 'organization_id'),
        Index('ix_customers_name', 'name'),
    )

    def to_dict(self, include_orders=True):
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_orders:
            data['orders'] = [order.to_dict() for order in self.orders]
            data['total_spent'] = round(sum(o.total_value or 0 for o in self.orders), 2)
        return data


class Order(Base):
    """A committed sale. Immutable after creation except for ``status``."""
    __tablename__ = 'orders'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    customer_id = Column(ID_TYPE, ForeignKey('customers.id'))
    budget_id = Column(ID_TYPE)
    date = Column(Date, nullable=False)
    status = Column(String(20), default='completed')  # pending, completed, canceled
    subtotal = Column(Float, default=0)
    discount_value = Column(Float, default=0)
    discount_percent = Column(Float, default=0)
    surcharge_value = Column(Float, default=0)
    surcharge_percent = Column(Float, default=0)
    total_value = Column(Float, default=0)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItemRow", back_populates="order", cascade="all, delete-orphan",
                         order_by="OrderItemRow.position")

    __table_args__ = (
        Index('ix_orders_organization', 'organization_id'),
        Index('ix_orders_customer', 'customer_id'),
        Index('ix_orders_date', 'date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'customer_name': self.customer.name if self.customer else None,
            'budget_id': self.budget_id,
            'date': _iso(self.date),
            'status': self.status,
            'items': [item.to_dict() for item in self.items],
            'subtotal': self.subtotal or 0,
            'discount_value': self.discount_value or 0,
            'discount_percent': self.discount_percent or 0,
            'surcharge_value': self.surcharge_value or 0,
            'surcharge_percent': self.surcharge_percent or 0,
            'total_value': self.total_value or 0,
            'notes': self.notes,
            'created_at': _iso(self.created_at)
        }


class _LineItemMixin:
    """Columns shared by order and budget lines (a frozen price snapshot)."""
    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    item_id = Column(ID_TYPE, nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False)  # product, service
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)
    position = Column(Integer, default=0)

    def to_dict(self):
        return {
            'item_id': self.item_id,
            'name': self.name,
            'type': self.type,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'total': self.total
        }


class OrderItemRow(_LineItemMixin, Base):
    __tablename__ = 'order_items'

    order_id = Column(ID_TYPE, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    order = relationship("Order", back_populates="items")


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(Base):
    """
    Quote/proposal sent to a customer. Customer fields are a snapshot taken
    when the budget was written. Approval generates an Order.
    """
    __tablename__ = 'budgets'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    customer_id = Column(ID_TYPE)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255))
    customer_phone = Column(String(50))
    customer_address = Column(Text)
    date = Column(Date, nullable=False)
    validity_date = Column(Date)
    status = Column(String(20), default='draft')  # draft, sent, approved, rejected, converted
    discount = Column(Float, default=0)
    total_value = Column(Float, default=0)
    notes = Column(Text)
    payment_method = Column(String(100))
    payment_terms = Column(String(255))
    warranty_notes = Column(Text)
    responsible = Column(String(255))
    signature = Column(Text)  # data URI
    order_id = Column(ID_TYPE)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("BudgetItemRow", back_populates="budget", cascade="all, delete-orphan",
                         order_by="BudgetItemRow.position")

    __table_args__ = (
        Index('ix_budgets_organization', 'organization_id'),
        Index('ix_budgets_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'customer_email': self.customer_email,
            'customer_phone': self.customer_phone,
            'customer_address': self.customer_address,
            'date': _iso(self.date),
            'validity_date': _iso(self.validity_date),
            'status': self.status,
            'items': [item.to_dict() for item in self.items],
            'discount': self.discount or 0,
            'total_value': self.total_value or 0,
            'notes': self.notes,
            'payment_method': self.payment_method,
            'payment_terms': self.payment_terms,
            'warranty_notes': self.warranty_notes,
            'responsible': self.responsible,
            'signature': self.signature,
            'order_id': self.order_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class BudgetItemRow(_LineItemMixin, Base):
    __tablename__ = 'budget_items'

    budget_id = Column(ID_TYPE, ForeignKey('budgets.id', ondelete='CASCADE'), nullable=False)
    budget = relationship("Budget", back_populates="items")


# =============================================================================
# AGENDA
# =============================================================================

class Appointment(Base):
    """Scheduled visit or service slot."""
    __tablename__ = 'appointments'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    customer_id = Column(ID_TYPE, ForeignKey('customers.id'))
    customer_name = Column(String(255))
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False, default='09:00')
    duration = Column(Integer, default=60)  # minutes
    status = Column(String(20), default='pending')  # pending, in_progress, completed, canceled
    responsible = Column(String(255))
    location = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_appointments_organization', 'organization_id'),
        Index('ix_appointments_date', 'date'),
        Index('ix_appointments_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'date': _iso(self.date),
            'time': self.time,
            'duration': self.duration,
            'status': self.status,
            'responsible': self.responsible,
            'location': self.location,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# KANBAN
# =============================================================================

class KanbanColumn(Base):
    """
    Board column. Projects reference it by id through ``Project.status``;
    ids are unique per organization.
    """
    __tablename__ = 'kanban_columns'

    id = Column(String(64), primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), primary_key=True)
    title = Column(String(255), nullable=False)
    position = Column(Integer, default=0)
    color = Column(String(20), default='#e2e8f0')
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'position': self.position,
            'color': self.color
        }


class Project(Base):
    """Kanban card."""
    __tablename__ = 'projects'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    customer_name = Column(String(255), nullable=False)
    status = Column(String(64), nullable=False)  # KanbanColumn.id, checked in the repository
    priority = Column(String(10), default='medium')  # low, medium, high
    due_date = Column(Date)
    value = Column(Float, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_projects_organization', 'organization_id'),
        Index('ix_projects_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'customer_name': self.customer_name,
            'status': self.status,
            'priority': self.priority,
            'due_date': _iso(self.due_date),
            'value': self.value or 0,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# EXPENSES
# =============================================================================

class Expense(Base):
    """Operating expense."""
    __tablename__ = 'expenses'

    id = Column(ID_TYPE, primary_key=True, default=generate_uuid)
    organization_id = Column(ID_TYPE, ForeignKey('organizations.id'), nullable=False)
    description = Column(String(500), nullable=False)
    amount = Column(Float, nullable=False, default=0)
    date = Column(Date, nullable=False)
    category = Column(String(100), default='Outros')
    payment_method = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_expenses_organization', 'organization_id'),
        Index('ix_expenses_date', 'date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'description': self.description,
            'amount': self.amount or 0,
            'date': _iso(self.date),
            'category': self.category,
            'payment_method': self.payment_method,
            'created_at': _iso(self.created_at)
        }
