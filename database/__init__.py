"""
Database package for BizDesk.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure_engine,
    get_db,
    get_db_session,
    init_db,
    check_db_connection
)

from database.models import (
    Organization,
    UserProfile,
    Responsible,
    Product,
    Service,
    Customer,
    Order,
    OrderItemRow,
    Budget,
    BudgetItemRow,
    Appointment,
    KanbanColumn,
    Project,
    Expense
)

__all__ = [
    # Connection
    'Base',
    'configure_engine',
    'get_db',
    'get_db_session',
    'init_db',
    'check_db_connection',
    # Models
    'Organization',
    'UserProfile',
    'Responsible',
    'Product',
    'Service',
    'Customer',
    'Order',
    'OrderItemRow',
    'Budget',
    'BudgetItemRow',
    'Appointment',
    'KanbanColumn',
    'Project',
    'Expense'
]
