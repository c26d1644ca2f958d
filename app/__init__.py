"""
BizDesk - Application Package

This package contains the HTTP layer:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Helpers shared by the blueprints

The app factory and core Flask setup live in app_init.py at the project root;
business logic lives in the root services/ package.
"""

import logging

from app.api.auth_routes import auth_bp
from app.api.catalog import catalog_bp
from app.api.customers import customers_bp
from app.api.budgets import budgets_bp
from app.api.agenda import agenda_bp
from app.api.kanban import kanban_bp
from app.api.expenses import expenses_bp
from app.api.dashboard import dashboard_bp
from app.api.settings import settings_bp

logger = logging.getLogger(__name__)

BLUEPRINTS = [
    auth_bp,
    catalog_bp,
    customers_bp,
    budgets_bp,
    agenda_bp,
    kanban_bp,
    expenses_bp,
    dashboard_bp,
    settings_bp,
]


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from app_init.create_app after security is configured.

    Args:
        app: Flask application instance
    """
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
    logger.info(f"Registered {len(BLUEPRINTS)} API blueprints")


__all__ = ['register_blueprints', 'BLUEPRINTS', 'auth_bp', 'catalog_bp', 'customers_bp',
           'budgets_bp', 'agenda_bp', 'kanban_bp', 'expenses_bp', 'dashboard_bp', 'settings_bp']
