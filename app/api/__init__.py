"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

- auth_routes.py : Sign-up, login/logout, current user (/api/auth/*)
- catalog.py     : Products, services, restock, price simulator
- customers.py   : Customers, orders, checkout and order preview
- budgets.py     : Budgets, lifecycle (approve/convert) and proposal PDF
- agenda.py      : Appointments, calendar, CSV/PDF export, responsibles
- kanban.py      : Board columns and projects
- expenses.py    : Expenses and category totals
- dashboard.py   : Dashboard aggregates
- settings.py    : Company settings and user profile

Every route opens one database.connection.get_db_session() block, so a
request commits entirely or not at all. Service errors propagate to the
handlers registered in security.setup_error_handlers.
"""
