"""
Dashboard Routes Blueprint

- /api/dashboard: Inventory, finance and agenda aggregates, monthly series
"""

import logging
from flask import Blueprint, jsonify

from auth import login_required
from app.utils.helpers import arg_date, config_value, current_organization_id
from database.connection import get_db_session
from services.dashboard import build_dashboard

logger = logging.getLogger(__name__)

# Create blueprint
dashboard_bp = Blueprint('dashboard_bp', __name__)


@dashboard_bp.route('/api/dashboard', methods=['GET'])
@login_required
def get_dashboard():
    """Dashboard payload; ``?today=`` pins the reference date"""
    with get_db_session() as session:
        dashboard = build_dashboard(
            session,
            current_organization_id(),
            today=arg_date('today'),
            low_margin_product=config_value('LOW_MARGIN_PRODUCT_THRESHOLD', 0.2),
            low_margin_service=config_value('LOW_MARGIN_SERVICE_THRESHOLD', 0.3),
        )
    return jsonify({'success': True, 'dashboard': dashboard})
