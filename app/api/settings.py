"""
Settings Routes Blueprint

- /api/settings/company: Company data printed on documents
- /api/settings/profile: The signed-in user's profile
"""

import logging
from flask import Blueprint, request, jsonify

from auth import login_required
from app.utils.helpers import current_organization_id, current_user_id, get_json_body
from database.connection import get_db_session
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)

# Create blueprint
settings_bp = Blueprint('settings_bp', __name__)


@settings_bp.route('/api/settings/company', methods=['GET', 'PUT'])
@login_required
def handle_company_settings():
    with get_db_session() as session:
        service = SettingsService(session, current_organization_id())
        if request.method == 'GET':
            settings = service.get_company_settings()
        else:
            settings = service.update_company_settings(get_json_body())
    return jsonify({'success': True, 'settings': settings})


@settings_bp.route('/api/settings/profile', methods=['GET', 'PUT'])
@login_required
def handle_profile():
    with get_db_session() as session:
        service = SettingsService(session, current_organization_id())
        if request.method == 'GET':
            profile = service.get_profile(current_user_id())
        else:
            profile = service.update_profile(current_user_id(), get_json_body())
    return jsonify({'success': True, 'profile': profile})
