"""
Authentication Routes Blueprint

Handles sign-up, login/logout and the current user:
- /api/auth/signup
- /api/auth/login
- /api/auth/logout
- /api/auth/current-user
"""

from flask import Blueprint, jsonify
import logging

import auth
from app.utils.helpers import get_json_body
from database.connection import get_db_session

logger = logging.getLogger(__name__)

# Create blueprint
auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/api/auth/signup', methods=['POST'])
def signup_api():
    """Create a user profile (and its organization) and sign it in"""
    data = get_json_body()
    with get_db_session() as db:
        user = auth.sign_up(db, data.get('email'), data.get('password'), data.get('name'))
        auth.login(db, data['email'], data['password'])
    return jsonify({'success': True, 'user': user}), 201


@auth_bp.route('/api/auth/login', methods=['POST'])
def login_api():
    """Email + password login"""
    data = get_json_body()
    with get_db_session() as db:
        user = auth.login(db, data.get('email'), data.get('password'))
    return jsonify({'success': True, 'user': user})


@auth_bp.route('/api/auth/logout', methods=['POST'])
def logout_api():
    auth.logout()
    return jsonify({'success': True})


@auth_bp.route('/api/auth/current-user', methods=['GET'])
@auth.login_required
def get_current_user_api():
    """Get current logged-in user info"""
    with get_db_session() as db:
        user = auth.current_user(db)
    if user:
        return jsonify({'success': True, 'user': user})
    auth.logout()
    return jsonify({'success': False, 'error': 'Not authenticated'}), 401
