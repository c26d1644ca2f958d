"""
User Authentication Module
Handles sign-up, login and the Flask session for user profiles.
Passwords are stored as werkzeug pbkdf2 hashes on ``UserProfile``.
"""
import logging
import re
from datetime import datetime
from functools import wraps
from typing import Dict, Optional

from flask import session, jsonify
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from database.models import Organization, UserProfile
from services.exceptions import AuthError, ValidationError
from services.kanban_repository import KanbanRepository
from validators import require_fields, require_valid, validate_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def safe_generate_password_hash(password):
    """Generate password hash using pbkdf2 for compatibility"""
    return generate_password_hash(password, method='pbkdf2:sha256')


def safe_check_password_hash(pwhash, password):
    return check_password_hash(pwhash, password)


def _normalize_email(email: str) -> str:
    return (email or '').strip().lower()


def _slugify(text: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', (text or '').lower()).strip('-')
    return slug or 'empresa'


def get_user_by_email(db: Session, email: str) -> Optional[UserProfile]:
    return db.query(UserProfile).filter(UserProfile.email == _normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: str) -> Optional[UserProfile]:
    return db.query(UserProfile).filter(UserProfile.id == user_id).first()


def sign_up(db: Session, email: str, password: str, name: str,
            organization_id: str = None) -> Dict:
    """
    Create a user profile. Without an organization id the user gets a new
    organization named after them, with empty company settings.
    """
    require_fields({'email': email, 'password': password}, ['email', 'password'])
    require_valid(validate_email(email), field='email')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres", field='password'
        )
    if get_user_by_email(db, email):
        raise ValidationError("E-mail já cadastrado", field='email')

    if not organization_id:
        base = _slugify(name or email.split('@')[0])
        slug = base
        suffix = 1
        while db.query(Organization).filter(Organization.slug == slug).first():
            suffix += 1
            slug = f"{base}-{suffix}"
        org = Organization(name=name or email, slug=slug, settings={})
        db.add(org)
        db.flush()
        organization_id = org.id
        KanbanRepository(db, organization_id).ensure_default_columns()

    user = UserProfile(
        organization_id=organization_id,
        email=_normalize_email(email),
        full_name=name,
        role='admin',
        password_hash=safe_generate_password_hash(password),
        is_active=True,
    )
    db.add(user)
    db.flush()
    logger.info(f"Created user profile: {user.id}")
    return user.to_dict()


def authenticate_user(db: Session, email: str, password: str) -> UserProfile:
    """Check credentials; raises AuthError with a generic message on failure."""
    user = get_user_by_email(db, email)
    if not user or not safe_check_password_hash(user.password_hash, password or ''):
        logger.warning(f"Failed login for {_normalize_email(email)}")
        raise AuthError("E-mail ou senha inválidos")
    if not user.is_active:
        raise AuthError("Conta desativada")

    user.last_login = datetime.utcnow()
    db.flush()
    logger.info(f"User authenticated: {user.id}")
    return user


def login_user(user: UserProfile):
    """Set user session"""
    session['user_id'] = user.id
    session['organization_id'] = user.organization_id
    session['user_email'] = user.email
    session['user_name'] = user.full_name
    session.permanent = True


def login(db: Session, email: str, password: str) -> Dict:
    user = authenticate_user(db, email, password)
    login_user(user)
    return user.to_dict()


def logout():
    """Clear user session"""
    session.clear()


def current_user(db: Session) -> Optional[Dict]:
    """Profile of the signed-in user, or None."""
    user_id = session.get('user_id')
    if not user_id:
        return None
    user = get_user_by_id(db, user_id)
    if not user or not user.is_active:
        return None
    return user.to_dict()


def is_authenticated():
    return 'user_id' in session


def login_required(f):
    """Decorator to require login for a route"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_authenticated():
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function
