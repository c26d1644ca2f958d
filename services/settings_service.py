"""
Settings Service - company data, the current user's profile and responsibles.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from database.models import Organization, Responsible, UserProfile
from services.exceptions import NotFoundError, ValidationError
from validators import require_fields, require_valid, validate_email

logger = logging.getLogger(__name__)

COMPANY_FIELDS = [
    'company_name', 'company_cnpj', 'company_address', 'company_city',
    'company_phone', 'company_email', 'company_logo', 'warranty_text',
]
PROFILE_FIELDS = ['full_name']


class SettingsService:
    """Organization-wide settings plus the signed-in user's own profile."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id

    def _organization(self) -> Organization:
        org = self.session.query(Organization).filter(
            Organization.id == self.organization_id
        ).first()
        if not org:
            raise NotFoundError('Organization', self.organization_id)
        return org

    # =========================================================================
    # COMPANY
    # =========================================================================

    def get_company_settings(self) -> Dict:
        org = self._organization()
        settings = dict(org.settings or {})
        settings.setdefault('company_name', org.name)
        return settings

    def update_company_settings(self, data: Dict) -> Dict:
        """Merge known company fields into the organization settings."""
        if data.get('company_email'):
            require_valid(validate_email(data['company_email']), field='company_email')
        org = self._organization()
        settings = dict(org.settings or {})
        for key in COMPANY_FIELDS:
            if key in data:
                settings[key] = data[key]
        # reassign so the JSON column is flagged dirty
        org.settings = settings
        if data.get('company_name'):
            org.name = data['company_name']
        org.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated company settings for {self.organization_id}")
        return self.get_company_settings()

    def document_settings(self, user_id: Optional[str] = None,
                          default_warranty: str = '') -> Dict:
        """Settings as consumed by the PDF generators."""
        settings = self.get_company_settings()
        settings.setdefault('warranty_text', default_warranty)
        if user_id:
            profile = self.get_profile(user_id)
            settings['full_name'] = profile.get('full_name')
        return settings

    # =========================================================================
    # PROFILE
    # =========================================================================

    def _user(self, user_id: str) -> UserProfile:
        user = self.session.query(UserProfile).filter(
            UserProfile.id == user_id,
            UserProfile.organization_id == self.organization_id
        ).first()
        if not user:
            raise NotFoundError('UserProfile', user_id)
        return user

    def get_profile(self, user_id: str) -> Dict:
        return self._user(user_id).to_dict()

    def update_profile(self, user_id: str, data: Dict) -> Dict:
        user = self._user(user_id)
        for key in PROFILE_FIELDS:
            if key in data:
                setattr(user, key, data[key])
        user.updated_at = datetime.utcnow()
        self.session.flush()
        return user.to_dict()

    # =========================================================================
    # RESPONSIBLES
    # =========================================================================

    def list_responsibles(self) -> List[Dict]:
        rows = self.session.query(Responsible).filter(
            Responsible.organization_id == self.organization_id
        ).order_by(Responsible.name).all()
        return [r.to_dict() for r in rows]

    def add_responsible(self, name: str) -> Dict:
        require_fields({'name': name}, ['name'])
        name = name.strip()
        exists = self.session.query(Responsible).filter(
            Responsible.organization_id == self.organization_id,
            Responsible.name == name
        ).first()
        if exists:
            raise ValidationError(f"Responsável já cadastrado: {name}", field='name')
        responsible = Responsible(organization_id=self.organization_id, name=name)
        self.session.add(responsible)
        self.session.flush()
        logger.info(f"Added responsible: {responsible.id}")
        return responsible.to_dict()

    def remove_responsible(self, responsible_id: str) -> bool:
        responsible = self.session.query(Responsible).filter(
            Responsible.id == responsible_id,
            Responsible.organization_id == self.organization_id
        ).first()
        if not responsible:
            return False
        self.session.delete(responsible)
        self.session.flush()
        return True
