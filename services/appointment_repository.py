"""
Appointment Repository - Database access layer for the agenda.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session

from database.models import Appointment, Customer
from services.agenda import APPOINTMENT_STATUSES, check_transition
from services.exceptions import NotFoundError, ValidationError
from validators import parse_date, parse_time, require_fields

logger = logging.getLogger(__name__)

DEFAULT_TIME = '09:00'
DEFAULT_DURATION = 60
TEXT_FIELDS = ['title', 'description', 'customer_name', 'responsible', 'location']


class AppointmentRepository:
    """Repository for appointment database operations."""

    def __init__(self, session: Session, organization_id: str):
        self.session = session
        self.organization_id = organization_id

    def _query(self):
        return self.session.query(Appointment).filter(
            Appointment.organization_id == self.organization_id
        )

    def _get(self, appointment_id: str) -> Appointment:
        appointment = self._query().filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError('Appointment', appointment_id)
        return appointment

    def _resolve_customer(self, appointment: Appointment, customer_id: Optional[str]):
        """Link a customer when given; the typed name stays as the fallback."""
        if not customer_id:
            appointment.customer_id = None
            return
        customer = self.session.query(Customer).filter(
            Customer.id == customer_id,
            Customer.organization_id == self.organization_id
        ).first()
        if not customer:
            raise NotFoundError('Customer', customer_id)
        appointment.customer_id = customer.id
        appointment.customer_name = customer.name

    @staticmethod
    def _duration(value) -> int:
        if value in (None, ''):
            return DEFAULT_DURATION
        try:
            duration = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Duração inválida", field='duration')
        if duration < 1:
            raise ValidationError("Duração deve ser positiva", field='duration')
        return duration

    def list_appointments(self, start: date = None, end: date = None) -> List[Dict]:
        """List appointments, optionally within [start, end], by date and time."""
        query = self._query()
        if start:
            query = query.filter(Appointment.date >= start)
        if end:
            query = query.filter(Appointment.date <= end)
        appointments = query.order_by(Appointment.date, Appointment.time).all()
        return [a.to_dict() for a in appointments]

    def get_appointment(self, appointment_id: str) -> Optional[Dict]:
        appointment = self._query().filter(Appointment.id == appointment_id).first()
        return appointment.to_dict() if appointment else None

    def create_appointment(self, data: Dict) -> Dict:
        """Create an appointment. Title, date and time are required."""
        data = dict(data)
        data.setdefault('time', DEFAULT_TIME)
        require_fields(data, ['title', 'date', 'time'])
        status = data.get('status') or 'pending'
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Status inválido: {status}", field='status')

        appointment = Appointment(
            organization_id=self.organization_id,
            title=data['title'].strip(),
            description=data.get('description'),
            customer_name=data.get('customer_name'),
            date=parse_date(data['date']),
            time=parse_time(data['time']),
            duration=self._duration(data.get('duration')),
            status=status,
            responsible=data.get('responsible'),
            location=data.get('location'),
        )
        self._resolve_customer(appointment, data.get('customer_id'))
        if not appointment.customer_name:
            raise ValidationError("Informe o cliente", field='customer_name')

        self.session.add(appointment)
        self.session.flush()
        logger.info(f"Created appointment: {appointment.id}")
        return appointment.to_dict()

    def update_appointment(self, appointment_id: str, data: Dict) -> Dict:
        appointment = self._get(appointment_id)

        for key in TEXT_FIELDS:
            if key in data:
                setattr(appointment, key, data[key])
        if 'title' in data:
            require_fields(data, ['title'])
        if 'date' in data:
            appointment.date = parse_date(data['date'])
        if 'time' in data:
            appointment.time = parse_time(data['time'])
        if 'duration' in data:
            appointment.duration = self._duration(data['duration'])
        if 'customer_id' in data:
            self._resolve_customer(appointment, data['customer_id'])
        if 'status' in data and data['status'] != appointment.status:
            self._apply_status(appointment, data['status'])

        appointment.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated appointment: {appointment_id}")
        return appointment.to_dict()

    def set_status(self, appointment_id: str, status: str) -> Dict:
        appointment = self._get(appointment_id)
        self._apply_status(appointment, status)
        appointment.updated_at = datetime.utcnow()
        self.session.flush()
        return appointment.to_dict()

    def _apply_status(self, appointment: Appointment, status: str):
        if status not in APPOINTMENT_STATUSES:
            raise ValidationError(f"Status inválido: {status}", field='status')
        check_transition(appointment.status, status)
        logger.info(f"Appointment {appointment.id} status {appointment.status} -> {status}")
        appointment.status = status

    def delete_appointment(self, appointment_id: str) -> bool:
        appointment = self._query().filter(Appointment.id == appointment_id).first()
        if not appointment:
            return False
        self.session.delete(appointment)
        self.session.flush()
        logger.info(f"Deleted appointment: {appointment_id}")
        return True
