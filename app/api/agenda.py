"""
Agenda Routes Blueprint

Appointments, the month calendar and exports:
- /api/appointments, /api/appointments/<id>, /api/appointments/<id>/status
- /api/appointments/calendar?year=&month=
- /api/appointments/upcoming
- /api/appointments/export.csv, /api/appointments/export.pdf
- /api/responsibles, /api/responsibles/<id>
"""

import io
import logging
from datetime import date
from flask import Blueprint, Response, request, jsonify, send_file

from auth import login_required
from app.utils.helpers import arg_date, config_value, current_organization_id, get_json_body, month_anchor
from database.connection import get_db_session
from services.agenda import csv_filename, export_csv, filter_appointments, project_to_calendar, upcoming
from services.appointment_repository import AppointmentRepository
from services.documents import appointments_pdf_filename, generate_appointments_pdf
from services.exceptions import NotFoundError
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)

# Create blueprint
agenda_bp = Blueprint('agenda_bp', __name__)


def _filtered_appointments(session, org_id):
    """Appointments matching the search/status/responsible/date query args"""
    appointments = AppointmentRepository(session, org_id).list_appointments(
        start=arg_date('start'), end=arg_date('end')
    )
    return filter_appointments(
        appointments,
        search=request.args.get('search', ''),
        status=request.args.get('status', 'all'),
        responsible=request.args.get('responsible', '')
    )


# ============================================================================
# APPOINTMENTS
# ============================================================================

@agenda_bp.route('/api/appointments', methods=['GET', 'POST'])
@login_required
def handle_appointments():
    org_id = current_organization_id()
    with get_db_session() as session:
        if request.method == 'GET':
            return jsonify({'success': True, 'appointments': _filtered_appointments(session, org_id)})

        appointment = AppointmentRepository(session, org_id).create_appointment(get_json_body())
    return jsonify({'success': True, 'appointment': appointment}), 201


@agenda_bp.route('/api/appointments/<appointment_id>', methods=['GET', 'PUT', 'DELETE'])
@login_required
def handle_appointment(appointment_id):
    org_id = current_organization_id()
    with get_db_session() as session:
        repo = AppointmentRepository(session, org_id)
        if request.method == 'GET':
            appointment = repo.get_appointment(appointment_id)
            if not appointment:
                raise NotFoundError('Appointment', appointment_id)
        elif request.method == 'PUT':
            appointment = repo.update_appointment(appointment_id, get_json_body())
        else:
            if not repo.delete_appointment(appointment_id):
                raise NotFoundError('Appointment', appointment_id)
            return jsonify({'success': True})
    return jsonify({'success': True, 'appointment': appointment})


@agenda_bp.route('/api/appointments/<appointment_id>/status', methods=['PUT', 'PATCH'])
@login_required
def set_appointment_status(appointment_id):
    data = get_json_body()
    with get_db_session() as session:
        appointment = AppointmentRepository(session, current_organization_id()).set_status(
            appointment_id, data.get('status')
        )
    return jsonify({'success': True, 'appointment': appointment})


@agenda_bp.route('/api/appointments/calendar', methods=['GET'])
@login_required
def get_calendar():
    """Month grid with per-day appointments and status dots"""
    anchor = month_anchor()
    with get_db_session() as session:
        appointments = _filtered_appointments(session, current_organization_id())
    calendar = project_to_calendar(appointments, anchor,
                                   max_dots=config_value('CALENDAR_MAX_DOTS', 4))
    return jsonify({'success': True, 'calendar': calendar})


@agenda_bp.route('/api/appointments/upcoming', methods=['GET'])
@login_required
def get_upcoming():
    limit = request.args.get('limit', 5, type=int)
    with get_db_session() as session:
        appointments = AppointmentRepository(session, current_organization_id()).list_appointments(
            start=date.today()
        )
    return jsonify({'success': True, 'appointments': upcoming(appointments, limit=limit)})


@agenda_bp.route('/api/appointments/export.csv', methods=['GET'])
@login_required
def export_appointments_csv():
    with get_db_session() as session:
        appointments = _filtered_appointments(session, current_organization_id())
    return Response(
        export_csv(appointments),
        mimetype='text/csv; charset=utf-8',
        headers={'Content-Disposition': f'attachment; filename="{csv_filename()}"'}
    )


@agenda_bp.route('/api/appointments/export.pdf', methods=['GET'])
@login_required
def export_appointments_pdf():
    org_id = current_organization_id()
    with get_db_session() as session:
        appointments = _filtered_appointments(session, org_id)
        settings = SettingsService(session, org_id).get_company_settings()
    pdf = generate_appointments_pdf(appointments, settings)
    return send_file(io.BytesIO(pdf), mimetype='application/pdf', as_attachment=True,
                     download_name=appointments_pdf_filename())


# ============================================================================
# RESPONSIBLES
# ============================================================================

@agenda_bp.route('/api/responsibles', methods=['GET', 'POST'])
@login_required
def handle_responsibles():
    org_id = current_organization_id()
    with get_db_session() as session:
        settings = SettingsService(session, org_id)
        if request.method == 'GET':
            return jsonify({'success': True, 'responsibles': settings.list_responsibles()})
        responsible = settings.add_responsible(get_json_body().get('name'))
    return jsonify({'success': True, 'responsible': responsible}), 201


@agenda_bp.route('/api/responsibles/<responsible_id>', methods=['DELETE'])
@login_required
def delete_responsible(responsible_id):
    with get_db_session() as session:
        removed = SettingsService(session, current_organization_id()).remove_responsible(responsible_id)
    if not removed:
        raise NotFoundError('Responsible', responsible_id)
    return jsonify({'success': True})
