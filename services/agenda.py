"""
Agenda - appointment filtering, calendar projection and CSV export.

Works on appointment dicts (``Appointment.to_dict()``) so the same
functions serve the API and the tests without a session.
"""

import calendar
import csv
import io
import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from services.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)

APPOINTMENT_STATUSES = ('pending', 'in_progress', 'completed', 'canceled')

APPOINTMENT_TRANSITIONS = {
    'pending': {'in_progress', 'canceled'},
    'in_progress': {'completed', 'canceled'},
    'completed': set(),
    'canceled': set(),
}

STATUS_LABELS = {
    'pending': 'Pendente',
    'in_progress': 'Em Andamento',
    'completed': 'Concluído',
    'canceled': 'Cancelado',
}

STATUS_COLORS = {
    'pending': '#3b82f6',
    'in_progress': '#f59e0b',
    'completed': '#22c55e',
    'canceled': '#ef4444',
}

MONTH_NAMES = ['janeiro', 'fevereiro', 'março', 'abril', 'maio', 'junho', 'julho',
               'agosto', 'setembro', 'outubro', 'novembro', 'dezembro']
WEEKDAY_HEADERS = ['D', 'S', 'T', 'Q', 'Q', 'S', 'S']  # Sunday first

CSV_HEADERS = ['Data', 'Hora', 'Título', 'Cliente', 'Responsável', 'Status', 'Local', 'Descrição']

MAX_CALENDAR_DOTS = 4


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _sort_key(appointment: Dict):
    return (str(appointment.get('date') or ''), str(appointment.get('time') or ''))


def format_date_br(value) -> str:
    day = _as_date(value)
    return day.strftime('%d/%m/%Y') if day else ''


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status or '')


def month_title(anchor: date) -> str:
    """'Março 2024'"""
    return f"{MONTH_NAMES[anchor.month - 1].capitalize()} {anchor.year}"


def check_transition(current: str, target: str):
    """Raise unless ``current -> target`` is allowed. Same-status writes pass."""
    if current == target:
        return
    if target not in APPOINTMENT_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError('appointment', current, target)


def filter_appointments(appointments: Iterable[Dict], search: str = '', status: str = 'all',
                        responsible: str = '') -> List[Dict]:
    """
    Case-insensitive search over title and customer name, exact status
    (or 'all'), substring match on responsible. Sorted by date then time.
    """
    term = (search or '').strip().lower()
    who = (responsible or '').strip().lower()
    status = status or 'all'

    result = []
    for appointment in appointments:
        if term:
            title = (appointment.get('title') or '').lower()
            customer = (appointment.get('customer_name') or '').lower()
            if term not in title and term not in customer:
                continue
        if status != 'all' and appointment.get('status') != status:
            continue
        if who and who not in (appointment.get('responsible') or '').lower():
            continue
        result.append(appointment)

    return sorted(result, key=_sort_key)


def group_by_day(appointments: Iterable[Dict], anchor: date) -> Dict[int, List[Dict]]:
    """
    Bucket the appointments falling in ``anchor``'s month by day of month.
    Each appointment lands in exactly one bucket; other months are dropped.
    """
    buckets: Dict[int, List[Dict]] = {}
    for appointment in appointments:
        day = _as_date(appointment.get('date'))
        if day is None or day.year != anchor.year or day.month != anchor.month:
            continue
        buckets.setdefault(day.day, []).append(appointment)
    for day_items in buckets.values():
        day_items.sort(key=_sort_key)
    return buckets


def project_to_calendar(appointments: Iterable[Dict], anchor: date,
                        today: Optional[date] = None,
                        max_dots: int = MAX_CALENDAR_DOTS) -> Dict:
    """
    Month grid for ``anchor``: leading blank cells up to the first weekday
    (Sunday first), then one cell per day with its appointments, up to
    ``max_dots`` status dots and the overflow count.
    """
    today = today or date.today()
    buckets = group_by_day(appointments, anchor)
    first = date(anchor.year, anchor.month, 1)
    padding = (first.weekday() + 1) % 7
    days_in_month = calendar.monthrange(anchor.year, anchor.month)[1]

    cells = []
    for day_number in range(1, days_in_month + 1):
        current = date(anchor.year, anchor.month, day_number)
        day_items = buckets.get(day_number, [])
        cells.append({
            'day': day_number,
            'date': current.isoformat(),
            'is_today': current == today,
            'appointments': day_items,
            'dots': [
                {'status': a.get('status'), 'color': STATUS_COLORS.get(a.get('status'))}
                for a in day_items[:max_dots]
            ],
            'overflow': max(0, len(day_items) - max_dots),
        })

    return {
        'year': anchor.year,
        'month': anchor.month,
        'title': month_title(anchor),
        'weekdays': WEEKDAY_HEADERS,
        'padding': padding,
        'days': cells,
    }


def upcoming(appointments: Iterable[Dict], today: Optional[date] = None,
             limit: int = 5) -> List[Dict]:
    """Next non-canceled appointments from today on."""
    today = today or date.today()
    pending = [a for a in appointments
               if a.get('status') != 'canceled'
               and (_as_date(a.get('date')) or date.min) >= today]
    return sorted(pending, key=_sort_key)[:limit]


def export_csv(appointments: Iterable[Dict]) -> str:
    """
    CSV with one header row, every field quoted. Dates as dd/mm/yyyy,
    statuses as their Portuguese labels.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    count = 0
    for appointment in appointments:
        writer.writerow([
            format_date_br(appointment.get('date')),
            appointment.get('time') or '',
            appointment.get('title') or '',
            appointment.get('customer_name') or '',
            appointment.get('responsible') or '',
            status_label(appointment.get('status')),
            appointment.get('location') or '',
            appointment.get('description') or '',
        ])
        count += 1
    logger.info(f"Exported {count} appointments to CSV")
    return buffer.getvalue()


def csv_filename(today: Optional[date] = None) -> str:
    return f"agendamentos_{(today or date.today()).isoformat()}.csv"
