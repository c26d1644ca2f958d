"""
Helper functions shared by the API blueprints.
"""

from datetime import date

from flask import current_app, request, session

from services.exceptions import AuthError, ValidationError
from validators import parse_date


def get_json_body(required=True):
    """
    Return the request's JSON object.

    Args:
        required: Raise ValidationError when the body is missing

    Returns:
        dict (empty when optional and absent)
    """
    data = request.get_json(silent=True)
    if data is None:
        if required:
            raise ValidationError("Corpo JSON obrigatório")
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Corpo JSON deve ser um objeto")
    return data


def current_organization_id():
    """Organization of the signed-in user."""
    org_id = session.get('organization_id')
    if not org_id:
        raise AuthError("Authentication required")
    return org_id


def current_user_id():
    return session.get('user_id')


def arg_date(name, default=None):
    """Optional ISO date query argument."""
    value = request.args.get(name)
    if not value:
        return default
    return parse_date(value, field=name)


def arg_bool(name, default=False):
    value = request.args.get(name)
    if value is None:
        return default
    return value.lower() in ('1', 'true', 'yes', 'on')


def month_anchor():
    """First day of the month named by ``year``/``month`` query args (default: today's)."""
    today = date.today()
    try:
        year = int(request.args.get('year', today.year))
        month = int(request.args.get('month', today.month))
        return date(year, month, 1)
    except ValueError:
        raise ValidationError("Mês inválido", field='month')


def config_value(key, default=None):
    return current_app.config.get(key, default)
