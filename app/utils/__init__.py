"""
Utilities Package

Shared helper functions used across the API blueprints.
"""

from app.utils.helpers import (
    get_json_body,
    current_organization_id,
    current_user_id,
    arg_date,
    arg_bool,
    month_anchor,
    config_value,
)

__all__ = [
    'get_json_body',
    'current_organization_id',
    'current_user_id',
    'arg_date',
    'arg_bool',
    'month_anchor',
    'config_value',
]
