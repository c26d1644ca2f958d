"""
Input Validation & Sanitization Utilities
Tuple-returning validators for request payloads, plus raising helpers the
service layer uses to stop an operation before any I/O happens.
"""
import re
from datetime import date, datetime
from typing import Dict, Any, List, Optional, Tuple
from werkzeug.utils import secure_filename
import logging

from services.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?\d{8,15}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
DATA_URI_PATTERN = re.compile(r'^data:image/(png|jpe?g|gif|webp);base64,[A-Za-z0-9+/=\s]+$')

EXPENSE_CATEGORIES = [
    'Combustível',
    'Alimentação',
    'Ferramentas',
    'Manutenção Veículos',
    'Marketing',
    'Contas (Água/Luz/Internet)',
    'Outros',
]

__all__ = [
    'ValidationError',
    'EXPENSE_CATEGORIES',
    'validate_required_fields',
    'validate_email',
    'validate_phone',
    'validate_string_length',
    'validate_number_range',
    'validate_time',
    'validate_signature',
    'validate_product_request',
    'validate_appointment_request',
    'validate_budget_request',
    'validate_expense_request',
    'require_fields',
    'require_valid',
    'parse_date',
    'parse_time',
    'sanitize_string',
    'sanitize_filename',
    'format_validation_error',
]


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or _is_blank(data[field])]

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format, accepting the usual (11) 98765-4321 punctuation

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    cleaned_phone = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not PHONE_PATTERN.match(cleaned_phone):
        return False, "Invalid phone number format"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def validate_time(value: str) -> Tuple[bool, Optional[str]]:
    """Validate a 24h HH:MM time string"""
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        return False, "Invalid time format (expected HH:MM)"
    return True, None


def validate_signature(value: str) -> Tuple[bool, Optional[str]]:
    """Validate a signature captured as a base64 image data URI"""
    if not isinstance(value, str) or not DATA_URI_PATTERN.match(value):
        return False, "Signature must be a base64 image data URI"
    return True, None


def _validate_numbers(data: Dict[str, Any], fields: List[str], min_value: float = 0) -> Tuple[bool, Optional[str]]:
    for field in fields:
        if field in data and data[field] not in (None, ''):
            is_valid, error = validate_number_range(data[field], min_value=min_value)
            if not is_valid:
                return False, f"Invalid {field}: {error}"
    return True, None


def validate_product_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """
    Validate product create/update payload

    Args:
        data: Request data dictionary
        partial: True for updates, where only present fields are checked

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not partial:
        is_valid, error = validate_required_fields(data, ['name'])
        if not is_valid:
            return False, error

    if 'stock' in data and data['stock'] not in (None, ''):
        if isinstance(data['stock'], bool) or not isinstance(data['stock'], int) or data['stock'] < 0:
            return False, "Invalid stock: must be a non-negative integer"

    return _validate_numbers(data, ['min_stock', 'cost', 'price'])


def validate_appointment_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate appointment payload: title, date and time are mandatory"""
    if not partial:
        is_valid, error = validate_required_fields(data, ['title', 'date', 'time'])
        if not is_valid:
            return False, error

    if data.get('time'):
        is_valid, error = validate_time(data['time'])
        if not is_valid:
            return False, error

    if data.get('date') and parse_date(data['date'], required=False) is None:
        return False, "Invalid date format (expected YYYY-MM-DD)"

    return _validate_numbers(data, ['duration'], min_value=1)


def validate_budget_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate budget payload"""
    if not partial:
        is_valid, error = validate_required_fields(data, ['customer_name'])
        if not is_valid:
            return False, error

    if 'items' in data and not isinstance(data['items'], list):
        return False, "items must be an array"

    if data.get('customer_email'):
        is_valid, error = validate_email(data['customer_email'])
        if not is_valid:
            return False, f"Invalid customer_email: {error}"

    if data.get('signature'):
        is_valid, error = validate_signature(data['signature'])
        if not is_valid:
            return False, error

    return _validate_numbers(data, ['discount'])


def validate_expense_request(data: Dict[str, Any], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate expense payload"""
    if not partial:
        is_valid, error = validate_required_fields(data, ['description', 'amount', 'date'])
        if not is_valid:
            return False, error

    if data.get('category') and data['category'] not in EXPENSE_CATEGORIES:
        return False, f"Invalid category. Allowed: {', '.join(EXPENSE_CATEGORIES)}"

    return _validate_numbers(data, ['amount'])


def require_fields(data: Dict[str, Any], fields: List[str]):
    """Raise ValidationError naming the first missing field"""
    for field in fields:
        if _is_blank(data.get(field)):
            raise ValidationError(f"Campo obrigatório: {field}", field=field)


def require_valid(result: Tuple[bool, Optional[str]], field: Optional[str] = None):
    """Turn a (is_valid, error) tuple into a ValidationError"""
    is_valid, error = result
    if not is_valid:
        logger.debug(f"Validation failed: {error}")
        raise ValidationError(error, field=field)


def parse_date(value, required: bool = True, field: str = 'date') -> Optional[date]:
    """
    Parse an ISO date (or datetime) string.

    Returns None for blank input when not required; raises ValidationError
    for malformed input when required.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_blank(value):
        if required:
            raise ValidationError(f"Campo obrigatório: {field}", field=field)
        return None
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).date()
    except ValueError:
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            if required:
                raise ValidationError(f"Data inválida: {value}", field=field)
            return None


def parse_time(value, field: str = 'time') -> str:
    """Normalise H:MM / HH:MM(:SS) to HH:MM or raise ValidationError"""
    if _is_blank(value):
        raise ValidationError(f"Campo obrigatório: {field}", field=field)
    text = str(value).strip()
    parts = text.split(':')
    if len(parts) >= 2 and parts[0].isdigit() and parts[1].isdigit():
        text = f"{int(parts[0]):02d}:{parts[1][:2]}"
    is_valid, error = validate_time(text)
    if not is_valid:
        raise ValidationError(error, field=field)
    return text


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes and surrounding whitespace

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    sanitized = value.replace('\x00', '').strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a download filename

    Args:
        filename: Original filename

    Returns:
        Sanitized filename
    """
    safe_name = secure_filename(filename)

    if not safe_name:
        safe_name = 'file'

    return safe_name


def format_validation_error(field: str, message: str) -> Dict[str, Any]:
    """
    Format validation error for consistent API responses

    Args:
        field: Field name that failed validation
        message: Error message

    Returns:
        Error response dictionary
    """
    return {
        'success': False,
        'error': 'Validation Error',
        'field': field,
        'message': message
    }
