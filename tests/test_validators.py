"""
Tests for input validation utilities
"""
import pytest
from datetime import date
from validators import (
    EXPENSE_CATEGORIES,
    ValidationError,
    format_validation_error,
    parse_date,
    parse_time,
    require_fields,
    require_valid,
    sanitize_filename,
    sanitize_string,
    validate_appointment_request,
    validate_budget_request,
    validate_email,
    validate_expense_request,
    validate_number_range,
    validate_phone,
    validate_product_request,
    validate_required_fields,
    validate_signature,
    validate_string_length,
    validate_time,
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required fields validation"""

    def test_validate_all_fields_present(self):
        """Test validation passes when all fields present"""
        data = {'name': 'Cabo PP', 'price': 12.5}
        is_valid, error = validate_required_fields(data, ['name', 'price'])
        assert is_valid is True
        assert error is None

    def test_validate_missing_field(self):
        """Test validation fails when field missing"""
        is_valid, error = validate_required_fields({'name': 'Cabo PP'}, ['name', 'price'])
        assert is_valid is False
        assert 'price' in error

    def test_validate_blank_string_field(self):
        """Test validation fails when field is whitespace only"""
        is_valid, _ = validate_required_fields({'name': '   '}, ['name'])
        assert is_valid is False

    def test_zero_is_present(self):
        """Test that a zero value counts as present"""
        is_valid, _ = validate_required_fields({'amount': 0}, ['amount'])
        assert is_valid is True

    def test_require_fields_raises_with_field(self):
        with pytest.raises(ValidationError) as exc_info:
            require_fields({'title': 'Visita'}, ['title', 'date'])
        assert exc_info.value.field == 'date'

    def test_require_valid(self):
        require_valid((True, None))
        with pytest.raises(ValidationError) as exc_info:
            require_valid((False, 'ruim'), field='x')
        assert exc_info.value.message == 'ruim'
        assert exc_info.value.to_dict() == {'success': False, 'error': 'ruim',
                                            'type': 'ValidationError', 'field': 'x'}


@pytest.mark.unit
class TestEmailValidation:
    """Tests for email validation"""

    @pytest.mark.parametrize('email', ['compras@alfa.com.br', 'joao.silva+nf@gmail.com'])
    def test_valid_email(self, email):
        assert validate_email(email)[0] is True

    @pytest.mark.parametrize('email', ['', None, 'sem-arroba', 'a@b', 'x@.com'])
    def test_invalid_email(self, email):
        assert validate_email(email)[0] is False

    def test_email_too_long(self):
        is_valid, error = validate_email('a' * 250 + '@x.com')
        assert is_valid is False
        assert 'too long' in error


@pytest.mark.unit
class TestPhoneValidation:
    """Tests for phone validation"""

    @pytest.mark.parametrize('phone', ['(71) 99999-8888', '+55 71 3333-4444', '7133334444'])
    def test_valid_phone(self, phone):
        assert validate_phone(phone)[0] is True

    @pytest.mark.parametrize('phone', ['', '123', 'telefone'])
    def test_invalid_phone(self, phone):
        assert validate_phone(phone)[0] is False


@pytest.mark.unit
class TestRanges:
    """Tests for string length and number ranges"""

    def test_string_length(self):
        assert validate_string_length('abc', min_length=2, max_length=5)[0] is True
        assert validate_string_length('a', min_length=2)[0] is False
        assert validate_string_length('abcdef', max_length=5)[0] is False
        assert validate_string_length(5)[0] is False

    def test_number_range(self):
        assert validate_number_range(5, min_value=0, max_value=10)[0] is True
        assert validate_number_range(-1, min_value=0)[0] is False
        assert validate_number_range(11, max_value=10)[0] is False

    def test_bool_is_not_a_number(self):
        assert validate_number_range(True)[0] is False
        assert validate_number_range('5')[0] is False


@pytest.mark.unit
class TestTimeAndSignature:
    """Tests for time strings and signature data URIs"""

    @pytest.mark.parametrize('value', ['00:00', '09:30', '23:59'])
    def test_valid_time(self, value):
        assert validate_time(value)[0] is True

    @pytest.mark.parametrize('value', ['24:00', '9:30', '12:60', 930])
    def test_invalid_time(self, value):
        assert validate_time(value)[0] is False

    def test_parse_time_normalises(self):
        assert parse_time('9:05') == '09:05'
        assert parse_time('14:30:00') == '14:30'

    @pytest.mark.parametrize('value', ['', None, '25:00', 'meio-dia'])
    def test_parse_time_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_time(value)

    def test_signature(self):
        assert validate_signature('data:image/png;base64,iVBORw0KGgo=')[0] is True
        assert validate_signature('data:text/html;base64,PGgxPg==')[0] is False
        assert validate_signature('https://example.com/sig.png')[0] is False


@pytest.mark.unit
class TestParseDate:
    """Tests for date parsing"""

    def test_iso_date(self):
        assert parse_date('2024-03-15') == date(2024, 3, 15)

    def test_iso_datetime(self):
        assert parse_date('2024-03-15T13:45:00Z') == date(2024, 3, 15)

    def test_date_passthrough(self):
        assert parse_date(date(2024, 1, 1)) == date(2024, 1, 1)

    def test_blank_optional(self):
        assert parse_date('', required=False) is None
        assert parse_date('lixo', required=False) is None

    def test_blank_required(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_date(None, field='due_date')
        assert exc_info.value.field == 'due_date'

    def test_malformed_required(self):
        with pytest.raises(ValidationError):
            parse_date('15/03/2024')


@pytest.mark.unit
class TestRequestValidators:
    """Tests for payload validators"""

    def test_product_request(self):
        assert validate_product_request({'name': 'Cabo', 'stock': 3, 'price': 2.5})[0] is True
        assert validate_product_request({'price': 2.5})[0] is False
        assert validate_product_request({'name': 'Cabo', 'stock': 1.5})[0] is False
        assert validate_product_request({'name': 'Cabo', 'cost': -1})[0] is False
        assert validate_product_request({'price': 2.5}, partial=True)[0] is True

    def test_appointment_request(self):
        payload = {'title': 'Visita', 'date': '2024-03-15', 'time': '09:00'}
        assert validate_appointment_request(payload)[0] is True
        assert validate_appointment_request({**payload, 'time': '9h'})[0] is False
        assert validate_appointment_request({**payload, 'date': 'amanhã'})[0] is False
        assert validate_appointment_request({**payload, 'duration': 0})[0] is False
        assert validate_appointment_request({'title': 'Visita'})[0] is False

    def test_budget_request(self):
        assert validate_budget_request({'customer_name': 'Alfa', 'items': []})[0] is True
        assert validate_budget_request({'customer_name': 'Alfa', 'items': {}})[0] is False
        assert validate_budget_request({'customer_name': 'Alfa', 'customer_email': 'x'})[0] is False
        assert validate_budget_request({'customer_name': 'Alfa', 'discount': -5})[0] is False
        assert validate_budget_request({'customer_name': 'Alfa', 'signature': 'abc'})[0] is False
        assert validate_budget_request({}, partial=True)[0] is True

    def test_expense_request(self):
        payload = {'description': 'Gasolina', 'amount': 100, 'date': '2024-03-01'}
        assert validate_expense_request(payload)[0] is True
        assert validate_expense_request({**payload, 'category': EXPENSE_CATEGORIES[0]})[0] is True
        assert validate_expense_request({**payload, 'category': 'Lazer'})[0] is False
        assert validate_expense_request({**payload, 'amount': -1})[0] is False


@pytest.mark.unit
class TestSanitization:
    """Tests for sanitizers"""

    def test_sanitize_string(self):
        assert sanitize_string('  texto\x00 ') == 'texto'
        assert sanitize_string('a' * 20, max_length=5) == 'aaaaa'
        assert sanitize_string(42) == '42'

    def test_sanitize_filename(self):
        assert sanitize_filename('../../etc/passwd') == 'etc_passwd'
        assert sanitize_filename('Proposta 01.pdf') == 'Proposta_01.pdf'
        assert sanitize_filename('../') == 'file'

    def test_format_validation_error(self):
        error = format_validation_error('email', 'Invalid email format')
        assert error['success'] is False
        assert error['field'] == 'email'
