"""
Tests for PDF generation and document helpers
"""
import logging
import pytest
from datetime import date, datetime

from services.documents import (
    appointments_pdf_filename,
    budget_filename,
    budget_number,
    format_currency,
    generate_appointments_pdf,
    generate_budget_pdf,
)

# 1x1 transparent PNG
PNG_PIXEL = ('data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8'
             'AAAAASUVORK5CYII=')


@pytest.fixture
def budget():
    return {
        'id': '5f2c9a1e-7b3d-4c8e-9f10-a1b2c3d4e5f6',
        'customer_name': 'Padaria Boa Massa',
        'customer_email': 'contato@boamassa.com',
        'date': '2024-03-01',
        'validity_date': '2024-03-08',
        'status': 'draft',
        'discount': 50,
        'total_value': 350,
        'items': [
            {'item_id': 'p1', 'name': 'Disjuntor <32A>', 'type': 'product', 'quantity': 2,
             'unit_price': 100, 'total': 200},
            {'item_id': 's1', 'name': 'Instalação', 'type': 'service', 'quantity': 1,
             'unit_price': 200, 'total': 200},
        ],
        'notes': 'Entrega em 5 dias úteis & instalação inclusa',
    }


@pytest.fixture
def settings():
    return {
        'company_name': 'Bahia Automação',
        'company_cnpj': '12.345.678/0001-90',
        'company_email': 'contato@bahia.com',
        'full_name': 'Administrador',
    }


@pytest.mark.unit
class TestHelpers:
    """Tests for formatting helpers"""

    @pytest.mark.parametrize('value,expected', [
        (1234.5, 'R$ 1.234,50'),
        (0, 'R$ 0,00'),
        (None, 'R$ 0,00'),
        (1000000, 'R$ 1.000.000,00'),
    ])
    def test_format_currency(self, value, expected):
        assert format_currency(value) == expected

    def test_budget_number(self, budget):
        assert budget_number(budget['id']) == 'C3D4E5F6'
        assert budget_number(None) == '00000000'

    def test_filenames(self, budget):
        assert budget_filename(budget) == 'Proposta_C3D4E5F6.pdf'
        assert appointments_pdf_filename(date(2024, 3, 15)) == 'relatorio_agendamentos_2024-03-15.pdf'


@pytest.mark.unit
class TestBudgetPdf:
    """Tests for the proposal PDF"""

    def test_generates_pdf(self, budget, settings):
        pdf = generate_budget_pdf(budget, settings, now=datetime(2024, 3, 1, 10, 30))
        assert pdf.startswith(b'%PDF')
        assert len(pdf) > 1000

    def test_without_settings_or_items(self, budget):
        budget['items'] = []
        assert generate_budget_pdf(budget).startswith(b'%PDF')

    def test_with_signature(self, budget, settings):
        budget['signature'] = PNG_PIXEL
        assert generate_budget_pdf(budget, settings).startswith(b'%PDF')

    def test_unreadable_signature_is_skipped(self, budget, settings, caplog):
        budget['signature'] = 'data:image/png;base64,bm90IGFuIGltYWdl'
        with caplog.at_level(logging.WARNING, logger='services.documents'):
            pdf = generate_budget_pdf(budget, settings)
        assert pdf.startswith(b'%PDF')
        assert 'unreadable signature' in caplog.text


@pytest.mark.unit
class TestAppointmentsPdf:
    """Tests for the appointment report"""

    def test_generates_pdf(self, settings):
        appointments = [
            {'date': '2024-03-15', 'time': '09:00', 'title': 'Visita', 'customer_name': 'Alfa',
             'responsible': 'Técnico A', 'status': 'pending'},
        ]
        pdf = generate_appointments_pdf(appointments, settings, today=date(2024, 3, 15))
        assert pdf.startswith(b'%PDF')

    def test_empty_report(self):
        assert generate_appointments_pdf([]).startswith(b'%PDF')
