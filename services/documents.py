"""
Printable documents - budget proposal and appointment report PDFs (reportlab).
"""

import base64
import binascii
import io
import logging
from xml.sax.saxutils import escape
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image as RLImage

from services.agenda import format_date_br, status_label

logger = logging.getLogger(__name__)

GRAY_BG = colors.HexColor('#e5e7eb')
BRAND = colors.HexColor('#1e3a8a')

DEFAULT_WARRANTY = ('Garantia conforme especificações do fabricante. '
                    'Serviços com garantia de 90 dias.')
DECLARATION = ('Declaro ter conferido a quantidade, e as condições dos produtos/serviços '
               'entregues, dando plena quitação do feito, para mais nada reclamar.')
PAYMENT_DAYS = 30

BUDGET_STATUS_LABELS = {
    'approved': 'APROVADO',
    'converted': 'CONVERTIDO',
    'rejected': 'REJEITADO',
    'sent': 'ENVIADO',
    'draft': 'PENDENTE',
}

WEEKDAYS = ['segunda-feira', 'terça-feira', 'quarta-feira', 'quinta-feira',
            'sexta-feira', 'sábado', 'domingo']
MONTHS = ['janeiro', 'fevereiro', 'março', 'abril', 'maio', 'junho', 'julho',
          'agosto', 'setembro', 'outubro', 'novembro', 'dezembro']


def format_currency(value, symbol: str = 'R$') -> str:
    """1234.5 -> 'R$ 1.234,50'"""
    text = f"{float(value or 0):,.2f}".replace(',', 'X').replace('.', ',').replace('X', '.')
    return f"{symbol} {text}"


def format_number(value) -> str:
    return format_currency(value, '').strip()


def budget_number(budget_id: Optional[str]) -> str:
    return budget_id[-8:].upper() if budget_id else '00000000'


def budget_filename(budget: Dict) -> str:
    return f"Proposta_{budget_number(budget.get('id'))}.pdf"


def _long_datetime(moment: datetime) -> str:
    return (f"{WEEKDAYS[moment.weekday()]}, {moment.day:02d} de {MONTHS[moment.month - 1]} "
            f"de {moment.year} às {moment.strftime('%H:%M:%S')}")


def _signature_image(data_uri: Optional[str]):
    """Decode a base64 data URI into a flowable, or None when absent or unreadable."""
    if not data_uri or ',' not in data_uri:
        return None
    try:
        raw = base64.b64decode(data_uri.split(',', 1)[1])
        ImageReader(io.BytesIO(raw)).getSize()
    except (binascii.Error, ValueError, OSError) as e:
        logger.warning(f"Ignoring unreadable signature image: {e}")
        return None
    return RLImage(io.BytesIO(raw), width=50 * mm, height=15 * mm)


def _styles():
    styles = getSampleStyleSheet()
    return {
        'normal': ParagraphStyle('Small', parent=styles['Normal'], fontSize=8, leading=10),
        'bold': ParagraphStyle('SmallBold', parent=styles['Normal'], fontSize=8, leading=10,
                               fontName='Helvetica-Bold'),
        'company': ParagraphStyle('Company', parent=styles['Normal'], fontSize=12,
                                  fontName='Helvetica-Bold', alignment=2),
        'company_info': ParagraphStyle('CompanyInfo', parent=styles['Normal'], fontSize=8,
                                       leading=10, alignment=2),
        'title': ParagraphStyle('Banner', parent=styles['Heading1'], fontSize=14,
                                alignment=1, textColor=colors.white),
        'report_title': ParagraphStyle('ReportTitle', parent=styles['Heading1'], fontSize=18,
                                       textColor=BRAND, spaceAfter=6),
    }


def _section(title: str, width: float, styles) -> Table:
    table = Table([[Paragraph(escape(title), styles['bold'])]], colWidths=[width])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), GRAY_BG),
        ('TOPPADDING', (0, 0), (-1, -1), 2),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 2),
    ]))
    return table


GRID_STYLE = [
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ('FONTSIZE', (0, 0), (-1, -1), 8),
    ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
]

HEADER_ROW_STYLE = [
    ('BACKGROUND', (0, 0), (-1, 0), GRAY_BG),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
]


def generate_budget_pdf(budget: Dict, settings: Optional[Dict] = None,
                        now: Optional[datetime] = None) -> bytes:
    """
    Render a budget as a proposal PDF.

    Args:
        budget: Budget.to_dict() output
        settings: company/user settings (company_name, company_cnpj,
            company_address, company_city, company_phone, company_email,
            full_name)
        now: generation timestamp, for deterministic output

    Returns:
        PDF bytes
    """
    settings = settings or {}
    now = now or datetime.now()
    styles = _styles()
    items = budget.get('items') or []

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=10 * mm, rightMargin=10 * mm,
                            topMargin=10 * mm, bottomMargin=18 * mm,
                            title=f"Proposta {budget_number(budget.get('id'))}")
    width = doc.width
    story = []

    # Header: logo placeholder + company block
    company_name = settings.get('company_name') or 'Minha Empresa'
    company_lines = [
        settings.get('company_cnpj') or '',
        settings.get('company_address') or '',
        settings.get('company_city') or '',
        ' - '.join(v for v in (settings.get('company_email'), settings.get('company_phone')) if v),
    ]
    company_block = [Paragraph(escape(company_name), styles['company'])] + [
        Paragraph(escape(line), styles['company_info']) for line in company_lines if line
    ]
    logo = Table([['LOGO']], colWidths=[35 * mm], rowHeights=[20 * mm])
    logo.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), GRAY_BG),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    header = Table([[logo, company_block]], colWidths=[40 * mm, width - 40 * mm])
    header.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
    story.append(header)
    story.append(Spacer(1, 4 * mm))

    banner = Table([[Paragraph(f"Pedido: {budget_number(budget.get('id'))}", styles['title'])]],
                   colWidths=[width])
    banner.setStyle(TableStyle([('BACKGROUND', (0, 0), (-1, -1), BRAND)]))
    story.append(banner)
    story.append(Spacer(1, 2 * mm))

    # Status row
    consultant = budget.get('responsible') or settings.get('full_name') or 'Vendedor'
    if settings.get('company_email'):
        consultant = f"{consultant} - {settings['company_email']}"
    status_table = Table([
        ['Status', 'Comercialização', 'Fechamento', 'Consultor / Vendedor'],
        [
            BUDGET_STATUS_LABELS.get(budget.get('status'), 'PENDENTE'),
            f"{format_date_br(budget.get('date'))} {now.strftime('%H:%M')}",
            f"{format_date_br(budget.get('validity_date'))} 12:00" if budget.get('validity_date') else '-',
            consultant,
        ],
    ], colWidths=[width * 0.2, width * 0.25, width * 0.2, width * 0.35])
    status_table.setStyle(TableStyle(GRID_STYLE + HEADER_ROW_STYLE))
    story.append(status_table)
    story.append(Spacer(1, 3 * mm))

    # 1 Customer
    story.append(_section('1 Dados do Cliente', width, styles))
    customer_table = Table([
        ['Razão / Fantasia', budget.get('customer_name') or 'Cliente', '', ''],
        ['Contato', '', 'Email', budget.get('customer_email') or ''],
        ['Fone Fixo', budget.get('customer_phone') or '', 'Celular', ''],
        ['Endereço', budget.get('customer_address') or 'Endereço não informado', '', ''],
    ], colWidths=[width * 0.18, width * 0.37, width * 0.12, width * 0.33])
    customer_table.setStyle(TableStyle(GRID_STYLE + [
        ('SPAN', (1, 0), (3, 0)),
        ('SPAN', (1, 3), (3, 3)),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (2, 1), (2, 2), 'Helvetica-Bold'),
    ]))
    story.append(customer_table)
    story.append(Spacer(1, 3 * mm))

    # 2 Items
    story.append(_section('2 Produtos / Serviços', width, styles))
    items_rows = [['Descrição', 'Qtd.', 'V. Unit.', 'IPI', 'Desconto', 'Subtotal']]
    for item in items:
        kind = 'Produto' if item.get('type') == 'product' else 'Serviço'
        items_rows.append([
            Paragraph(f"{escape(item.get('name') or '')}<br/>{kind}", styles['normal']),
            str(item.get('quantity', 0)),
            format_number(item.get('unit_price')),
            '0,00',
            '0,00',
            format_number(item.get('total')),
        ])
    if not items:
        items_rows.append(['Nenhum item', '-', '-', '-', '-', '-'])
    items_table = Table(items_rows, colWidths=[width * 0.45, width * 0.08, width * 0.13,
                                               width * 0.08, width * 0.12, width * 0.14],
                        repeatRows=1)
    items_table.setStyle(TableStyle(GRID_STYLE + HEADER_ROW_STYLE + [
        ('ALIGN', (1, 0), (1, -1), 'CENTER'),
        ('ALIGN', (2, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (-1, 1), (-1, -1), 'Helvetica-Bold'),
    ]))
    story.append(items_table)
    story.append(Spacer(1, 3 * mm))

    # 2.1 Totals
    product_total = sum(i.get('total') or 0 for i in items if i.get('type') == 'product')
    service_total = sum(i.get('total') or 0 for i in items if i.get('type') == 'service')
    total_quantity = sum(i.get('quantity') or 0 for i in items)
    total_value = budget.get('total_value')
    if total_value is None:
        total_value = product_total + service_total
    story.append(_section('2.1 Totalizadores', width, styles))
    totals_table = Table([
        ['Soma de Itens', str(len(items)), 'IPI', '0,00'],
        ['Soma das Qtdes', str(total_quantity), 'Frete', '0,00'],
        ['Produtos', format_number(product_total), 'Desconto', format_number(budget.get('discount'))],
        ['Serviços', format_number(service_total), 'Total Geral', format_currency(total_value)],
    ], colWidths=[width * 0.25, width * 0.25, width * 0.25, width * 0.25])
    totals_table.setStyle(TableStyle(GRID_STYLE + [
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTNAME', (2, 0), (2, -1), 'Helvetica-Bold'),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
        ('BACKGROUND', (2, -1), (3, -1), GRAY_BG),
        ('FONTNAME', (3, -1), (3, -1), 'Helvetica-Bold'),
    ]))
    story.append(totals_table)
    story.append(Spacer(1, 3 * mm))

    # 3 Payment
    payment_method = budget.get('payment_method') or 'À Vista'
    story.append(_section(f"3 Forma de Parcelamento: {payment_method}", width, styles))
    due = now.date() + timedelta(days=PAYMENT_DAYS)
    payment_table = Table([
        ['Dias', 'Vencimento', 'Forma de Pagamento', 'Valor'],
        [str(PAYMENT_DAYS), format_date_br(due), budget.get('payment_method') or 'PIX / TRANSFERÊNCIA',
         format_number(total_value)],
    ], colWidths=[width * 0.12, width * 0.18, width * 0.48, width * 0.22])
    payment_table.setStyle(TableStyle(GRID_STYLE + HEADER_ROW_STYLE + [
        ('ALIGN', (0, 0), (1, -1), 'CENTER'),
        ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
    ]))
    story.append(payment_table)
    story.append(Spacer(1, 3 * mm))

    # 4 Notes / 5 Warranty
    story.append(_section('4 Detalhamento / Observações', width, styles))
    story.append(Paragraph(escape(budget.get('notes') or 'Sem observações adicionais.'), styles['normal']))
    story.append(Spacer(1, 3 * mm))
    story.append(_section('5 Observações de Garantia', width, styles))
    story.append(Paragraph(escape(budget.get('warranty_notes') or settings.get('warranty_text') or DEFAULT_WARRANTY),
                           styles['normal']))
    story.append(Spacer(1, 3 * mm))
    story.append(Paragraph(DECLARATION, styles['normal']))
    story.append(Spacer(1, 3 * mm))

    # 6 Acceptance
    story.append(_section('6 Dados de Aceite do Pedido', width, styles))
    signature = _signature_image(budget.get('signature')) or ''
    acceptance = Table([
        ['', signature],
        ['Data', f"Assinatura: {(budget.get('customer_name') or 'Cliente').upper()}"],
    ], colWidths=[width * 0.3, width * 0.7], rowHeights=[17 * mm, None])
    acceptance.setStyle(TableStyle([
        ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
        ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ALIGN', (1, 0), (1, -1), 'CENTER'),
        ('LINEABOVE', (1, 1), (1, 1), 0.5, colors.black),
    ]))
    story.append(acceptance)

    generated_by = settings.get('full_name') or 'Sistema'
    footer_note = f"Informações geradas através do sistema {company_name.upper()}"
    if settings.get('company_email'):
        footer_note += f" - {settings['company_email']}"
    stamp = _long_datetime(now)

    def draw_footer(canvas, document):
        canvas.saveState()
        canvas.setFont('Helvetica', 7)
        canvas.drawString(document.leftMargin, 12 * mm, stamp)
        canvas.drawString(document.leftMargin + 80 * mm, 12 * mm, f"Gerado por {generated_by}")
        canvas.drawRightString(document.leftMargin + document.width, 12 * mm,
                               f"Página {document.page}")
        canvas.drawCentredString(document.leftMargin + document.width / 2, 7 * mm, footer_note)
        canvas.restoreState()

    doc.build(story, onFirstPage=draw_footer, onLaterPages=draw_footer)
    buffer.seek(0)
    logger.info(f"Generated budget PDF for {budget.get('id')} ({len(items)} items)")
    return buffer.getvalue()


def generate_appointments_pdf(appointments: Iterable[Dict], settings: Optional[Dict] = None,
                              today: Optional[date] = None) -> bytes:
    """Render the filtered appointment list as a landscape report."""
    settings = settings or {}
    today = today or date.today()
    styles = _styles()
    appointments = list(appointments)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), leftMargin=12 * mm,
                            rightMargin=12 * mm, topMargin=12 * mm, bottomMargin=12 * mm,
                            title='Relatório de Agendamentos')
    story = [
        Paragraph('Relatório de Agendamentos', styles['report_title']),
        Paragraph(f"{escape(settings.get('company_name') or '')} Gerado em {format_date_br(today)} "
                  f"- {len(appointments)} agendamento(s)", styles['normal']),
        Spacer(1, 5 * mm),
    ]

    rows = [['Data', 'Hora', 'Título', 'Cliente', 'Responsável', 'Status']]
    for appointment in appointments:
        rows.append([
            format_date_br(appointment.get('date')),
            appointment.get('time') or '',
            Paragraph(escape(appointment.get('title') or ''), styles['normal']),
            Paragraph(escape(appointment.get('customer_name') or ''), styles['normal']),
            appointment.get('responsible') or '',
            status_label(appointment.get('status')),
        ])
    width = doc.width
    table = Table(rows, colWidths=[width * 0.1, width * 0.07, width * 0.3, width * 0.23,
                                   width * 0.17, width * 0.13], repeatRows=1)
    table.setStyle(TableStyle(GRID_STYLE + [
        ('BACKGROUND', (0, 0), (-1, 0), BRAND),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f3f4f6')]),
    ]))
    story.append(table)

    doc.build(story)
    buffer.seek(0)
    logger.info(f"Generated appointments PDF ({len(appointments)} rows)")
    return buffer.getvalue()


def appointments_pdf_filename(today: Optional[date] = None) -> str:
    return f"relatorio_agendamentos_{(today or date.today()).isoformat()}.pdf"
