"""
Database seeding for BizDesk.
Creates the default organization, its admin profile and board columns if the
database is empty, and optionally a small demo catalog.
"""

import logging
from datetime import date, timedelta
from werkzeug.security import generate_password_hash
from database.connection import get_db_session
from database.models import Organization, Product, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_ORG_NAME = "Bahia Automação"
DEFAULT_ORG_SLUG = "bahia-automacao"
DEFAULT_ADMIN_EMAIL = "admin@bahia.com"
DEFAULT_ADMIN_NAME = "Administrador"
DEFAULT_ADMIN_PASSWORD = "admin123"

DEMO_PRODUCTS = [
    {'name': 'Multímetro Digital True RMS', 'category': 'Ferramentas', 'stock': 15,
     'min_stock': 5, 'cost': 120.00, 'price': 249.90, 'supplier': 'Minipa'},
    {'name': 'Lâmpada LED Industrial High Bay 100W', 'category': 'Iluminação', 'stock': 20,
     'min_stock': 8, 'cost': 180.00, 'price': 320.00, 'supplier': 'Avant'},
    {'name': 'Fonte Chaveada 24V 5A', 'category': 'Automação', 'stock': 2,
     'min_stock': 5, 'cost': 75.00, 'price': 120.00, 'supplier': 'Mean Well'},
]

DEMO_SERVICES = [
    {'name': 'Instalação de Inversor de Frequência (até 10cv)', 'category': 'Instalação',
     'price': 450.00, 'cost': 150.00, 'estimated_hours': 3,
     'description': 'Fixação, conexão elétrica e parametrização básica.',
     'history': [('2023-01-15', 380.00), ('2023-06-20', 420.00), ('2023-10-25', 450.00)]},
    {'name': 'Visita Técnica e Diagnóstico', 'category': 'Manutenção',
     'price': 180.00, 'cost': 80.00, 'estimated_hours': 1.5,
     'description': 'Deslocamento e até 1h de análise técnica no local.',
     'history': [('2023-02-10', 150.00), ('2023-08-05', 180.00)]},
    {'name': 'Programação de CLP (Hora Técnica)', 'category': 'Automação',
     'price': 250.00, 'cost': 100.00, 'estimated_hours': 1,
     'description': 'Desenvolvimento e ajuste de lógica ladder/estruturada.'},
    {'name': 'Montagem de Painel de Comando (Pequeno)', 'category': 'Instalação',
     'price': 1200.00, 'cost': 600.00, 'estimated_hours': 8,
     'description': 'Montagem mecânica e elétrica de quadro até 40x40cm.'},
]

DEMO_CUSTOMERS = [
    {'name': 'Indústria Química Beta', 'email': 'compras@beta.com', 'phone': '(71) 3333-4444'},
    {'name': 'João da Silva Eletricista', 'email': 'joao.eletro@gmail.com', 'phone': '(71) 99999-8888'},
]

DEMO_RESPONSIBLES = ['Técnico A', 'Técnico B', 'Consultor', 'Engenheiro Chefe']


def seed_default_organization(session):
    """Create default organization if none exists."""
    org = session.query(Organization).first()
    if org:
        logger.info(f"Organization already exists: {org.name}")
        return org

    org = Organization(
        name=DEFAULT_ORG_NAME,
        slug=DEFAULT_ORG_SLUG,
        settings={
            'company_name': DEFAULT_ORG_NAME,
            'company_city': 'Salvador - BA',
            'company_email': DEFAULT_ADMIN_EMAIL,
        }
    )
    session.add(org)
    session.flush()
    logger.info(f"Created default organization: {org.name}")
    return org


def seed_default_admin(session, organization_id):
    """Create default admin profile if none exists."""
    admin = session.query(UserProfile).filter_by(role='admin').first()
    if admin:
        logger.info(f"Admin user already exists: {admin.email}")
        return admin

    admin = UserProfile(
        organization_id=organization_id,
        email=DEFAULT_ADMIN_EMAIL,
        full_name=DEFAULT_ADMIN_NAME,
        password_hash=generate_password_hash(DEFAULT_ADMIN_PASSWORD, method='pbkdf2:sha256'),
        role='admin',
        is_active=True
    )
    session.add(admin)
    session.flush()
    logger.info(f"Created default admin user: {admin.email}")
    return admin


def seed_demo_data(session, organization_id, today=None):
    """Demo catalog, customers, responsibles and appointments for an empty organization."""
    from services.appointment_repository import AppointmentRepository
    from services.catalog_repository import CatalogRepository
    from services.crm_repository import CRMRepository
    from services.settings_service import SettingsService

    if session.query(Product).filter_by(organization_id=organization_id).first():
        logger.info("Demo data already present")
        return False

    today = today or date.today()
    catalog = CatalogRepository(session, organization_id)
    for product in DEMO_PRODUCTS:
        catalog.create_product(product)
    for data in DEMO_SERVICES:
        service = {k: v for k, v in data.items() if k != 'history'}
        if data.get('history'):
            service['price_history'] = [{'date': day, 'price': price} for day, price in data['history']]
        catalog.create_service(service)

    crm = CRMRepository(session, organization_id)
    customers = [crm.create_customer(c) for c in DEMO_CUSTOMERS]

    settings = SettingsService(session, organization_id)
    for name in DEMO_RESPONSIBLES:
        settings.add_responsible(name)

    agenda = AppointmentRepository(session, organization_id)
    agenda.create_appointment({
        'title': 'Manutenção Preventiva QGBT', 'customer_id': customers[0]['id'],
        'date': today.isoformat(), 'time': '09:00', 'duration': 120,
        'responsible': 'Técnico A', 'location': 'Planta Industrial',
    })
    agenda.create_appointment({
        'title': 'Orçamento Automação', 'customer_name': 'João da Silva',
        'date': (today + timedelta(days=1)).isoformat(), 'time': '14:00',
        'responsible': 'Consultor',
    })
    logger.info(f"Seeded demo data for organization {organization_id}")
    return True


def seed_database(demo=False):
    """
    Seed the database with default data if empty.
    Call this at application startup.
    """
    from services.kanban_repository import KanbanRepository

    try:
        with get_db_session() as session:
            org = seed_default_organization(session)
            seed_default_admin(session, org.id)
            KanbanRepository(session, org.id).ensure_default_columns()
            if demo:
                seed_demo_data(session, org.id)
        logger.info("Database seeding completed successfully")
        return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


def get_default_organization_id():
    """Get the ID of the default organization."""
    with get_db_session() as session:
        org = session.query(Organization).filter_by(slug=DEFAULT_ORG_SLUG).first()
        if org:
            return org.id
        org = session.query(Organization).first()
        return org.id if org else None


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    from database.connection import init_db
    init_db()
    seed_database(demo=True)
