"""
Pytest configuration and shared fixtures
"""
import os
import sys
import pytest
from datetime import date
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def app_config():
    """Fixture providing test configuration"""
    from config import TestingConfig
    return TestingConfig


@pytest.fixture
def test_env_vars():
    """Fixture providing test environment variables"""
    original_env = os.environ.copy()

    # Set test environment variables
    os.environ['FLASK_ENV'] = 'testing'
    os.environ['SECRET_KEY'] = 'a3f9c2e8b7d14f6a9e0c5b2d8f1a7c4e6b9d2f5a8c1e4b7d'
    os.environ['DATABASE_URL'] = 'sqlite://'

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def db_session():
    """Session bound to a fresh in-memory SQLite database"""
    from database.connection import configure_engine, get_session_factory, init_db

    configure_engine('sqlite://')
    init_db()
    session = get_session_factory()()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def org_id(db_session):
    """Organization every repository in a test is scoped to"""
    from database.models import Organization

    org = Organization(name='Oficina Teste', slug='oficina-teste', settings={})
    db_session.add(org)
    db_session.flush()
    return org.id


@pytest.fixture
def catalog(db_session, org_id):
    from services.catalog_repository import CatalogRepository
    return CatalogRepository(db_session, org_id)


@pytest.fixture
def sample_product(catalog):
    """Product with 10 units at R$ 100,00 (cost 60)"""
    return catalog.create_product({
        'name': 'Disjuntor Tripolar 32A',
        'category': 'Proteção',
        'stock': 10,
        'min_stock': 2,
        'cost': 60.0,
        'price': 100.0,
        'supplier': 'WEG',
    })


@pytest.fixture
def sample_service(catalog):
    """Active service at R$ 200,00 (cost 80)"""
    return catalog.create_service({
        'name': 'Instalação de Quadro',
        'category': 'Instalação',
        'price': 200.0,
        'cost': 80.0,
        'estimated_hours': 2,
    })


@pytest.fixture
def sample_customer(db_session, org_id):
    from services.crm_repository import CRMRepository
    return CRMRepository(db_session, org_id).create_customer({
        'name': 'Metalúrgica Alfa',
        'email': 'compras@alfa.com.br',
        'phone': '(71) 3222-1000',
    })


@pytest.fixture
def today():
    """Fixed reference date for date-dependent folds"""
    return date(2024, 3, 15)


# ============================================================================
# FLASK APP
# ============================================================================

@pytest.fixture
def app():
    """Application wired against an in-memory database"""
    from app_init import create_app

    app = create_app('testing')
    app.config['SECRET_KEY'] = 'a3f9c2e8b7d14f6a9e0c5b2d8f1a7c4e6b9d2f5a8c1e4b7d'
    return app


@pytest.fixture
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture
def auth_client(client):
    """Test client signed in as the admin of a freshly created organization"""
    response = client.post('/api/auth/signup', json={
        'email': 'gestor@oficina.com',
        'password': 'senha-forte',
        'name': 'Oficina Central',
    })
    assert response.status_code == 201
    return client
