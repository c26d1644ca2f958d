"""
Tests for configuration system
"""
import pytest
from config import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config
)


@pytest.mark.unit
class TestBaseConfig:
    """Tests for base configuration"""

    def test_base_config_has_secret_key(self):
        """Test that base config has a secret key"""
        config = Config()
        assert hasattr(config, 'SECRET_KEY')
        assert config.SECRET_KEY is not None

    def test_base_config_has_max_content_length(self):
        """Test that base config has max content length"""
        config = Config()
        assert config.MAX_CONTENT_LENGTH == 16 * 1024 * 1024

    def test_base_config_has_cors_settings(self):
        """Test that base config has CORS settings"""
        config = Config()
        assert hasattr(config, 'CORS_ORIGINS')
        assert 'PATCH' in config.CORS_METHODS
        assert 'DELETE' in config.CORS_METHODS

    def test_base_config_has_business_defaults(self):
        """Test that base config carries the business defaults"""
        config = Config()
        assert config.CURRENCY_SYMBOL == 'R$'
        assert config.DEFAULT_BUDGET_VALIDITY_DAYS == 7
        assert config.LOW_MARGIN_PRODUCT_THRESHOLD == 0.2
        assert config.LOW_MARGIN_SERVICE_THRESHOLD == 0.3
        assert config.CALENDAR_MAX_DOTS == 4

    def test_base_config_has_logging_settings(self):
        """Test that base config has logging settings"""
        config = Config()
        assert config.LOG_FILE == 'app.log'
        assert config.REQUIRED_DIRS == ['logs']


@pytest.mark.unit
class TestDevelopmentConfig:
    """Tests for development configuration"""

    def test_development_config_has_debug(self):
        """Test that development config has debug enabled"""
        config = DevelopmentConfig()
        assert config.DEBUG is True
        assert config.TESTING is False

    def test_development_config_has_debug_log_level(self):
        """Test that development config has DEBUG log level"""
        assert DevelopmentConfig().LOG_LEVEL == 'DEBUG'

    def test_development_config_allows_all_cors(self):
        """Test that development config allows all CORS origins"""
        assert '*' in DevelopmentConfig().CORS_ORIGINS


@pytest.mark.unit
class TestProductionConfig:
    """Tests for production configuration"""

    def test_production_config_has_debug_disabled(self):
        """Test that production config has debug disabled"""
        config = ProductionConfig()
        assert config.DEBUG is False
        assert config.TESTING is False

    def test_production_config_has_secure_cookies(self):
        """Test that production config has secure cookies"""
        config = ProductionConfig()
        assert config.SESSION_COOKIE_SECURE is True
        assert config.SESSION_COOKIE_HTTPONLY is True
        assert config.SESSION_COOKIE_SAMESITE == 'Lax'

    def test_production_config_has_https_scheme(self):
        """Test that production config prefers HTTPS"""
        assert ProductionConfig().PREFERRED_URL_SCHEME == 'https'


@pytest.mark.unit
class TestTestingConfig:
    """Tests for testing configuration"""

    def test_testing_config_has_testing_enabled(self):
        """Test that testing config has testing enabled"""
        config = TestingConfig()
        assert config.TESTING is True
        assert config.DEBUG is True

    def test_testing_config_uses_in_memory_database(self):
        """Test that testing config points at in-memory SQLite"""
        config = TestingConfig()
        assert config.DATABASE_URL == 'sqlite://'
        assert config.SEED_DEMO_DATA is False

    def test_testing_config_needs_no_directories(self):
        assert TestingConfig().REQUIRED_DIRS == []


@pytest.mark.unit
class TestGetConfig:
    """Tests for configuration selector"""

    def test_get_config_by_name(self):
        assert get_config('production') is ProductionConfig
        assert get_config('testing') is TestingConfig

    def test_get_config_unknown_name_falls_back(self):
        assert get_config('staging') is DevelopmentConfig

    def test_get_config_returns_development_by_default(self, monkeypatch):
        """Test that get_config returns development config by default"""
        monkeypatch.delenv('FLASK_ENV', raising=False)
        assert get_config() is DevelopmentConfig

    def test_get_config_reads_flask_env(self, monkeypatch):
        """Test that get_config follows FLASK_ENV"""
        monkeypatch.setenv('FLASK_ENV', 'production')
        assert get_config() is ProductionConfig

    def test_postgres_scheme_is_normalised(self, monkeypatch):
        from config import _database_url
        monkeypatch.setenv('DATABASE_URL', 'postgres://u:p@db:5432/bizdesk')
        assert _database_url() == 'postgresql://u:p@db:5432/bizdesk'
