"""
Tests for health check endpoints
"""
import pytest
import time
from unittest.mock import patch
from health_checks import (
    get_system_metrics,
    get_uptime,
    check_database,
    check_filesystem,
)


@pytest.mark.unit
class TestSystemMetrics:
    """Tests for system metrics collection"""

    def test_get_system_metrics_returns_dict(self):
        """Test that get_system_metrics returns a dictionary"""
        metrics = get_system_metrics()
        assert isinstance(metrics, dict)

    def test_system_metrics_has_memory_info(self):
        """Test that system metrics includes memory info"""
        metrics = get_system_metrics()
        if metrics:
            assert 'memory_mb' in metrics
            assert 'memory_percent' in metrics

    @patch('health_checks.psutil.Process')
    def test_system_metrics_handles_errors(self, mock_process):
        """Test that get_system_metrics handles errors gracefully"""
        mock_process.side_effect = Exception("Test error")
        assert get_system_metrics() == {}


@pytest.mark.unit
class TestUptime:
    """Tests for uptime calculation"""

    def test_uptime_has_required_fields(self):
        """Test that uptime includes all required fields"""
        uptime = get_uptime()
        for key in ('uptime_seconds', 'uptime_minutes', 'uptime_hours', 'started_at'):
            assert key in uptime

    def test_uptime_increases_over_time(self):
        """Test that uptime increases over time"""
        uptime1 = get_uptime()
        time.sleep(0.05)
        uptime2 = get_uptime()
        assert uptime2['uptime_seconds'] > uptime1['uptime_seconds']


@pytest.mark.unit
class TestDatabaseCheck:
    """Tests for the database check"""

    @patch('health_checks.check_db_connection')
    def test_connected(self, mock_check):
        mock_check.return_value = True
        assert check_database() == {'connected': True}

    @patch('health_checks.check_db_connection')
    def test_disconnected(self, mock_check):
        mock_check.side_effect = RuntimeError("Cannot connect to database: refused")
        status = check_database()
        assert status['connected'] is False
        assert 'refused' in status['error']


@pytest.mark.unit
class TestFilesystemCheck:
    """Tests for filesystem availability check"""

    def test_existing_writable_directory(self, tmp_path, monkeypatch):
        (tmp_path / 'logs').mkdir()
        monkeypatch.chdir(tmp_path)
        status = check_filesystem(['logs'])
        assert status['logs'] == {'exists': True, 'writable': True, 'healthy': True}

    def test_missing_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        status = check_filesystem(['logs'])
        assert status['logs']['exists'] is False
        assert status['logs']['healthy'] is False

    @patch('os.access')
    def test_directory_not_writable(self, mock_access, tmp_path, monkeypatch):
        (tmp_path / 'logs').mkdir()
        monkeypatch.chdir(tmp_path)
        mock_access.return_value = False
        status = check_filesystem(['logs'])
        assert status['logs']['writable'] is False
        assert status['logs']['healthy'] is False

    def test_no_required_directories(self):
        assert check_filesystem([]) == {}


@pytest.mark.integration
class TestHealthCheckEndpoints:
    """Integration tests for health check endpoints"""

    def test_health_endpoint(self, client):
        """Test that /health endpoint returns 200"""
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json()['service'] == 'bizdesk'

    def test_ping_endpoint(self, client):
        """Test that /ping endpoint returns pong"""
        response = client.get('/api/ping')
        assert response.status_code == 200
        assert response.data == b'pong'

    def test_ready_endpoint_with_database(self, client):
        """Test that /ready reports ready against the in-memory database"""
        response = client.get('/api/ready')
        data = response.get_json()
        assert response.status_code == 200
        assert data['status'] == 'ready'
        assert data['checks']['database']['connected'] is True

    @patch('health_checks.check_db_connection')
    def test_ready_endpoint_without_database(self, mock_check, client):
        mock_check.side_effect = RuntimeError("down")
        response = client.get('/api/ready')
        assert response.status_code == 503
        assert response.get_json()['status'] == 'not_ready'

    def test_metrics_endpoint(self, client):
        """Test that /metrics endpoint returns metrics"""
        data = client.get('/api/metrics').get_json()
        assert data['service'] == 'bizdesk'
        assert 'uptime' in data
        assert 'system' in data
        assert data['database']['connected'] is True

    def test_metrics_counts_records(self, auth_client):
        auth_client.post('/api/products', json={'name': 'Relé térmico', 'stock': 3, 'price': 45})
        records = auth_client.get('/api/metrics').get_json()['records']
        assert records['organizations'] == 1
        assert records['products'] == 1
        assert records['budgets'] == 0

    @patch('health_checks.check_db_connection')
    def test_metrics_without_database(self, mock_check, client):
        mock_check.side_effect = RuntimeError("down")
        data = client.get('/api/metrics').get_json()
        assert data['database']['connected'] is False
        assert data['records'] == {}
