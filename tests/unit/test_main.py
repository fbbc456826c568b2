"""
Main Application Unit Tests

Tests for application startup and health endpoints with mocked infrastructure.
Runs without Docker - uses mocks for database and Redis connections.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from notetree.main import app


def test_health_check():
    """
    Verify /api/health returns correct response structure.

    TestClient triggers the lifespan handler, so DB/schema/cache setup must
    be mocked.
    """
    with (
        patch("notetree.main.wait_for_db", new_callable=AsyncMock) as mock_db,
        patch("notetree.main.init_models", new_callable=AsyncMock),
        patch("notetree.main.query_cache", new=AsyncMock()) as mock_cache,
    ):
        mock_db.return_value = True

        with TestClient(app) as client:
            response = client.get("/api/health")

            assert response.status_code == 200
            data = response.json()

            assert data["status"] == "ok"
            assert data["service"] == "notetree"
            assert "environment" in data

        mock_cache.connect.assert_awaited_once()
        mock_cache.close.assert_awaited_once()


def test_startup_fails_without_database():
    with (
        patch("notetree.main.wait_for_db", new_callable=AsyncMock, return_value=False),
        patch("notetree.main.query_cache", new=AsyncMock()),
    ):
        try:
            with TestClient(app):
                raise AssertionError("startup should have failed")
        except RuntimeError as e:
            assert "Database connection failed" in str(e)
