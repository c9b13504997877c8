"""
Configuration partagée pour tous les tests.
Override la dépendance get_db pour éviter toute connexion réelle à PostgreSQL
et désactive le scheduler APScheduler pendant les tests d'API.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, patch

from app.config import settings
from app.database import get_db
from app.main import app


@pytest.fixture
def mock_db():
    """Session BDD mockée partagée entre le test et le client."""
    return MagicMock()


@pytest.fixture
def client(mock_db):
    """Client HTTP de test avec la BDD mockée, appelant avec le rôle admin par défaut."""
    app.dependency_overrides[get_db] = lambda: mock_db
    with patch.object(settings, "SCHEDULER_ENABLED", False):
        with TestClient(app, headers={"X-User-Role": "admin"}) as c:
            yield c
    app.dependency_overrides.clear()
