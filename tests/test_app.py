"""Application factory, configuration and health endpoint."""

from unittest.mock import MagicMock

import pytest

from api import create_app
from api.config import DevelopmentConfig, ProductionConfig, TestingConfig, get_config
from models.errors import RevocationStoreError
from tests.conftest import bearer, register


class TestConfig:
    @pytest.mark.parametrize(
        "name,expected",
        [("prod", ProductionConfig), ("production", ProductionConfig), ("testing", TestingConfig), ("dev", DevelopmentConfig)],
    )
    def test_get_config(self, name, expected):
        assert get_config(name) is expected

    def test_production_refuses_dev_secret(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "JWT_SECRET", "dev-secret-change-me")
        with pytest.raises(RuntimeError):
            create_app("production")

    def test_injected_empty_revocation_store_is_used(self, app, revocation_store):
        assert len(revocation_store) == 0
        assert app.extensions["revocation_store"] is revocation_store
        assert app.extensions["auth_gate"].revocation_store is revocation_store

    def test_injected_store_receives_revocations(self, client, revocation_store):
        tokens = register(client, "inject@example.com")
        resp = client.post("/api/v1/auth/logout", headers=bearer(tokens["access_token"]), json={})
        assert resp.status_code == 200
        assert revocation_store.is_revoked(tokens["access_token"])

    def test_token_lifetimes(self):
        assert TestingConfig.ACCESS_TOKEN_EXPIRES.total_seconds() == 900
        assert TestingConfig.REFRESH_TOKEN_EXPIRES_WEB.days == 7
        assert TestingConfig.REFRESH_TOKEN_EXPIRES_MOBILE.days == 90


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"] == "ok"
        assert resp.get_json()["revocation_store"] == "ok"

    def test_revocation_store_down(self, app, client):
        broken = MagicMock()
        broken.ping.side_effect = RevocationStoreError("down")
        app.extensions["revocation_store"] = broken
        resp = client.get("/api/v1/health")
        assert resp.status_code == 503
        assert resp.get_json()["revocation_store"] == "unavailable"


class TestCli:
    def test_create_admin(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(
            args=["create-admin", "--email", "boss@example.com", "--name", "Boss", "--password", "Secret123!"]
        )
        assert result.exit_code == 0, result.output
        assert "admin created" in result.output
        user = app.extensions["user_repository"].find_by_email("boss@example.com")
        assert user.is_admin


def test_root(client):
    assert client.get("/").status_code == 200


def test_swagger_spec(client):
    resp = client.get("/swagger.json")
    assert resp.status_code == 200
    assert "/api/v1/auth/login" in resp.get_json()["paths"]
