import pytest

from scisubmit import create_app
from scisubmit.config import ProductionConfig, TestingConfig


def test_testing_config(app):
    assert app.config["TESTING"] is True
    assert app.config["SERVER_TIMEZONE"] == TestingConfig.SERVER_TIMEZONE
    assert app.config["NOTIFICATION_MAX_ATTEMPTS"] >= 1


def test_production_requires_settings(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", None)
    monkeypatch.delenv("SECRET_KEY", raising=False)

    with pytest.raises(RuntimeError, match="DATABASE_URL, SECRET_KEY"):
        create_app("production")
