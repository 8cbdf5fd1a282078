from unittest.mock import AsyncMock, MagicMock

import pytest

from reprice.client.store import MemoryStore


# ── Patch settings before any other import ──────────────────────────────────
@pytest.fixture(autouse=True)
def _patch_settings(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-for-unit-tests-0123456789")
    from reprice.core.config import settings
    monkeypatch.setattr(settings, "jwt_secret_key", "test-secret-key-for-unit-tests-0123456789")
    monkeypatch.setattr(settings, "jwt_expire_days", 7)
    monkeypatch.setattr(settings, "serviceable_pincode_prefixes", "")
    monkeypatch.setattr(settings, "ai_api_url", "https://pricing.test")


@pytest.fixture
def mock_db():
    """Create a mock async database session."""
    db = AsyncMock()
    db.flush = AsyncMock()
    db.add = MagicMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def catalog_csv(tmp_path):
    path = tmp_path / "phones.csv"
    path.write_text(
        "brand,model,variant,price,link,image\n"
        "Apple,iPhone 13 Pro,6/128,42000,https://example.com/13pro,\n"
        "Apple,iPhone 13,4/128,31000,https://example.com/13,\n"
        "Samsung,Galaxy S21,8/128,22000,https://example.com/s21,https://img.test/s21.jpg\n"
        "OnePlus,Nord CE 3,8/128,12500,,\n",
        encoding="utf-8",
    )
    return path
