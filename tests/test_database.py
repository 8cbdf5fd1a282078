"""Tests for the database session dependency, engine settings and CORS origin checks."""
from contextlib import asynccontextmanager

import pytest

from reprice.api.dependencies import database as db_dependency
from reprice.api.middleware.cors import _validate_origins
from reprice.core.config import Settings
from reprice.core.database import build_engine


@pytest.fixture
def session_factory(monkeypatch, mock_db):
    @asynccontextmanager
    async def _factory():
        yield mock_db

    monkeypatch.setattr(db_dependency, "async_session_factory", _factory)
    return mock_db


class TestGetDb:
    @pytest.mark.asyncio
    async def test_commits_after_success(self, session_factory):
        gen = db_dependency.get_db()
        assert await gen.__anext__() is session_factory

        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        session_factory.commit.assert_awaited_once()
        session_factory.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises(self, session_factory):
        gen = db_dependency.get_db()
        await gen.__anext__()

        with pytest.raises(RuntimeError, match="boom"):
            await gen.athrow(RuntimeError("boom"))

        session_factory.rollback.assert_awaited_once()
        session_factory.commit.assert_not_awaited()


class TestBuildEngine:
    def test_pool_follows_settings(self):
        engine = build_engine(Settings(db_pool_size=3, db_max_overflow=1))
        try:
            assert engine.sync_engine.pool.size() == 3
            assert engine.sync_engine.pool._max_overflow == 1
        finally:
            engine.sync_engine.dispose()


class TestValidateOrigins:
    def test_accepts_http_origins(self):
        _validate_origins(["http://localhost:5173", "https://reprice.example"])

    @pytest.mark.parametrize("origin", ["*", "localhost:5173", "ftp://reprice.example"])
    def test_rejects(self, origin):
        with pytest.raises(ValueError):
            _validate_origins([origin])
