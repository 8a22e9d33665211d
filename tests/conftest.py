"""Shared test fixtures for Crewspace."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from crewspace.config import Config
from crewspace.core.accounts import AccountService
from crewspace.models.user import User
from crewspace.storage.metadata_store import MetadataStore


@pytest.fixture
def tmp_db(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
async def store(tmp_db: Path) -> AsyncGenerator[MetadataStore, None]:
    s = MetadataStore(tmp_db)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        data_path=tmp_path,
        jwt_secret="test-secret",
        bootstrap_owner_email="boss@example.com",
    )


@pytest.fixture
def accounts(store: MetadataStore, config: Config) -> AccountService:
    return AccountService(store, config)


@pytest.fixture
def make_user(store: MetadataStore, accounts: AccountService):
    """Sign up an account and force its global role."""

    async def _make(name: str, role: str = "user") -> User:
        user = await accounts.signup(email=f"{name}@example.com", username=name)
        if user.role != role:
            await store.update_role(user.id, role)
            user = user.model_copy(update={"role": role})
        return user

    return _make
