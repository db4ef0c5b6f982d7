"""Shared fixtures: a temp SQLite database and fake image plumbing.

Hey future me - nothing here touches the network. Provider behaviour is scripted per
test through tests/fakes.py. The database is a REAL aiosqlite file in tmp_path, so the
partial unique index and the compare-and-set updates are exercised for real.
"""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest

from echometa.config.settings import DatabaseSettings, ImageSettings, Settings
from echometa.infrastructure.persistence import Database, unit_of_work_factory
from tests.fakes import FakeImageDownloader, FakeImageStore, make_image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        images=ImageSettings(storage_path=tmp_path / "images"),
    )


@pytest.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(test_settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def uow_factory(database: Database) -> Callable[..., Any]:
    return unit_of_work_factory(database)


@pytest.fixture
async def artist_id(uow_factory: Callable[..., Any]) -> str:
    async with uow_factory() as uow:
        return await uow.entities.add_artist("The Beatles")


@pytest.fixture
async def album_id(uow_factory: Callable[..., Any], artist_id: str) -> str:
    async with uow_factory() as uow:
        return await uow.entities.add_album("Abbey Road", artist_id=artist_id)


@pytest.fixture
def image_downloader(png_bytes: bytes) -> FakeImageDownloader:
    return FakeImageDownloader(png_bytes)


@pytest.fixture
def image_store() -> FakeImageStore:
    return FakeImageStore()
