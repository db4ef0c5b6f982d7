"""Fixtures for API tests against the full FastAPI app.

Hey future me - the lifespan builds the real pipeline (SQLite file in tmp_path, real
httpx pool). We then swap app.state.orchestrator for one with scripted providers so
nothing ever leaves the machine. TestClient runs the app on its own event loop, so
anything async (seeding, shutdown) goes through client.portal.
"""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from echometa.application.services.enrichment_orchestrator import EnrichmentOrchestrator
from echometa.application.services.progress_notifier import ProgressNotifier
from echometa.config import Settings
from echometa.domain.entities import ProviderName
from echometa.infrastructure.persistence import unit_of_work_factory
from echometa.main import create_app
from tests.fakes import (
    FakeImageDownloader,
    FakeImageStore,
    FakeProvider,
    make_config,
    ok_result,
)


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_app(test_settings)


@pytest.fixture
def lastfm() -> FakeProvider:
    return FakeProvider(
        ProviderName.LASTFM,
        ok_result(
            ProviderName.LASTFM,
            fetched_by_id=False,
            bio="English rock band formed in Liverpool.",
            tags=["rock", "pop"],
        ),
    )


@pytest.fixture
def client(app: FastAPI, lastfm: FakeProvider, png_bytes: bytes) -> Iterator[TestClient]:
    with TestClient(app) as client:
        orchestrator = EnrichmentOrchestrator(
            unit_of_work_factory(app.state.db),
            [lastfm],
            make_config(
                disabled=(
                    ProviderName.MUSICBRAINZ,
                    ProviderName.COVERARTARCHIVE,
                    ProviderName.FANART,
                )
            ),
            image_downloader=FakeImageDownloader(png_bytes),
            image_store=FakeImageStore(),
            notifier=ProgressNotifier(app.state.event_bus),
        )
        app.state.orchestrator = orchestrator
        yield client
        client.portal.call(orchestrator.shutdown)


@pytest.fixture
def seeded_artist_id(app: FastAPI, client: TestClient) -> str:
    async def seed() -> str:
        async with unit_of_work_factory(app.state.db)() as uow:
            return await uow.entities.add_artist("The Beatles")

    return client.portal.call(seed)
