"""Shared test fixtures."""

import sqlite3
from collections.abc import Iterator

import pytest

from dailynote_sync.core.database.schema import create_schema
from dailynote_sync.core.orchestrator import SyncOrchestrator
from tests.unit.fakes import FakeLocalStore, FakeMetadataStore, FakeNotifier, FakeRemoteStore


@pytest.fixture
def state_conn() -> Iterator[sqlite3.Connection]:
    """In-memory state database with the schema applied."""
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def local() -> FakeLocalStore:
    return FakeLocalStore()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def metadata() -> FakeMetadataStore:
    return FakeMetadataStore()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def orchestrator(
    local: FakeLocalStore,
    remote: FakeRemoteStore,
    metadata: FakeMetadataStore,
    notifier: FakeNotifier,
) -> SyncOrchestrator:
    return SyncOrchestrator(local, remote, metadata, "me@example.com", notifier=notifier)
