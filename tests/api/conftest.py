from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from quiztrack.adapters.memory_store import InMemoryTrackingStore
from quiztrack.api.deps import (
    get_event_repo,
    get_rules,
    get_site_repo,
    get_stats_repo,
    get_time_port,
)
from quiztrack.api.errors import register_error_handlers
from quiztrack.api.routes import campaigns, monitor, stats, track
from quiztrack.rules.models import Rules


def build_app(store: InMemoryTrackingStore | None, rules: Rules, time_port) -> FastAPI:
    """Routers wired to an in-memory store (or none) and a mock clock."""
    app = FastAPI()
    register_error_handlers(app)
    for module in (track, stats, campaigns, monitor):
        app.include_router(module.router)

    app.dependency_overrides[get_rules] = lambda: rules
    app.dependency_overrides[get_time_port] = lambda: time_port
    app.dependency_overrides[get_event_repo] = lambda: store
    app.dependency_overrides[get_site_repo] = lambda: store
    app.dependency_overrides[get_stats_repo] = lambda: store
    return app


@pytest.fixture
def client(memory_store: InMemoryTrackingStore, rules: Rules, time_port) -> TestClient:
    return TestClient(build_app(memory_store, rules, time_port))


@pytest.fixture
def storeless_client(rules: Rules, time_port) -> TestClient:
    """No store configured."""
    return TestClient(build_app(None, rules, time_port))
