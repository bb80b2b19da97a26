"""
Pytest fixtures: a coordinator over in-memory collaborators and an API client bound to it.
"""
import pytest
from fastapi.testclient import TestClient

from _helper import build_context
from purevia.deps import get_coordinator
from purevia.main import app


@pytest.fixture
def ctx(tmp_path):
    return build_context(tmp_path)


@pytest.fixture
def client(ctx):
    app.dependency_overrides[get_coordinator] = lambda: ctx.coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()
