import pytest
from fastapi.testclient import TestClient

from access_codes.main import create_app
from access_codes.presentation.dependencies import get_code_service


@pytest.fixture()
def app_and_service(service):
    app = create_app()
    app.dependency_overrides[get_code_service] = lambda: service

    try:
        yield app, service
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app_and_service):
    app, _ = app_and_service
    return TestClient(app, raise_server_exceptions=False)
