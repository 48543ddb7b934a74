"""Fixtures for the reference API and the httpx adapter wired to it."""

import httpx
import pytest
from storefront.api.app import create_app
from storefront.api.backend import StorefrontBackend
from storefront.gateway.http_adapter import HttpStorefrontApi


@pytest.fixture()
def backend():
    backend = StorefrontBackend.with_demo_data()
    backend.password_iterations = 1_000
    return backend


@pytest.fixture()
def app(backend):
    return create_app(backend)


@pytest.fixture()
async def http_api(app):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test/api")
    async with HttpStorefrontApi("http://test/api", client=client) as api:
        yield api
