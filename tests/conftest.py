from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from udispatch.starlette import App

from .apps import make_app


@pytest.fixture
def app() -> App:
    return make_app()


@pytest.fixture
async def client(app: App) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app.to_framework_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
