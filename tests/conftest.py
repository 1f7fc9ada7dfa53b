import pytest

from revalidation_service.main import create_app
from tests.utils import FakeRegenerator, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def regenerator():
    return FakeRegenerator()


@pytest.fixture
async def service_client(aiohttp_client, settings, regenerator):
    """Client for calling the service API with a fake regeneration endpoint."""
    app = create_app(settings, regenerator=regenerator)
    return await aiohttp_client(app)
