import pytest
from live import requires_osaurus

from osaurus_sdk import AsyncOsaurus, Osaurus, check_health


@requires_osaurus
def test_discovered_server_is_healthy():
    assert check_health() is True


@requires_osaurus
def test_list_models():
    with Osaurus.make() as client:
        models = client.list_models()
    assert models
    assert all(model.id for model in models)


@requires_osaurus
def test_tweak(small_model):
    with Osaurus.make() as client:
        result = client.tweak("i has went to the store", model=small_model)
    assert result.strip()


@requires_osaurus
@pytest.mark.asyncio
async def test_tweak_stream(small_model):
    async with AsyncOsaurus.make() as client:
        async with client.tweak_stream("i has went to the store", model=small_model) as stream:
            async for _ in stream:
                pass
    assert stream.text.strip()
