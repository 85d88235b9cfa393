import pytest

from feedback_hub.services.inference_provider import InferenceUpstreamError

PIXEL = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


@pytest.mark.asyncio
async def test_complete_requires_session(client):
    response = await client.post("/ai/complete", json={"prompt": "hello"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_complete_returns_model_output(owner_client, fake_provider):
    fake_provider.queue("hi there")

    response = await owner_client.post("/ai/complete", json={"prompt": "hello", "model": "small"})

    assert response.status_code == 200
    assert response.json() == {"output": "hi there"}
    assert fake_provider.calls == [{"prompt": "hello", "image": None, "model": "small"}]


@pytest.mark.asyncio
async def test_complete_forwards_image_with_default_mime(owner_client, fake_provider):
    fake_provider.queue("a pixel")

    response = await owner_client.post(
        "/ai/complete",
        json={"prompt": "describe", "image_base64": PIXEL},
    )

    assert response.status_code == 200
    image = fake_provider.calls[0]["image"]
    assert image.content_base64 == PIXEL
    assert image.mime_type == "image/png"


@pytest.mark.asyncio
async def test_complete_rejects_bad_base64(owner_client, fake_provider):
    response = await owner_client.post(
        "/ai/complete",
        json={"prompt": "describe", "image_base64": "not base64!"},
    )

    assert response.status_code == 422
    assert fake_provider.calls == []


@pytest.mark.asyncio
async def test_complete_upstream_failure_is_502(owner_client, fake_provider):
    fake_provider.queue(InferenceUpstreamError())

    response = await owner_client.post("/ai/complete", json={"prompt": "hello"})

    assert response.status_code == 502
