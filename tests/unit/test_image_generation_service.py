"""Unit tests for ImageGenerationService against a mocked Gemini endpoint."""

import base64
import json

import httpx
import pytest
from PIL import Image

from services.image_generation_service import (
    ASPECT_RATIO,
    PLACEHOLDER_SIZE,
    ImageGenerationService,
)
from services.prompts import IMAGE_PROMPT_PREAMBLE

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


def _image_response() -> dict:
    encoded = base64.b64encode(PNG_BYTES).decode()
    return {
        "candidates": [
            {"content": {"parts": [{"text": "here"}, {"inlineData": {"mimeType": "image/png", "data": encoded}}]}}
        ]
    }


def _service(handler, sleep, api_key="test_key") -> ImageGenerationService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageGenerationService(api_key=api_key, client=client, sleep=sleep)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_writes_decoded_image(temp_dir, recording_sleep):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=_image_response())

    service = _service(handler, recording_sleep)
    try:
        output = await service.generate_image("A volcano", temp_dir / "img.png")
    finally:
        await service.close()

    assert output.read_bytes() == PNG_BYTES
    request = requests[0]
    assert request.url.path.endswith("/models/gemini-2.5-flash-image:generateContent")
    assert request.headers["x-goog-api-key"] == "test_key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == IMAGE_PROMPT_PREAMBLE + "A volcano"
    assert body["generationConfig"]["imageConfig"]["aspectRatio"] == ASPECT_RATIO
    assert recording_sleep.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retries_with_linear_backoff(temp_dir, recording_sleep):
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503, json={"error": {"message": "overloaded"}})
        return httpx.Response(200, json=_image_response())

    service = _service(handler, recording_sleep)
    try:
        output = await service.generate_image("A volcano", temp_dir / "img.png")
    finally:
        await service.close()

    assert output.read_bytes() == PNG_BYTES
    assert calls["n"] == 3
    assert recording_sleep.calls == [2.0, 4.0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_placeholder_after_final_failure(temp_dir, recording_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    service = _service(handler, recording_sleep)
    try:
        output = await service.generate_image("A volcano", temp_dir / "img.png", max_retries=2)
    finally:
        await service.close()

    with Image.open(output) as image:
        assert image.size == PLACEHOLDER_SIZE
    assert recording_sleep.calls == [2.0]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_key_falls_back_without_requests(temp_dir, recording_sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    service = _service(handler, recording_sleep, api_key="")
    try:
        output = await service.generate_image("A volcano", temp_dir / "img.png")
    finally:
        await service.close()

    assert output.exists()


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, body",
    [
        (200, {"text": "<html>upstream proxy</html>"}),
        (200, {"json": [{"error": "x"}]}),
        (200, {"json": {"candidates": ["not-a-dict"]}}),
        (200, {"json": {"candidates": [{"content": {"parts": [{"inlineData": {"data": "%%%"}}]}}]}}),
        (500, {"json": ["not", "an", "object"]}),
    ],
    ids=["html-body", "json-list", "candidate-not-object", "bad-base64", "error-list"],
)
async def test_malformed_reply_is_retried_then_placeholder(temp_dir, recording_sleep, status, body):
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(status, **body)

    service = _service(handler, recording_sleep)
    try:
        output = await service.generate_image("A volcano", temp_dir / "img.png")
    finally:
        await service.close()

    with Image.open(output) as image:
        assert image.size == PLACEHOLDER_SIZE
    assert calls["n"] == 3
    assert recording_sleep.calls == [2.0, 4.0]
