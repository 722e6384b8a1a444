from __future__ import annotations

import asyncio
import io
from types import SimpleNamespace
from urllib import error as urllib_error

import pytest

from campaign_map_engine.adapters.anthropic_completion import AnthropicCompletion, usage_cost
from campaign_map_engine.adapters.blob_store import LocalBlobStore
from campaign_map_engine.adapters.stability_image import StabilityImageGenerator
from campaign_map_engine.config import Settings
from campaign_map_engine.core.errors import BlobUploadError, ImageGenerationError


class FakeMessages:
    def __init__(self):
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text='  {"rows": []}  ')],
            usage=SimpleNamespace(input_tokens=1000, output_tokens=2000),
        )


def test_anthropic_completion_builds_vision_request():
    async def run_test():
        messages = FakeMessages()
        completion = AnthropicCompletion(model="test-model", client=SimpleNamespace(messages=messages))
        result = await completion.complete(
            "system", "describe", image=b"\x00\x01", image_media_type="image/png", max_tokens=99, temperature=0.2
        )

        assert result.text == '{"rows": []}'
        assert result.cost == pytest.approx(0.003 + 0.03)
        assert messages.kwargs["model"] == "test-model"
        assert messages.kwargs["system"] == "system"
        assert messages.kwargs["max_tokens"] == 99
        content = messages.kwargs["messages"][0]["content"]
        assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "AAE="}
        assert content[1] == {"type": "text", "text": "describe"}

    asyncio.run(run_test())


def test_usage_cost_rates():
    assert usage_cost(1_000_000, 0) == pytest.approx(3.0)
    assert usage_cost(0, 1_000_000) == pytest.approx(15.0)


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def test_stability_posts_multipart_form(monkeypatch):
    captured = {}

    def fake_urlopen(request, timeout=0):
        captured["request"] = request
        return FakeResponse(b"webp-bytes")

    monkeypatch.setattr("campaign_map_engine.adapters.stability_image.urllib_request.urlopen", fake_urlopen)

    async def run_test():
        result = await StabilityImageGenerator("sk-test").generate("a pier", negative_prompt="text")
        assert result.image == b"webp-bytes"
        assert result.cost == pytest.approx(0.03)
        assert result.media_type == "image/webp"

    asyncio.run(run_test())
    request = captured["request"]
    assert request.get_header("Authorization") == "Bearer sk-test"
    assert request.get_header("Accept") == "image/*"
    body = request.data.decode("utf-8")
    assert 'name="prompt"\r\n\r\na pier' in body
    assert 'name="output_format"\r\n\r\nwebp' in body
    assert 'name="aspect_ratio"\r\n\r\n1:1' in body
    assert 'name="negative_prompt"\r\n\r\ntext' in body


def test_stability_http_error_is_an_image_error(monkeypatch):
    def fake_urlopen(request, timeout=0):
        raise urllib_error.HTTPError(request.full_url, 402, "Payment Required", {}, io.BytesIO(b"no credits"))

    monkeypatch.setattr("campaign_map_engine.adapters.stability_image.urllib_request.urlopen", fake_urlopen)
    with pytest.raises(ImageGenerationError, match=r"\(402\): no credits"):
        asyncio.run(StabilityImageGenerator("sk-test").generate("a pier"))


def test_stability_requires_a_key():
    with pytest.raises(ImageGenerationError):
        StabilityImageGenerator("")


def test_local_blob_store_round_trip(tmp_path):
    async def run_test():
        store = LocalBlobStore(tmp_path, base_url="https://cdn.example/maps/")
        url = await store.upload(b"img", "campaign-maps/c/docks.webp", content_type="image/webp")
        assert url == "https://cdn.example/maps/campaign-maps/c/docks.webp"
        assert (tmp_path / "campaign-maps" / "c" / "docks.webp").read_bytes() == b"img"
        assert await store.download(url) == b"img"

        file_store = LocalBlobStore(tmp_path)
        file_url = await file_store.upload(b"other", "x/y.webp", content_type="image/webp")
        assert file_url.startswith("file://")
        assert await file_store.download(file_url) == b"other"

    asyncio.run(run_test())


def test_local_blob_store_rejects_escaping_paths(tmp_path):
    store = LocalBlobStore(tmp_path / "root")
    with pytest.raises(BlobUploadError):
        asyncio.run(store.upload(b"img", "../outside.webp", content_type="image/webp"))


def test_settings_from_env():
    settings = Settings.from_env(
        {
            "ANTHROPIC_API_KEY": " key ",
            "STABILITY_API_KEY": "",
            "CAMPAIGN_MAP_DATABASE_URL": "sqlite:///:memory:",
            "CAMPAIGN_MAP_MODEL": "other-model",
        }
    )
    assert settings.anthropic_api_key == "key"
    assert settings.stability_api_key is None
    assert settings.images_available is False
    assert settings.database_url == "sqlite:///:memory:"
    assert settings.model == "other-model"
    assert settings.blob_base_url is None
