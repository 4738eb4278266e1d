"""
Root conftest.py for imagegen-mcp tests.

This file provides:
1. Common pytest markers for test categorization
2. Environment fixtures (credential mocking)
3. Stub backends built on httpx.MockTransport
4. Small real image payloads
"""

from __future__ import annotations

import base64
import io
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from PIL import Image

from imagegen_mcp.capabilities import PROVIDER_ENV_VARS

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")

        if "/providers/" in norm:
            item.add_marker(pytest.mark.providers)
        if "/server/" in norm:
            item.add_marker(pytest.mark.mcp)
        if "/cli/" in norm:
            item.add_marker(pytest.mark.cli)


def pytest_configure(config):
    """Register custom markers."""
    for name, desc in [
        ("providers", "Provider client tests against stub backends"),
        ("mcp", "MCP server/tool tests"),
        ("cli", "Command line tests"),
        ("slow", "Slow-running tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================


TEST_KEYS = {
    "openai": "sk-test-openai-key",
    "stability": "test-stability-key",
    "replicate": "test-replicate-token",
    "huggingface": "test-huggingface-key",
}


def _set_env(monkeypatch: pytest.MonkeyPatch, providers: List[str]) -> None:
    for provider, env_var in PROVIDER_ENV_VARS.items():
        if provider in providers:
            monkeypatch.setenv(env_var, TEST_KEYS[provider])
        else:
            monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv("IMAGEGEN_MCP_LOG_LEVEL", raising=False)


@pytest.fixture
def mock_env_none(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up environment with no provider credentials."""
    _set_env(monkeypatch, [])


@pytest.fixture
def mock_env_openai(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up environment with only an OpenAI key."""
    _set_env(monkeypatch, ["openai"])


@pytest.fixture
def mock_env_stability(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up environment with only a Stability key."""
    _set_env(monkeypatch, ["stability"])


@pytest.fixture
def mock_env_all_providers(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up environment with every provider credential."""
    _set_env(monkeypatch, list(TEST_KEYS))


# =============================================================================
# IMAGE FIXTURES
# =============================================================================


def make_png(size=(4, 4), color=(255, 0, 0)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_b64(png_bytes: bytes) -> str:
    return base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def source_image(tmp_path, png_bytes: bytes) -> str:
    """A real PNG on disk to use as an edit source."""
    path = tmp_path / "source.png"
    path.write_bytes(png_bytes)
    return str(path)


# =============================================================================
# STUB BACKENDS
# =============================================================================


class StubBackend:
    """Records requests and answers them with a fixed handler.

    Usage:
        backend = StubBackend.json({"data": [{"b64_json": "..."}]})
        client = OpenAIImageClient(config, transport=backend.transport)
        ...
        assert backend.call_count == 1
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self._handler = handler
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def last_request(self) -> Optional[httpx.Request]:
        return self.requests[-1] if self.requests else None

    def last_json(self) -> Dict[str, Any]:
        assert self.last_request is not None
        return json.loads(self.last_request.content)

    @classmethod
    def json(cls, body: Any, status_code: int = 200) -> "StubBackend":
        return cls(lambda request: httpx.Response(status_code, json=body))

    @classmethod
    def raw(cls, content: bytes, status_code: int = 200) -> "StubBackend":
        return cls(lambda request: httpx.Response(status_code, content=content))


@pytest.fixture
def openai_backend(png_b64: str) -> StubBackend:
    """OpenAI-shaped backend returning one base64 image."""
    return StubBackend.json({"created": 1700000000, "data": [{"b64_json": png_b64}]})


@pytest.fixture
def stability_backend(png_b64: str) -> StubBackend:
    """Stability-shaped backend returning one artifact."""
    return StubBackend.json(
        {"artifacts": [{"base64": png_b64, "seed": 1, "finishReason": "SUCCESS"}]}
    )
