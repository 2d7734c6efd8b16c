"""Unit tests for the Gemini summary backend (no network, fake model)"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from google.api_core.exceptions import PermissionDenied, ServiceUnavailable, Unauthenticated

from mailsift.errors import ServiceTransportError, ServiceUnauthorizedError
from mailsift.llm.gemini import GeminiInitializationError
from mailsift.summarize.backends import GeminiSummaryBackend, SummaryRequest, build_prompt


class FakeModel:
    def __init__(self, text="Sign the contract by Friday.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def generate_content_async(self, prompt, generation_config=None):
        self.calls.append((prompt, generation_config))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class BlockedResponse:
    @property
    def text(self):
        raise ValueError("response was blocked")


def backend_with(model, project="demo-project"):
    projects = []

    def factory(requested):
        projects.append(requested)
        return model

    backend = GeminiSummaryBackend(project=project, model_factory=factory)
    return backend, projects


REQUEST = SummaryRequest(text="Please sign the contract before Friday.")


class TestComplete:
    def test_returns_stripped_text(self):
        backend, projects = backend_with(FakeModel(text="  Sign it by Friday.\n"))
        assert asyncio.run(backend.complete(REQUEST)) == "Sign it by Friday."
        assert projects == ["demo-project"]

    def test_prompt_and_generation_config(self):
        model = FakeModel()
        backend, _ = backend_with(model)
        asyncio.run(backend.complete(REQUEST))

        [(prompt, config)] = model.calls
        assert prompt == build_prompt(REQUEST)
        assert "concise summary" in prompt
        assert "150 characters or less" in prompt
        assert REQUEST.text in prompt
        assert set(config) == {"temperature", "max_output_tokens"}

    @pytest.mark.parametrize("error", [Unauthenticated("bad key"), PermissionDenied("denied")])
    def test_rejected_credential_is_unauthorized(self, error):
        backend, _ = backend_with(FakeModel(error=error))
        with pytest.raises(ServiceUnauthorizedError):
            asyncio.run(backend.complete(REQUEST))

    @pytest.mark.parametrize(
        "error", [ServiceUnavailable("down"), TimeoutError(), RuntimeError("boom")]
    )
    def test_other_failures_are_transport(self, error):
        backend, _ = backend_with(FakeModel(error=error))
        with pytest.raises(ServiceTransportError):
            asyncio.run(backend.complete(REQUEST))

    def test_model_initialization_failure_is_transport(self):
        def factory(project):
            raise GeminiInitializationError("no vertex")

        backend = GeminiSummaryBackend(project="demo-project", model_factory=factory)
        with pytest.raises(ServiceTransportError):
            asyncio.run(backend.complete(REQUEST))

    def test_blocked_response_is_transport(self):
        model = FakeModel()

        async def blocked(prompt, generation_config=None):
            return BlockedResponse()

        model.generate_content_async = blocked
        backend, _ = backend_with(model)
        with pytest.raises(ServiceTransportError):
            asyncio.run(backend.complete(REQUEST))

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_response_is_transport(self, text):
        backend, _ = backend_with(FakeModel(text=text))
        with pytest.raises(ServiceTransportError, match="empty"):
            asyncio.run(backend.complete(REQUEST))


class TestCredential:
    @pytest.fixture(autouse=True)
    def _no_ambient_project(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.setattr("mailsift.llm.gemini.GOOGLE_CLOUD_PROJECT", None)

    def test_without_project_is_unauthorized(self):
        backend, projects = backend_with(FakeModel(), project=None)
        assert not backend.has_credential
        with pytest.raises(ServiceUnauthorizedError):
            asyncio.run(backend.complete(REQUEST))
        assert projects == []

    def test_set_credential(self):
        backend, projects = backend_with(FakeModel(), project=None)
        backend.set_credential("from-store")
        assert backend.has_credential
        asyncio.run(backend.complete(REQUEST))
        assert projects == ["from-store"]

        backend.set_credential(None)
        assert not backend.has_credential


class TestModelManager:
    def test_missing_project_raises_before_sdk_init(self, monkeypatch):
        from mailsift.llm.gemini import clear_model_cache, get_gemini_model

        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.setattr("mailsift.llm.gemini.GOOGLE_CLOUD_PROJECT", None)
        clear_model_cache()
        with pytest.raises(GeminiInitializationError, match="GOOGLE_CLOUD_PROJECT"):
            get_gemini_model()
        clear_model_cache()

    def test_resolve_project_precedence(self, monkeypatch):
        from mailsift.llm.gemini import resolve_project

        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "from-env")
        assert resolve_project("explicit") == "explicit"
        assert resolve_project(None) == "from-env"
