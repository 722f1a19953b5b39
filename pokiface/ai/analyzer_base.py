"""Abstract base and mock implementation for match analyzers."""

import logging
from abc import ABC, abstractmethod

import requests

from pokiface.ai.normalizer import normalize_response
from pokiface.ai.schema import AnalysisRequest, AnalysisResult, ModelCard, UploadedImage
from pokiface.core.errors import AnalysisError

_log = logging.getLogger(__name__)


def provider_error_message(resp: requests.Response) -> str:
    """'API Error: <message>' from an {"error": {"message": ...}} body, else a generic message."""
    message = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            message = str(err["message"])
        elif isinstance(err, str) and err:
            message = err
    return f"API Error: {message or 'Unknown error'}"


class BaseMatchAnalyzer(ABC):
    """
    Sends one photo plus a fixed instruction to a vision model and normalizes the answer.

    Subclasses build and send the provider request in _complete() and return the model's
    raw text; analyze() turns that text into an AnalysisResult via the normalizer.
    """

    prompt_text: str = ""
    requires_credential: bool = False

    def __init__(self, timeout: float = 30.0, session: requests.Session | None = None) -> None:
        self._timeout = timeout
        self._session = session or requests.Session()

    @abstractmethod
    def get_model_card(self) -> ModelCard:
        """Return provider identity (name, version)."""
        ...

    @abstractmethod
    def _complete(self, request: AnalysisRequest, credential: str | None) -> str:
        """Send the request; return the model's raw text. Raise AnalysisError on provider failure."""
        ...

    def build_request(self, image: UploadedImage) -> AnalysisRequest:
        return AnalysisRequest(
            image_bytes=image.data,
            mime_type=image.mime_type,
            prompt_text=self.prompt_text,
        )

    def analyze(self, image: UploadedImage, credential: str | None = None) -> AnalysisResult:
        if self.requires_credential and not credential:
            raise AnalysisError("Please set your API key first")
        card = self.get_model_card()
        _log.info("Matching %s (%d bytes) with %s %s", image.filename, len(image.data), card.name, card.version)
        request = self.build_request(image)
        text = self._complete(request, credential)
        return normalize_response(text)

    def _post(self, url: str, json_payload: dict, headers: dict[str, str] | None = None) -> dict:
        """POST JSON and return the parsed body. Non-2xx, network errors and timeouts raise AnalysisError.

        A 2xx body that is not JSON comes back as an empty dict so the caller falls through to
        the normalizer fallback.
        """
        try:
            resp = self._session.post(
                url,
                json=json_payload,
                headers={"Content-Type": "application/json", **(headers or {})},
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise AnalysisError(f"API Error: request timed out after {self._timeout:g}s") from e
        except requests.RequestException as e:
            raise AnalysisError(f"API Error: {e}") from e
        if not resp.ok:
            message = provider_error_message(resp)
            _log.error("Provider returned HTTP %s: %s", resp.status_code, message)
            raise AnalysisError(message)
        try:
            body = resp.json()
        except ValueError:
            _log.warning("Provider returned a non-JSON body: %r", resp.text[:500])
            return {}
        return body if isinstance(body, dict) else {}


class MockMatchAnalyzer(BaseMatchAnalyzer):
    """Offline analyzer for development and tests. Answers with a fixed fenced JSON reply."""

    prompt_text = "mock"

    def __init__(self, reply: str | None = None) -> None:
        super().__init__()
        self._reply = reply

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="mock-analyzer", version="1.0")

    def _complete(self, request: AnalysisRequest, credential: str | None) -> str:
        if self._reply is not None:
            return self._reply
        return (
            "```json\n"
            '{"pokemon_name": "Bulbasaur", "description": "You\'re like Bulbasaur - '
            'steady and kind, with a calm smile that helps everything around you grow."}\n'
            "```"
        )
