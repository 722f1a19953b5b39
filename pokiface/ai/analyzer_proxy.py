"""Match analyzer that goes through a running PokiFace proxy service (POST /api/getPokemonTwin)."""

import base64
import json
import logging

import requests

from pokiface.ai.analyzer_base import BaseMatchAnalyzer
from pokiface.ai.schema import AnalysisRequest, ModelCard
from pokiface.core.errors import AnalysisError

_log = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "http://localhost:7071/api/getPokemonTwin"


class ProxyMatchAnalyzer(BaseMatchAnalyzer):
    """The proxy owns the prompt and the provider key; the client only sends the photo."""

    def __init__(
        self,
        url: str = DEFAULT_PROXY_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout=timeout, session=session)
        self._url = url

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="proxy", version=self._url)

    def _complete(self, request: AnalysisRequest, credential: str | None) -> str:
        payload = {
            "image": base64.b64encode(request.image_bytes).decode("ascii"),
            "mimeType": request.mime_type,
        }
        try:
            resp = self._session.post(self._url, json=payload, timeout=self._timeout)
        except requests.Timeout as e:
            raise AnalysisError(f"API Error: request timed out after {self._timeout:g}s") from e
        except requests.RequestException as e:
            raise AnalysisError(f"API Error: {e}") from e
        if not resp.ok:
            # The proxy answers errors with a plain-text message.
            message = resp.text.strip() or f"HTTP {resp.status_code}"
            _log.error("Proxy returned HTTP %s: %s", resp.status_code, message)
            raise AnalysisError(message)
        try:
            # Re-serialize so the normalizer sees the same JSON text the proxy produced.
            return json.dumps(resp.json())
        except ValueError:
            return resp.text
