"""Match analyzer calling Gemini generateContent directly with the user's own API key."""

import base64

import requests

from pokiface.ai.analyzer_base import BaseMatchAnalyzer
from pokiface.ai.prompts import GEMINI_MATCH_PROMPT
from pokiface.ai.schema import AnalysisRequest, ModelCard

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"


def generate_content_url(base_url: str, model: str, api_key: str) -> str:
    return f"{base_url.rstrip('/')}/models/{model}:generateContent?key={api_key}"


def _first_text(body: dict) -> str:
    """candidates[0].content.parts[0].text, or '' when the body has another shape."""
    try:
        text = body["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class GeminiMatchAnalyzer(BaseMatchAnalyzer):
    """Client-side analyzer: the credential is the key stored by the CredentialManager."""

    prompt_text = GEMINI_MATCH_PROMPT
    requires_credential = True

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout=timeout, session=session)
        self._base_url = base_url
        self._model = model

    def get_model_card(self) -> ModelCard:
        return ModelCard(name="gemini", version=self._model)

    def build_payload(self, request: AnalysisRequest) -> dict:
        return {
            "contents": [
                {
                    "parts": [
                        {"text": request.prompt_text},
                        {
                            "inline_data": {
                                "mime_type": request.mime_type,
                                "data": base64.b64encode(request.image_bytes).decode("ascii"),
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": 1000,
            },
        }

    def _complete(self, request: AnalysisRequest, credential: str | None) -> str:
        url = generate_content_url(self._base_url, self._model, credential or "")
        body = self._post(url, self.build_payload(request))
        return _first_text(body)
