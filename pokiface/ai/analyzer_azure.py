"""Match analyzer calling an Azure OpenAI chat-completions deployment.

The key is server-side configuration (AZURE_OPENAI_API_KEY); this analyzer is what the
proxy service uses, so the browser/CLI never sees it.
"""

import base64

import requests

from pokiface.ai.analyzer_base import BaseMatchAnalyzer
from pokiface.ai.prompts import CHAT_MATCH_PROMPT
from pokiface.ai.schema import AnalysisRequest, ModelCard
from pokiface.core.errors import AnalysisError


def chat_completions_url(endpoint: str, deployment: str, api_version: str) -> str:
    return (
        f"{endpoint.rstrip('/')}/openai/deployments/{deployment}/chat/completions"
        f"?api-version={api_version}"
    )


def _first_message(body: dict) -> str:
    """choices[0].message.content, or '' when the body has another shape."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


class AzureMatchAnalyzer(BaseMatchAnalyzer):
    prompt_text = CHAT_MATCH_PROMPT

    def __init__(
        self,
        endpoint: str,
        api_key: str | None,
        deployment: str = "gpt-4o-mini",
        api_version: str = "2024-02-01",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(timeout=timeout, session=session)
        self._url = chat_completions_url(endpoint, deployment, api_version)
        self._api_key = api_key
        self._deployment = deployment
        self._api_version = api_version

    def get_model_card(self) -> ModelCard:
        return ModelCard(name=f"azure-{self._deployment}", version=self._api_version)

    def build_payload(self, request: AnalysisRequest) -> dict:
        b64 = base64.b64encode(request.image_bytes).decode("ascii")
        return {
            "messages": [
                {"role": "system", "content": request.prompt_text},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{request.mime_type};base64,{b64}"},
                        }
                    ],
                },
            ],
            "max_tokens": 300,
            "temperature": 0.7,
            "response_format": {"type": "json_object"},
        }

    def _complete(self, request: AnalysisRequest, credential: str | None) -> str:
        if not self._api_key:
            raise AnalysisError("API Error: AZURE_OPENAI_API_KEY is not configured")
        body = self._post(self._url, self.build_payload(request), headers={"api-key": self._api_key})
        return _first_message(body)
