"""Factory for match analyzers, keyed by the `analyzer` setting."""

from pokiface.ai.analyzer_base import BaseMatchAnalyzer
from pokiface.core.config import Settings

ANALYZER_NAMES = ("gemini", "azure", "proxy", "mock")


def get_match_analyzer(analyzer_name: str, settings: Settings | None = None) -> BaseMatchAnalyzer:
    """Return a match analyzer by name, configured from settings (defaults when omitted)."""
    cfg = settings or Settings()
    timeout = cfg.request_timeout_seconds
    if analyzer_name == "mock":
        from pokiface.ai.analyzer_base import MockMatchAnalyzer

        return MockMatchAnalyzer()
    if analyzer_name == "gemini":
        from pokiface.ai.analyzer_gemini import GeminiMatchAnalyzer

        return GeminiMatchAnalyzer(base_url=cfg.gemini_base_url, model=cfg.gemini_model, timeout=timeout)
    if analyzer_name == "azure":
        from pokiface.ai.analyzer_azure import AzureMatchAnalyzer

        return AzureMatchAnalyzer(
            endpoint=cfg.azure_endpoint,
            api_key=cfg.azure_api_key,
            deployment=cfg.azure_deployment,
            api_version=cfg.azure_api_version,
            timeout=timeout,
        )
    if analyzer_name == "proxy":
        from pokiface.ai.analyzer_proxy import ProxyMatchAnalyzer

        return ProxyMatchAnalyzer(url=cfg.proxy_url, timeout=timeout)
    raise ValueError(f"Unknown match analyzer: {analyzer_name}")
