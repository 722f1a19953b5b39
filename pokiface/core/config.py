"""Application configuration (Pydantic v2). Load from pokiface.yml with optional env override."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, field_validator


DEFAULT_CONFIG_ENV_VAR = "POKIFACE_CONFIG"
DEFAULT_CONFIG_FILENAME = "pokiface.yml"
DEFAULT_CREDENTIALS_PATH = str(Path.home() / ".config" / "pokiface" / "credentials.yml")
PLACEHOLDER_ARTWORK_URL = "https://via.placeholder.com/200x200?text=Pokemon"

# Environment variable -> Settings field. Applied on top of YAML values.
ENV_OVERRIDES = {
    "AZURE_OPENAI_API_KEY": "azure_api_key",
    "AZURE_OPENAI_ENDPOINT": "azure_endpoint",
    "POKIFACE_PROXY_URL": "proxy_url",
}


class Settings(BaseModel):
    """
    PokiFace config loaded from YAML.

    Secrets (the Azure key) are expected to come from the environment; the YAML file
    normally carries only endpoints, models and limits.
    """

    model_config = {"extra": "ignore"}

    analyzer: str = "gemini"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_probe_model: str = "gemini-2.5-flash"
    azure_endpoint: str = "https://pokiface-ai.openai.azure.com/"
    azure_deployment: str = "gpt-4o-mini"
    azure_api_version: str = "2024-02-01"
    azure_api_key: str | None = None
    proxy_url: str = "http://localhost:7071/api/getPokemonTwin"
    pokeapi_base_url: str = "https://pokeapi.co/api/v2"
    placeholder_url: str = PLACEHOLDER_ARTWORK_URL
    request_timeout_seconds: float = 30.0
    credentials_path: str = DEFAULT_CREDENTIALS_PATH
    max_upload_bytes: int = 10 * 1024 * 1024
    toast_seconds: float = 5.0
    log_level: str = "WARNING"
    forensics_dir: str = "logs/forensics"

    @field_validator("azure_api_key", mode="before")
    @classmethod
    def empty_key_is_none(cls, v: Any) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("analyzer")
    @classmethod
    def normalize_analyzer(cls, v: str) -> str:
        return v.strip().lower()


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the default config path from POKIFACE_CONFIG / pokiface.yml and
      apply ENV_OVERRIDES when present.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def _apply_env(self, data: dict[str, Any]) -> dict[str, Any]:
        for env_name, field in ENV_OVERRIDES.items():
            value = self._env.get(env_name)
            if value:
                data[field] = value
        return data

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        if apply_env_override:
            data = self._apply_env(data)
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """
        Load the default Settings, using POKIFACE_CONFIG or pokiface.yml.

        Environment overrides always win over YAML values here, so deployments can keep the
        Azure key out of any file.
        """
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)
        return Settings.model_validate(self._apply_env({}))


_loader = ConfigLoader()


def get_config(config_path: str | Path | None = None, apply_env_override: bool = True) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it and update the cache. Env overrides still apply
      unless apply_env_override is False (the Azure key is never expected in the file).
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = _loader.load_from_yaml(Path(config_path), apply_env_override=apply_env_override)
        return _config
    if _config is not None:
        return _config
    _config = _loader.load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None
