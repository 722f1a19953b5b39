"""Persist and validate the user's Gemini API key.

The key lives in a small YAML file (one mapping entry under CREDENTIAL_KEY). validate()
sends a one-word probe to Gemini; anything other than HTTP 2xx means the key is bad and
the stored copy is removed.
"""

import logging
import os
from pathlib import Path

import requests
import yaml

from pokiface.ai.analyzer_gemini import DEFAULT_BASE_URL, generate_content_url
from pokiface.ai.prompts import CREDENTIAL_PROBE_TEXT
from pokiface.core.config import Settings
from pokiface.core.errors import CredentialError, InvalidCredentialError

_log = logging.getLogger(__name__)

CREDENTIAL_KEY = "gemini-api-key"
DEFAULT_PROBE_MODEL = "gemini-2.5-flash"


def mask_key(key: str) -> str:
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}{'*' * (len(key) - 8)}{key[-4:]}"


class CredentialStore:
    """YAML-backed key/value file. Only CREDENTIAL_KEY is used today."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            _log.debug("Could not restrict permissions on %s", self.path)

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return str(value) if value else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class CredentialManager:
    def __init__(
        self,
        store: CredentialStore,
        base_url: str = DEFAULT_BASE_URL,
        probe_model: str = DEFAULT_PROBE_MODEL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._store = store
        self._base_url = base_url
        self._probe_model = probe_model
        self._timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialManager":
        return cls(
            CredentialStore(settings.credentials_path),
            base_url=settings.gemini_base_url,
            probe_model=settings.gemini_probe_model,
            timeout=settings.request_timeout_seconds,
        )

    def load(self) -> str | None:
        """Return the persisted key, or None."""
        return self._store.get(CREDENTIAL_KEY)

    def save(self, key: str | None) -> str:
        """Persist the stripped key and return it. Empty or whitespace-only input raises CredentialError."""
        key = (key or "").strip()
        if not key:
            raise CredentialError("Please enter your Gemini API key")
        self._store.set(CREDENTIAL_KEY, key)
        return key

    def clear(self) -> None:
        self._store.remove(CREDENTIAL_KEY)

    def validate(self, key: str) -> None:
        """
        Probe the provider with key. On non-2xx or network failure the stored key is cleared
        and InvalidCredentialError is raised.
        """
        url = generate_content_url(self._base_url, self._probe_model, key)
        payload = {"contents": [{"parts": [{"text": CREDENTIAL_PROBE_TEXT}]}]}
        try:
            resp = self._session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            ok = resp.ok
            status = resp.status_code
        except requests.RequestException as e:
            _log.warning("Credential probe failed: %s", e)
            ok = False
            status = None
        if not ok:
            _log.info("Credential probe rejected (status=%s); clearing stored key", status)
            self.clear()
            raise InvalidCredentialError("Invalid API key. Please check and try again.")
