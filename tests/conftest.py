"""Pytest fixtures: image bytes, fake HTTP responses, a recording view, isolated config."""

import io
import json

import pytest
import requests
from PIL import Image

from pokiface.core import config as config_module
from pokiface.ui.view import BaseView


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    """Every test starts without a cached config and with no config file or Azure key in env."""
    monkeypatch.delenv("AZURE_OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
    monkeypatch.delenv("POKIFACE_PROXY_URL", raising=False)
    monkeypatch.setenv("POKIFACE_CONFIG", str(tmp_path / "no-such-pokiface.yml"))
    config_module.reset_config()
    yield
    config_module.reset_config()


def _image_bytes(fmt: str) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 200, 0)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return _image_bytes("JPEG")


@pytest.fixture
def make_response():
    """Factory for real requests.Response objects with a JSON or text body."""

    def _make(status: int, json_body=None, text: str | None = None) -> requests.Response:
        resp = requests.Response()
        resp.status_code = status
        if json_body is not None:
            resp._content = json.dumps(json_body).encode("utf-8")
        else:
            resp._content = (text or "").encode("utf-8")
        resp.encoding = "utf-8"
        resp.url = "https://example.test/"
        return resp

    return _make


class RecordingView(BaseView):
    """Records every call as (method, args) for assertions on order."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.credential_prompt_open = False

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def show_credential_prompt(self, prefill):
        self.credential_prompt_open = True
        self.calls.append(("show_credential_prompt", prefill))

    def hide_credential_prompt(self):
        self.credential_prompt_open = False
        self.calls.append(("hide_credential_prompt",))

    def show_user_image(self, image):
        self.calls.append(("show_user_image", image.filename))

    def show_loading(self):
        self.calls.append(("show_loading",))

    def hide_loading(self):
        self.calls.append(("hide_loading",))

    def show_artwork(self, creature_name, artwork_url):
        self.calls.append(("show_artwork", creature_name, artwork_url))

    def show_description(self, description):
        self.calls.append(("show_description", description))

    def show_toast(self, kind, message):
        self.calls.append(("show_toast", kind, message))

    def hide_toast(self, kind):
        self.calls.append(("hide_toast", kind))

    def share(self, text):
        self.calls.append(("share", text))

    def clear(self):
        self.calls.append(("clear",))


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()
