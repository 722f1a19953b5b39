"""Tests for PresentationController: state transitions, reveal order, toasts, credential flow."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from pokiface.ai.analyzer_base import MockMatchAnalyzer
from pokiface.ai.normalizer import FALLBACK_RESULTS
from pokiface.core.config import PLACEHOLDER_ARTWORK_URL
from pokiface.core.credentials import CredentialManager, CredentialStore
from pokiface.core.errors import AnalysisError, InvalidCredentialError
from pokiface.core.uploads import UploadFile, UploadHandler
from pokiface.ui.controller import BUSY_MESSAGE, NO_KEY_MESSAGE, PresentationController, UIState

pytestmark = [pytest.mark.fast]

ART_URL = "https://img.test/bulbasaur.png"


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class FakeTimer:
    def __init__(self, seconds: float, callback) -> None:
        self.seconds = seconds
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeTimers:
    """Records scheduled toast dismissals; tests fire them by hand."""

    def __init__(self) -> None:
        self.scheduled: list[FakeTimer] = []

    def __call__(self, seconds: float, callback) -> FakeTimer:
        timer = FakeTimer(seconds, callback)
        self.scheduled.append(timer)
        return timer

    def fire_all(self) -> None:
        for timer in list(self.scheduled):
            timer.fire()


@pytest.fixture
def credentials(tmp_path) -> CredentialManager:
    return CredentialManager(CredentialStore(tmp_path / "credentials.yml"), session=MagicMock())


@pytest.fixture
def artwork():
    resolver = MagicMock()
    resolver.resolve.return_value = ART_URL
    resolver.placeholder_url = PLACEHOLDER_ARTWORK_URL
    return resolver


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


def _controller(
    view, credentials, artwork, clock, sleeps, analyzer=None, uploads=None, timers=None
) -> PresentationController:
    return PresentationController(
        view,
        credentials,
        uploads or UploadHandler(),
        analyzer or MockMatchAnalyzer(),
        artwork,
        clock=clock,
        sleep=sleeps.append,
        timer=timers or FakeTimers(),
    )


@pytest.fixture
def controller(view, credentials, artwork, clock, sleeps, timers) -> PresentationController:
    return _controller(view, credentials, artwork, clock, sleeps, timers=timers)


def test_happy_path_reaches_result_with_staged_reveal(controller, view, png_bytes, sleeps, artwork):
    assert controller.state == UIState.idle
    result = controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))

    assert result is not None and result.creature_name == "Bulbasaur"
    assert controller.state == UIState.result
    assert controller.app.artwork_url == ART_URL
    artwork.resolve.assert_called_once_with("Bulbasaur")
    assert view.names() == [
        "show_user_image",
        "show_loading",
        "hide_loading",
        "show_artwork",
        "show_description",
    ]
    assert sleeps == [0.5, 0.1]


def test_rejected_gif_leaves_idle(controller, view):
    file = UploadFile(name="a.gif", mime_type="image/gif", size=10, read=lambda: b"")
    assert controller.handle_file(file) is None
    assert controller.state == UIState.idle
    assert controller.app.current_image is None
    assert view.calls == [("show_toast", "error", "Please upload a JPG or PNG image file")]


def test_rejected_oversize_leaves_idle(controller, view):
    file = UploadFile(name="a.png", mime_type="image/png", size=11 * 1024 * 1024, read=lambda: b"")
    assert controller.handle_file(file) is None
    assert controller.state == UIState.idle
    assert view.calls == [("show_toast", "error", "Image size should be less than 10MB")]


def test_analysis_failure_returns_to_uploaded(view, credentials, artwork, clock, sleeps, png_bytes):
    analyzer = MockMatchAnalyzer()
    analyzer.analyze = MagicMock(side_effect=AnalysisError("API Error: quota exceeded"))
    controller = _controller(view, credentials, artwork, clock, sleeps, analyzer)

    assert controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes)) is None
    assert controller.state == UIState.uploaded
    assert controller.app.current_image is not None
    assert controller.app.current_result is None
    assert "show_artwork" not in view.names()
    assert ("hide_loading",) in view.calls
    toast = [c for c in view.calls if c[0] == "show_toast"][0]
    assert toast[1] == "error"
    assert "quota exceeded" in toast[2]
    artwork.resolve.assert_not_called()


def test_unparseable_answer_still_reaches_result(view, credentials, artwork, clock, sleeps, png_bytes):
    controller = _controller(view, credentials, artwork, clock, sleeps, MockMatchAnalyzer(reply="Sorry, I cannot help."))
    result = controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))
    assert result in FALLBACK_RESULTS
    assert controller.state == UIState.result


def test_empty_artwork_url_becomes_placeholder(controller, artwork, png_bytes):
    artwork.resolve.return_value = ""
    controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))
    assert controller.state == UIState.result
    assert controller.app.artwork_url == PLACEHOLDER_ARTWORK_URL


def test_unexpected_exception_does_not_leave_analyzing(view, credentials, artwork, clock, sleeps, png_bytes):
    analyzer = MockMatchAnalyzer()
    analyzer.analyze = MagicMock(side_effect=RuntimeError("bug"))
    controller = _controller(view, credentials, artwork, clock, sleeps, analyzer)
    with pytest.raises(RuntimeError):
        controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))
    assert controller.state == UIState.uploaded
    assert not controller.is_busy()


def test_second_upload_while_analyzing_is_rejected(view, credentials, artwork, clock, sleeps, png_bytes):
    started = threading.Event()
    release = threading.Event()
    analyzer = MockMatchAnalyzer()
    real_analyze = analyzer.analyze

    def slow_analyze(image, credential=None):
        started.set()
        release.wait(timeout=5.0)
        return real_analyze(image, credential)

    analyzer.analyze = slow_analyze
    controller = _controller(view, credentials, artwork, clock, sleeps, analyzer)
    file = UploadFile.from_bytes("me.png", "image/png", png_bytes)

    worker = threading.Thread(target=controller.handle_file, args=(file,))
    worker.start()
    try:
        assert started.wait(timeout=5.0)
        assert controller.state == UIState.analyzing
        assert controller.handle_file(UploadFile.from_bytes("you.png", "image/png", png_bytes)) is None
        assert controller.analyze() is None
        assert controller.reset() is False
        assert ("show_toast", "error", BUSY_MESSAGE) in view.calls
    finally:
        release.set()
        worker.join(timeout=5.0)
    assert controller.state == UIState.result
    assert controller.app.current_image.filename == "me.png"
    assert view.names().count("show_artwork") == 1


def test_upload_during_slow_accept_is_rejected_without_touching_display(
    view, credentials, artwork, clock, sleeps, png_bytes
):
    """The busy lock is taken before the first upload is validated, not just before analysis."""
    entered = threading.Event()
    release = threading.Event()
    uploads = UploadHandler()
    real_accept = uploads.accept

    def slow_accept(file):
        if file.name == "a.png":
            entered.set()
            release.wait(timeout=5.0)
        return real_accept(file)

    uploads.accept = slow_accept
    controller = _controller(view, credentials, artwork, clock, sleeps, uploads=uploads)

    worker = threading.Thread(
        target=controller.handle_file, args=(UploadFile.from_bytes("a.png", "image/png", png_bytes),)
    )
    worker.start()
    try:
        assert entered.wait(timeout=5.0)
        assert controller.handle_file(UploadFile.from_bytes("b.png", "image/png", png_bytes)) is None
        assert controller.state == UIState.idle
        assert controller.app.current_image is None
        assert view.calls == [("show_toast", "error", BUSY_MESSAGE)]
    finally:
        release.set()
        worker.join(timeout=5.0)

    assert controller.state == UIState.result
    assert controller.app.current_image.filename == "a.png"
    assert [c for c in view.calls if c[0] == "show_user_image"] == [("show_user_image", "a.png")]
    assert not controller.is_busy()


def test_is_busy_follows_the_lock_only(controller):
    controller.app.ui_state = UIState.analyzing
    assert not controller.is_busy()
    controller._busy.acquire()
    try:
        assert controller.is_busy()
    finally:
        controller._busy.release()


def test_reset_clears_everything(controller, view, png_bytes):
    controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))
    assert controller.reset() is True
    assert controller.state == UIState.idle
    assert controller.app.current_image is None
    assert controller.app.current_result is None
    assert controller.app.artwork_url is None
    assert view.calls[-1] == ("clear",)


def test_gemini_without_key_prompts_and_stays_uploaded(view, credentials, artwork, clock, sleeps, png_bytes):
    analyzer = MagicMock()
    analyzer.requires_credential = True
    controller = _controller(view, credentials, artwork, clock, sleeps, analyzer)
    controller.start()
    assert view.credential_prompt_open

    controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))
    assert controller.state == UIState.uploaded
    assert ("show_toast", "error", NO_KEY_MESSAGE) in view.calls
    analyzer.analyze.assert_not_called()


def test_start_without_credential_need_does_not_prompt(controller, view):
    controller.start()
    assert view.calls == []


def test_save_api_key_success(view, artwork, clock, sleeps, tmp_path):
    credentials = CredentialManager(CredentialStore(tmp_path / "c.yml"), session=MagicMock())
    credentials.validate = MagicMock()
    controller = _controller(view, credentials, artwork, clock, sleeps)
    controller.open_settings()

    assert controller.save_api_key("  good  ") is True
    assert controller.app.api_key == "good"
    assert credentials.load() == "good"
    assert view.calls[-2:] == [("hide_credential_prompt",), ("show_toast", "success", "API key saved successfully!")]


def test_save_api_key_invalid_clears_and_toasts(view, artwork, clock, sleeps, tmp_path):
    credentials = CredentialManager(CredentialStore(tmp_path / "c.yml"), session=MagicMock())

    def reject(key):
        credentials.clear()
        raise InvalidCredentialError("Invalid API key. Please check and try again.")

    credentials.validate = reject
    controller = _controller(view, credentials, artwork, clock, sleeps)

    assert controller.save_api_key("bad") is False
    assert controller.app.api_key is None
    assert credentials.load() is None
    assert view.calls[-1] == ("show_toast", "error", "Invalid API key. Please check and try again.")


def test_save_empty_api_key_is_rejected_without_probe(view, artwork, clock, sleeps, tmp_path):
    credentials = CredentialManager(CredentialStore(tmp_path / "c.yml"), session=MagicMock())
    credentials.validate = MagicMock()
    controller = _controller(view, credentials, artwork, clock, sleeps)
    assert controller.save_api_key("   ") is False
    credentials.validate.assert_not_called()
    assert view.calls == [("show_toast", "error", "Please enter your Gemini API key")]


def test_open_settings_prefills_stored_key(controller, view, credentials):
    credentials.save("stored-key")
    controller.open_settings()
    assert view.calls == [("show_credential_prompt", "stored-key")]


def test_toasts_expire_after_five_seconds(controller, view, clock):
    controller.show_toast("error", "boom")
    clock.now += 4.9
    assert [t.message for t in controller.active_toasts()] == ["boom"]
    clock.now += 0.2
    assert controller.active_toasts() == []
    assert view.calls[-1] == ("hide_toast", "error")


def test_toast_dismisses_itself_when_its_timer_fires(controller, view, timers):
    controller.show_toast("error", "boom")
    assert [t.seconds for t in timers.scheduled] == [5.0]

    timers.fire_all()
    assert view.calls == [("show_toast", "error", "boom"), ("hide_toast", "error")]
    assert controller.app.toasts == {}


def test_replacing_a_toast_cancels_the_old_dismissal(controller, view, timers):
    controller.show_toast("error", "first")
    controller.show_toast("error", "second")
    first, second = timers.scheduled
    assert first.cancelled and not second.cancelled

    first.callback()
    assert controller.app.toasts["error"].message == "second"
    assert "hide_toast" not in view.names()

    timers.fire_all()
    assert view.names().count("hide_toast") == 1
    assert controller.app.toasts == {}


def test_manual_hide_cancels_pending_dismissal(controller, view, timers):
    controller.show_toast("success", "yay")
    controller.hide_toast("success")
    assert timers.scheduled[0].cancelled
    timers.fire_all()
    assert view.names().count("hide_toast") == 1


def test_toast_auto_dismisses_with_real_timer(view, credentials, artwork, png_bytes):
    controller = PresentationController(
        view, credentials, UploadHandler(), MockMatchAnalyzer(), artwork, toast_seconds=0.01
    )
    controller.show_toast("error", "boom")
    deadline = time.monotonic() + 5.0
    while ("hide_toast", "error") not in view.calls and time.monotonic() < deadline:
        time.sleep(0.01)
    assert ("hide_toast", "error") in view.calls
    assert controller.app.toasts == {}


def test_toast_kinds_are_independent(controller, clock):
    controller.show_toast("error", "boom")
    clock.now += 3
    controller.show_toast("success", "yay")
    clock.now += 2.5
    assert [t.kind for t in controller.active_toasts()] == ["success"]


def test_hide_toast_manually(controller, view):
    controller.show_toast("success", "yay")
    controller.hide_toast("success")
    controller.hide_toast("success")
    assert controller.active_toasts() == []
    assert view.names().count("hide_toast") == 1


def test_share_text_requires_result(controller, view, png_bytes):
    assert controller.share_text() is None
    assert controller.share() is False
    controller.handle_file(UploadFile.from_bytes("me.png", "image/png", png_bytes))
    text = controller.share_text("https://example.test/")
    assert "I'm Bulbasaur!" in text
    assert text.endswith("Find your Pokémon twin at: https://example.test/")
    assert controller.share("https://example.test/") is True
    assert view.calls[-1] == ("share", text)
