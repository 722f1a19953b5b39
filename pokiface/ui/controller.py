"""Presentation controller: UI state machine, toasts and the staged result reveal."""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from pokiface.ai.analyzer_base import BaseMatchAnalyzer
from pokiface.ai.artwork import ArtworkResolver
from pokiface.ai.schema import AnalysisResult, UploadedImage
from pokiface.core.credentials import CredentialManager
from pokiface.core.errors import AnalysisInProgressError, CredentialError, PokifaceError
from pokiface.core.uploads import UploadFile, UploadHandler
from pokiface.ui.view import BaseView

_log = logging.getLogger(__name__)

DEFAULT_PAGE_URL = "https://pokiface.app/"

BUSY_MESSAGE = "An analysis is already in progress"
NO_KEY_MESSAGE = "Please set your API key first"
NO_IMAGE_MESSAGE = "Please upload an image first"
KEY_SAVED_MESSAGE = "API key saved successfully!"


class UIState(str, Enum):
    idle = "idle"
    uploaded = "uploaded"
    analyzing = "analyzing"
    result = "result"
    error = "error"


@dataclass
class Toast:
    kind: str
    message: str
    expires_at: float


@dataclass
class AppState:
    """Everything the controller owns. One toast slot per kind, like the two toast banners."""

    ui_state: UIState = UIState.idle
    api_key: str | None = None
    current_image: UploadedImage | None = None
    current_result: AnalysisResult | None = None
    artwork_url: str | None = None
    toasts: dict[str, Toast] = field(default_factory=dict)


def _start_timer(seconds: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(seconds, callback)
    timer.daemon = True
    timer.start()
    return timer


class PresentationController:
    """
    Drives idle -> uploaded -> analyzing -> result, with error as a transient stop on the
    way back to uploaded. The busy lock is held from the moment an upload is taken until its
    analysis finishes; any upload, analyze or reset that arrives meanwhile is refused with a toast.

    Each toast dismisses itself toast_seconds after it is shown. clock, sleep and timer are
    injected so tests can run the reveal and toast expiry instantly.
    """

    REVEAL_IMAGE_DELAY_SECONDS = 0.5
    REVEAL_TEXT_DELAY_SECONDS = 0.1

    def __init__(
        self,
        view: BaseView,
        credentials: CredentialManager,
        uploads: UploadHandler,
        analyzer: BaseMatchAnalyzer,
        artwork: ArtworkResolver,
        *,
        toast_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        timer: Callable[[float, Callable[[], None]], Any] = _start_timer,
    ) -> None:
        self._view = view
        self._credentials = credentials
        self._uploads = uploads
        self._analyzer = analyzer
        self._artwork = artwork
        self._toast_seconds = toast_seconds
        self._clock = clock
        self._sleep = sleep
        self._timer = timer
        self._busy = threading.Lock()
        self._toast_lock = threading.Lock()
        self._toast_timers: dict[str, Any] = {}
        self.app = AppState()

    @property
    def state(self) -> UIState:
        return self.app.ui_state

    def _set_state(self, new_state: UIState) -> None:
        _log.debug("UI state %s -> %s", self.app.ui_state.value, new_state.value)
        self.app.ui_state = new_state

    def is_busy(self) -> bool:
        return self._busy.locked()

    def _claim(self) -> None:
        """Take the busy lock without waiting."""
        if not self._busy.acquire(blocking=False):
            raise AnalysisInProgressError(BUSY_MESSAGE)

    # Toasts

    def show_toast(self, kind: str, message: str) -> None:
        toast = Toast(kind, message, self._clock() + self._toast_seconds)
        with self._toast_lock:
            self._cancel_toast_timer(kind)
            self.app.toasts[kind] = toast
            self._toast_timers[kind] = self._timer(self._toast_seconds, lambda: self._expire_toast(toast))
        self._view.show_toast(kind, message)

    def _expire_toast(self, toast: Toast) -> None:
        with self._toast_lock:
            # A newer toast of the same kind owns the slot now.
            if self.app.toasts.get(toast.kind) is not toast:
                return
            del self.app.toasts[toast.kind]
            self._cancel_toast_timer(toast.kind)
        self._view.hide_toast(toast.kind)

    def _cancel_toast_timer(self, kind: str) -> None:
        timer = self._toast_timers.pop(kind, None)
        if timer is not None:
            timer.cancel()

    def hide_toast(self, kind: str) -> None:
        with self._toast_lock:
            toast = self.app.toasts.pop(kind, None)
            self._cancel_toast_timer(kind)
        if toast is not None:
            self._view.hide_toast(kind)

    def active_toasts(self) -> list[Toast]:
        """Live toasts. Any that are past due but not yet dismissed by their timer go now."""
        now = self._clock()
        with self._toast_lock:
            expired = [t for t in self.app.toasts.values() if t.expires_at <= now]
        for toast in expired:
            self._expire_toast(toast)
        with self._toast_lock:
            return list(self.app.toasts.values())

    # Credential flow

    def start(self) -> None:
        """Load the stored key; prompt for one when the analyzer needs it and none is stored."""
        self.app.api_key = self._credentials.load()
        if self._analyzer.requires_credential and not self.app.api_key:
            self.open_settings()

    def open_settings(self) -> None:
        self._view.show_credential_prompt(self._credentials.load())

    def save_api_key(self, key: str | None) -> bool:
        try:
            key = self._credentials.save(key)
        except CredentialError as e:
            self.show_toast("error", e.message)
            return False
        self.app.api_key = key
        try:
            self._credentials.validate(key)
        except CredentialError as e:
            self.app.api_key = None
            self.show_toast("error", e.message)
            return False
        self._view.hide_credential_prompt()
        self.show_toast("success", KEY_SAVED_MESSAGE)
        return True

    # Upload and analysis

    def handle_file(self, file: UploadFile) -> AnalysisResult | None:
        """Validate file, show it, and analyze it. Rejections leave the state unchanged."""
        try:
            self._claim()
        except AnalysisInProgressError as e:
            self.show_toast("error", e.message)
            return None
        try:
            try:
                image = self._uploads.accept(file)
            except PokifaceError as e:
                self.show_toast("error", e.message)
                return None
            self.app.current_image = image
            self.app.current_result = None
            self.app.artwork_url = None
            self._set_state(UIState.uploaded)
            self._view.show_user_image(image)
            return self._run_analysis()
        finally:
            self._busy.release()

    def analyze(self) -> AnalysisResult | None:
        """Re-run the analysis on the current image."""
        try:
            self._claim()
        except AnalysisInProgressError as e:
            self.show_toast("error", e.message)
            return None
        try:
            return self._run_analysis()
        finally:
            self._busy.release()

    def _run_analysis(self) -> AnalysisResult | None:
        """Caller holds the busy lock."""
        if self.app.current_image is None:
            self.show_toast("error", NO_IMAGE_MESSAGE)
            return None
        if self._analyzer.requires_credential and not self.app.api_key:
            self.show_toast("error", NO_KEY_MESSAGE)
            self.open_settings()
            return None
        try:
            self._set_state(UIState.analyzing)
            self._view.show_loading()
            try:
                result = self._analyzer.analyze(self.app.current_image, self.app.api_key)
                artwork_url = self._artwork.resolve(result.creature_name) or self._artwork.placeholder_url
            except PokifaceError as e:
                _log.error("Analysis failed: %s", e.message)
                self._set_state(UIState.error)
                self.show_toast("error", f"Failed to analyze image. {e.message}")
                return None
            self.app.current_result = result
            self.app.artwork_url = artwork_url
            self._reveal(result, artwork_url)
            self._set_state(UIState.result)
            return result
        finally:
            if self.app.ui_state in (UIState.analyzing, UIState.error):
                self._view.hide_loading()
                self._set_state(UIState.uploaded)

    def _reveal(self, result: AnalysisResult, artwork_url: str) -> None:
        """Loading teardown first, then artwork, then description."""
        self._view.hide_loading()
        self._sleep(self.REVEAL_IMAGE_DELAY_SECONDS)
        self._view.show_artwork(result.creature_name, artwork_url)
        self._sleep(self.REVEAL_TEXT_DELAY_SECONDS)
        self._view.show_description(result.description)

    def reset(self) -> bool:
        """Back to idle, dropping the image and every displayed field. Refused while analyzing."""
        try:
            self._claim()
        except AnalysisInProgressError as e:
            self.show_toast("error", e.message)
            return False
        try:
            self.app.current_image = None
            self.app.current_result = None
            self.app.artwork_url = None
            self._set_state(UIState.idle)
            self._view.clear()
        finally:
            self._busy.release()
        return True

    # Sharing

    def share_text(self, page_url: str = DEFAULT_PAGE_URL) -> str | None:
        result = self.app.current_result
        if result is None:
            return None
        return (
            "I just discovered my Pokémon twin on PokiFace! 🎭\n\n"
            f"I'm {result.creature_name}! {result.description}\n\n"
            f"Find your Pokémon twin at: {page_url}"
        )

    def share(self, page_url: str = DEFAULT_PAGE_URL) -> bool:
        text = self.share_text(page_url)
        if text is None:
            self.show_toast("error", "Nothing to share yet")
            return False
        self._view.share(text)
        return True
