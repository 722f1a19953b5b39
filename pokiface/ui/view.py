"""View abstraction driven by the PresentationController."""

from abc import ABC, abstractmethod

from pokiface.ai.schema import UploadedImage


class BaseView(ABC):
    """
    Everything the controller needs to show. Implementations render; they never decide
    state. All methods are called from the controller's thread.
    """

    @abstractmethod
    def show_credential_prompt(self, prefill: str | None) -> None:
        """Ask the user for an API key, pre-filled with the stored one when present."""
        ...

    @abstractmethod
    def hide_credential_prompt(self) -> None: ...

    @abstractmethod
    def show_user_image(self, image: UploadedImage) -> None: ...

    @abstractmethod
    def show_loading(self) -> None:
        """Show the spinner and hide any artwork/description from a previous result."""
        ...

    @abstractmethod
    def hide_loading(self) -> None: ...

    @abstractmethod
    def show_artwork(self, creature_name: str, artwork_url: str) -> None: ...

    @abstractmethod
    def show_description(self, description: str) -> None: ...

    @abstractmethod
    def show_toast(self, kind: str, message: str) -> None: ...

    @abstractmethod
    def hide_toast(self, kind: str) -> None: ...

    @abstractmethod
    def share(self, text: str) -> None: ...

    @abstractmethod
    def clear(self) -> None:
        """Back to the upload screen with every result field emptied."""
        ...
