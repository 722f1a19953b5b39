"""Rich terminal rendering of the PresentationController's view."""

from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.text import Text

from pokiface.ai.schema import UploadedImage
from pokiface.core.credentials import mask_key
from pokiface.ui.view import BaseView

_TOAST_STYLES = {"error": "bold red", "success": "bold green"}


class ConsoleView(BaseView):
    """
    Terminal view. The credential prompt is not modal here: show_credential_prompt() just
    raises credential_prompt_open and the CLI asks for the key.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.credential_prompt_open = False
        self.credential_prefill: str | None = None
        self._status: Status | None = None
        self._creature_name: str | None = None
        self._artwork_url: str | None = None

    def show_credential_prompt(self, prefill: str | None) -> None:
        self.credential_prompt_open = True
        self.credential_prefill = prefill
        hint = f" (stored: {mask_key(prefill)})" if prefill else ""
        self.console.print(
            Panel(
                f"Enter your Gemini API key{hint}.\nGet one at https://aistudio.google.com/app/apikey",
                title="API key",
                border_style="yellow",
            )
        )

    def hide_credential_prompt(self) -> None:
        self.credential_prompt_open = False
        self.credential_prefill = None

    def show_user_image(self, image: UploadedImage) -> None:
        size_kb = round(len(image.data) / 1024)
        self.console.print(f"[bold]Your photo:[/bold] {image.filename} ({image.mime_type}, {size_kb} KB)")

    def show_loading(self) -> None:
        self._creature_name = None
        self._artwork_url = None
        if self._status is None:
            self._status = self.console.status("Finding your Pokémon twin...")
            self._status.start()

    def hide_loading(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def show_artwork(self, creature_name: str, artwork_url: str) -> None:
        self._creature_name = creature_name
        self._artwork_url = artwork_url
        self.console.print(f"[bold magenta]{creature_name}[/bold magenta]  {artwork_url}")

    def show_description(self, description: str) -> None:
        self.console.print(Panel(Text(description), title=self._creature_name or "Result", border_style="magenta"))

    def show_toast(self, kind: str, message: str) -> None:
        self.console.print(Text(message, style=_TOAST_STYLES.get(kind, "bold")))

    def hide_toast(self, kind: str) -> None:
        # Printed lines cannot be retracted.
        pass

    def share(self, text: str) -> None:
        self.console.print(Panel(Text(text), title="Share", border_style="cyan"))

    def clear(self) -> None:
        self.hide_loading()
        self._creature_name = None
        self._artwork_url = None
