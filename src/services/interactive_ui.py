"""Interactive terminal UI for shortsmith using Rich library."""

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

logger = logging.getLogger(__name__)


class InteractiveUI:
    """Rich-based terminal interface for the shortsmith CLI."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_welcome(self, topic: str, genre: str, language: str, duration: int) -> None:
        """Display the welcome banner with the request summary."""
        self.console.print(
            Panel(
                f"[bold]{topic}[/bold]\n{genre} | {language} | ~{duration}s",
                title="Shortsmith - AI Short Video Studio",
                style="bold blue",
                border_style="blue",
            )
        )
        self.console.print()

    def display_script_preview(self, preview: dict) -> None:
        """Show a generated script for review.

        Args:
            preview: ``data`` of a previewReady event
                (videoTitle, scenes, language, youtubeMetadata)
        """
        self.console.print(
            f"\n[bold cyan]Script preview:[/bold cyan] {preview.get('videoTitle')} "
            f"({preview.get('language')})\n"
        )

        table = Table(show_header=True, box=None, padding=(0, 2))
        table.add_column("#", style="cyan", no_wrap=True)
        table.add_column("Narration", style="white")
        table.add_column("Images", style="dim")

        for i, scene in enumerate(preview.get("scenes") or []):
            prompts = scene.get("image_prompts") or []
            table.add_row(
                str(scene.get("scene_number") or i + 1),
                scene.get("narration_text", ""),
                "\n".join(f"- {p[:80]}" for p in prompts),
            )

        self.console.print(Panel(table, border_style="green"))

        metadata = preview.get("youtubeMetadata") or {}
        if metadata.get("title"):
            self.console.print(f"[bold]YouTube title:[/bold] {metadata['title']}")
        if metadata.get("tags"):
            self.console.print(f"[bold]Tags:[/bold] {', '.join(metadata['tags'])}")
        self.console.print()

    def confirm_script(self) -> bool:
        """Ask whether to render the previewed script."""
        return Confirm.ask("[bold]Render this script?[/bold]", default=True)

    def display_processing_status(self, message: str, style: str = "yellow") -> None:
        """Show processing status update.

        Args:
            message: Status message to display
            style: Rich style for the message
        """
        self.console.print(f"[{style}]⠿ {message}[/{style}]")

    def display_error(self, message: str) -> None:
        """Display error message.

        Args:
            message: Error message to display
        """
        self.console.print(f"\n[bold red]Error:[/bold red] {message}\n")

    def display_success(self, message: str) -> None:
        """Display success message.

        Args:
            message: Success message to display
        """
        self.console.print(f"\n[bold green]✓[/bold green] {message}\n")
