"""Rich console for all user facing output."""
from rich.console import Console
from rich.theme import Theme

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "magenta",
        "error": "bold red",
        "success": "green",
    }
)

console = Console(theme=custom_theme, highlight=False)
