"""
Rich console configuration for Drift.

A single themed console shared by the log handler and the CLI, so markup
such as ``[approved]...[/approved]`` resolves against the Drift theme
everywhere.
"""
from rich.console import Console

from .themes import RICH_THEME

console = Console(
    theme=RICH_THEME,
    highlight=True,
    markup=True,
    emoji=True,
    color_system="auto",
)
