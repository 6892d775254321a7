"""
Color themes for the Drift logging system.

Styles for log levels and Drift components, shared by the console and the
log formatters.
"""
from rich.theme import Theme
from rich.style import Style

# Base color definitions
COLORS = {
    # Log levels
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "critical": "bright_red",
    "info": "bright_blue",
    "debug": "bright_black",

    # Components
    "storage": "bright_magenta",
    "cache": "magenta",
    "service": "cyan",
    "migration": "bright_yellow",
    "cli": "bright_cyan",
    "config": "blue",

    # Pattern statuses
    "discovered": "yellow",
    "approved": "green",
    "ignored": "bright_black",

    # Confidence levels
    "high_confidence": "green",
    "medium_confidence": "yellow",
    "low_confidence": "red",

    # Misc
    "muted": "bright_black",
    "timestamp": "bright_black",
    "path": "bright_blue",
    "operation": "bright_white",
}

STYLES = {name: Style(color=color) for name, color in COLORS.items()}
STYLES["critical"] = Style(color=COLORS["critical"], bold=True)
STYLES["operation"] = Style(color=COLORS["operation"], bold=True)

# Rich theme, so markup like [approved]...[/approved] works on the console
RICH_THEME = Theme({name: style for name, style in STYLES.items()})


def get_level_style(level: str) -> Style:
    """Get the Rich style for a specific log level.
    
    Args:
        level: The log level (info, debug, warning, error, critical, success)
        
    Returns:
        The corresponding Rich Style
    """
    return STYLES.get(level.lower(), STYLES["info"])


def get_component_style(component: str) -> Style:
    """Get the Rich style for a specific component.
    
    Args:
        component: The component name (storage, cache, service, ...)
        
    Returns:
        The corresponding Rich Style
    """
    return STYLES.get(component.lower(), STYLES["info"])


def get_status_style(status: str) -> Style:
    """Get the Rich style for a pattern status."""
    return STYLES.get(str(status).lower(), STYLES["muted"])
