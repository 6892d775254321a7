"""
Emoji definitions for the Drift logging system.
"""
from typing import Dict

# Log level emojis
INFO = "ℹ️"
DEBUG = "🔍"
WARNING = "⚠️"
ERROR = "❌"
CRITICAL = "🚨"
SUCCESS = "✅"

# Operation emojis
LOAD = "📥"
SAVE = "📤"
MIGRATE = "🚚"
APPROVE = "👍"
IGNORE = "🙈"
INVALIDATE = "🧹"
QUERY = "🔎"
EXAMPLES = "📋"
UNKNOWN = "❓"

LEVEL_EMOJIS: Dict[str, str] = {
    "info": INFO,
    "debug": DEBUG,
    "warning": WARNING,
    "error": ERROR,
    "critical": CRITICAL,
    "success": SUCCESS,
}

OPERATION_EMOJIS: Dict[str, str] = {
    "load": LOAD,
    "load_config": LOAD,
    "save": SAVE,
    "save_all": SAVE,
    "migrate": MIGRATE,
    "cleanup": INVALIDATE,
    "approved": APPROVE,
    "approve_many": APPROVE,
    "ignored": IGNORE,
    "ignore_many": IGNORE,
    "invalidate": INVALIDATE,
    "detect_format": QUERY,
    "extract_examples": EXAMPLES,
}


def get_emoji(category: str, name: str) -> str:
    """Get an emoji by category and name.
    
    Args:
        category: 'level' or 'operation'
        name: The name of the emoji within that category
    
    Returns:
        The emoji string, or UNKNOWN if not found
    """
    if category.lower() == "level":
        return LEVEL_EMOJIS.get(name.lower(), UNKNOWN)
    return OPERATION_EMOJIS.get(name.lower(), UNKNOWN)
