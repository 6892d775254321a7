"""
Code example extraction for patterns.

Reads the source lines a pattern points at, with some surrounding context,
so tools can show what the convention looks like in practice.
"""
import asyncio
import os
from typing import List, Optional

from pydantic import BaseModel

from drift.constants import DEFAULT_EXAMPLE_CONTEXT_LINES, DEFAULT_MAX_EXAMPLES
from drift.patterns.models import Pattern, PatternLocation
from drift.utils.filesystem import detect_language, read_lines_window
from drift.utils.logging import logger


class CodeExample(BaseModel):
    """A source excerpt around one pattern location."""

    file: str
    line: int
    end_line: int
    code: str
    language: str
    context_start: Optional[int] = None
    context_end: Optional[int] = None


def resolve_source_path(root_dir: str, file: str) -> str:
    return file if os.path.isabs(file) else os.path.join(root_dir, file)


async def extract_code_example(
    root_dir: str,
    location: PatternLocation,
    context_lines: int = DEFAULT_EXAMPLE_CONTEXT_LINES,
) -> Optional[CodeExample]:
    """Read the excerpt for a single location.

    Returns:
        CodeExample, or None when the file is missing or unreadable
    """
    path = resolve_source_path(root_dir, location.file)
    end_line = location.end_line or location.line
    try:
        window = await asyncio.to_thread(
            read_lines_window,
            path,
            location.line - context_lines,
            end_line + context_lines,
        )
    except OSError as e:
        logger.debug(
            f"No example for {location.file}:{location.line}: {e}",
            component="service",
            operation="extract_examples",
        )
        return None

    if window["end"] < window["start"]:
        return None

    return CodeExample(
        file=location.file,
        line=location.line,
        end_line=end_line,
        code=window["text"],
        language=detect_language(location.file),
        context_start=window["start"],
        context_end=window["end"],
    )


async def extract_code_examples(
    root_dir: str,
    pattern: Pattern,
    max_examples: int = DEFAULT_MAX_EXAMPLES,
    context_lines: int = DEFAULT_EXAMPLE_CONTEXT_LINES,
) -> List[CodeExample]:
    """Collect up to ``max_examples`` excerpts from a pattern's locations.

    Locations whose files no longer exist are skipped, so the result may be
    shorter than requested or empty.
    """
    examples: List[CodeExample] = []
    for location in pattern.locations:
        if len(examples) >= max_examples:
            break
        example = await extract_code_example(root_dir, location, context_lines)
        if example is not None:
            examples.append(example)
    return examples
