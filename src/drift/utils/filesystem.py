"""
Filesystem utilities for Drift.

Async wrappers around blocking file operations used by the file-backed
repositories and by code example extraction. Blocking work is pushed to the
default executor so that the event loop is never held by disk I/O.
"""
import os
import json
import asyncio
import tempfile
from typing import Any, Dict, List, Optional

# File extension to language name, used when rendering code examples
LANGUAGE_BY_EXTENSION = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
    ".pyi": "python",
    ".java": "java",
    ".kt": "kotlin",
    ".cs": "csharp",
    ".php": "php",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".swift": "swift",
    ".scala": "scala",
    ".vue": "vue",
    ".svelte": "svelte",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".sql": "sql",
    ".sh": "bash",
}


def detect_language(path: str) -> str:
    """Guess a source language name from a file extension.
    
    Args:
        path: File path
        
    Returns:
        Language name, or "text" when the extension is unknown
    """
    ext = os.path.splitext(path)[1].lower()
    return LANGUAGE_BY_EXTENSION.get(ext, "text")


def _read_text(path: str, encoding: str) -> str:
    with open(path, "r", encoding=encoding) as f:
        return f.read()


def _atomic_write_text(path: str, content: str, encoding: str) -> int:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            written = f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    return written


async def read_file_async(path: str, encoding: str = "utf-8") -> str:
    """Read a text file asynchronously.
    
    Args:
        path: Path to the file
        encoding: File encoding
        
    Returns:
        File contents
        
    Raises:
        FileNotFoundError: If the file does not exist
        UnicodeDecodeError: If the file cannot be decoded
    """
    return await asyncio.to_thread(_read_text, path, encoding)


async def write_file_async(path: str, content: str, encoding: str = "utf-8") -> int:
    """Write a text file asynchronously via a temp file and rename.
    
    Args:
        path: Destination path (parent directories are created)
        content: Text to write
        encoding: File encoding
        
    Returns:
        Number of characters written
    """
    return await asyncio.to_thread(_atomic_write_text, path, content, encoding)


async def read_json_async(path: str) -> Any:
    """Read and parse a JSON file asynchronously.
    
    Raises:
        FileNotFoundError: If the file does not exist
        json.JSONDecodeError: If the content is not valid JSON
    """
    return json.loads(await read_file_async(path))


async def write_json_async(path: str, data: Any, indent: Optional[int] = 2) -> int:
    """Serialize data to JSON and write it atomically."""
    return await write_file_async(path, json.dumps(data, indent=indent, ensure_ascii=False))


async def remove_file_async(path: str) -> bool:
    """Remove a file if it exists.
    
    Returns:
        True if a file was removed
    """
    def _remove() -> bool:
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
    
    return await asyncio.to_thread(_remove)


async def ensure_dir_async(path: str) -> None:
    """Create a directory (and parents) if it does not exist."""
    await asyncio.to_thread(os.makedirs, path, exist_ok=True)


async def list_json_files_async(directory: str) -> List[str]:
    """List ``*.json`` file names (not paths) in a directory, sorted.
    
    Returns an empty list when the directory does not exist.
    """
    def _list() -> List[str]:
        if not os.path.isdir(directory):
            return []
        return sorted(
            name for name in os.listdir(directory)
            if name.endswith(".json") and os.path.isfile(os.path.join(directory, name))
        )
    
    return await asyncio.to_thread(_list)


def read_lines_window(path: str, start: int, end: int) -> Dict[str, Any]:
    """Read a 1-based inclusive line window from a text file.
    
    The window is clamped to the file's bounds.
    
    Returns:
        Dictionary with the clamped ``start``/``end`` and the joined ``text``
    """
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()
    start = max(1, start)
    end = min(len(lines), end)
    return {"start": start, "end": end, "text": "\n".join(lines[start - 1:end])}
