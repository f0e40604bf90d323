"""
Endpoint list ingestion.
"""

from pathlib import Path
from typing import Iterable, List, Optional

from ollama_checker.utils.errors import InputError
from ollama_checker.utils.logging import get_logger


logger = get_logger(__name__)


def parse_url_lines(lines: Iterable[str]) -> List[str]:
    """Strip lines and drop blanks and ``#`` comments."""
    urls = []
    for line in lines:
        line = line.strip()
        if line and not line.startswith('#'):
            urls.append(line)
    return urls


def load_urls_from_file(file_path: str) -> List[str]:
    """
    Read a newline-delimited endpoint file.

    Args:
        file_path: Path of the file to read

    Returns:
        Endpoint URLs in file order

    Raises:
        InputError: If the file cannot be read
    """
    path = Path(file_path)
    try:
        content = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(f"Cannot read URL file: {file_path}", {"path": str(path), "error": str(e)})

    urls = parse_url_lines(content.splitlines())
    logger.debug(f"Loaded {len(urls)} URLs from {file_path}")
    return urls


def resolve_urls(file_path: Optional[str], args: Optional[Iterable[str]] = None) -> List[str]:
    """
    Resolve the endpoint list from a file or from positional arguments.

    The file wins when both are given. Duplicates are removed, keeping the
    first occurrence, so that each endpoint is dispatched once.
    """
    if file_path:
        urls = load_urls_from_file(file_path)
    else:
        urls = parse_url_lines(args or [])

    unique_urls = list(dict.fromkeys(urls))
    if len(unique_urls) != len(urls):
        logger.info(f"Dropped {len(urls) - len(unique_urls)} duplicate URLs")
    return unique_urls
