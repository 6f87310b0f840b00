"""Utility functions for loading configuration documents.

This module provides functions for loading JSON documents from files and URLs
with proper error handling, mapped onto the configuration error hierarchy.
"""

import json
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests

from .codegen.core.errors import ConfigNotFound, ConfigParseError
from .logging_config import get_logger

logger = get_logger(__name__)


def is_url(source: str | Path) -> bool:
    """Return True if ``source`` looks like an http(s) URL."""
    parsed = urlparse(str(source))
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def load_json_from_file(file_path: str | Path) -> tuple[str, Any]:
    """Load a JSON document from a local file.

    Args:
        file_path: Path to the JSON file.

    Returns:
        Tuple of (source description, parsed JSON data).

    Raises:
        ConfigNotFound: If the file doesn't exist.
        ConfigParseError: If the file cannot be read or the JSON is invalid.
    """
    file_path = Path(file_path)
    logger.debug("Attempting to load JSON from file: %s", file_path)

    if not file_path.is_file():
        logger.error("File not found: %s", file_path)
        raise ConfigNotFound(str(file_path), [str(file_path)])

    if file_path.suffix.lower() != ".json":
        logger.warning("File does not have .json extension: %s", file_path)

    try:
        with file_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info("Loaded JSON from %s", file_path)
        return str(file_path), data
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in file %s: %s", file_path, e)
        raise ConfigParseError(str(file_path), f"invalid JSON: {e}") from e
    except UnicodeDecodeError as e:
        logger.error("Invalid UTF-8 in file %s: %s", file_path, e)
        raise ConfigParseError(str(file_path), f"invalid encoding: {e}") from e
    except OSError as e:
        logger.error("Error reading file %s: %s", file_path, e, exc_info=True)
        raise ConfigParseError(str(file_path), f"unreadable: {e}") from e


def load_json_from_url(url: str, timeout: int = 30) -> tuple[str, Any]:
    """Load a JSON document from a URL.

    Args:
        url: URL to fetch JSON from.
        timeout: Request timeout in seconds.

    Returns:
        Tuple of (source description, parsed JSON data).

    Raises:
        ConfigNotFound: If the server answers 404.
        ConfigParseError: If the request fails or the response isn't valid JSON.
    """
    logger.debug("Attempting to load JSON from URL: %s", url)

    if not is_url(url):
        logger.error("Invalid URL format: %s", url)
        raise ConfigParseError(url, "invalid URL")

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").lower()
        if "application/json" not in content_type and not url.endswith(".json"):
            logger.warning("URL %s does not have JSON content type: %s", url, content_type)

        data = response.json()
        logger.info("Loaded JSON from %s", url)
        return url, data

    except requests.exceptions.Timeout as e:
        logger.error("Request timeout for URL: %s", url)
        raise ConfigParseError(url, "request timed out") from e
    except requests.exceptions.ConnectionError as e:
        logger.error("Connection error for URL %s: %s", url, e)
        raise ConfigParseError(url, "connection error") from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "?"
        logger.error("HTTP error %s for URL: %s", status, url)
        if status == 404:
            raise ConfigNotFound(url, [url]) from e
        raise ConfigParseError(url, f"HTTP error {status}") from e
    except requests.exceptions.RequestException as e:
        logger.error("Request error for URL %s: %s", url, e, exc_info=True)
        raise ConfigParseError(url, f"request error: {e}") from e
    except ValueError as e:
        # requests raises a ValueError subclass for undecodable JSON bodies
        logger.error("Invalid JSON response from URL %s: %s", url, e)
        raise ConfigParseError(url, f"invalid JSON: {e}") from e


def load_document(source: str | Path, timeout: int = 30) -> tuple[str, dict[str, Any]]:
    """Load a JSON object document from a path or URL.

    Args:
        source: Local path or http(s) URL.
        timeout: Request timeout in seconds (only used for URLs).

    Returns:
        Tuple of (source description, parsed JSON object).

    Raises:
        ConfigNotFound: If the document doesn't exist.
        ConfigParseError: If loading fails or the document is not a JSON object.
    """
    if is_url(source):
        description, data = load_json_from_url(str(source), timeout)
    else:
        description, data = load_json_from_file(source)

    if not isinstance(data, dict):
        logger.error("Document %s is not a JSON object", description)
        raise ConfigParseError(description, "document must contain a JSON object")
    return description, data
