# src/scrapers/embedded_json.py

"""Locate and decode a JSON object embedded in a larger script payload."""

import json
import logging
from typing import Any

logger = logging.getLogger("kaspi_catalog.scraper")


def find_matching_brace_end(source: str, start: int) -> int:
    """Return the index of the ``}`` that closes the ``{`` at *start*.

    Scans forward tracking nesting depth.  Braces inside string literals
    do not count, and a backslash escapes the following character.
    Returns ``-1`` when the object is never closed.
    """
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(source)):
        char = source[i]

        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i

    return -1


def extract_embedded_object(
    html: str, marker: str,
) -> dict[str, Any] | None:
    """Decode the first JSON object following *marker* in *html*.

    Returns ``None`` when the marker is absent, the object is not
    closed, or the matched text is not a JSON object.
    """
    marker_index = html.find(marker)
    if marker_index < 0:
        logger.debug("Embedded marker %r not found", marker)
        return None

    json_start = html.find("{", marker_index)
    if json_start < 0:
        logger.warning("No object after embedded marker %r", marker)
        return None

    json_end = find_matching_brace_end(html, json_start)
    if json_end < 0:
        logger.warning(
            "Embedded object after %r is never closed", marker
        )
        return None

    try:
        data: object = json.loads(html[json_start:json_end + 1])
    except json.JSONDecodeError as exc:
        logger.warning(
            "Embedded object after %r is not valid JSON: %s",
            marker,
            exc,
        )
        return None

    if not isinstance(data, dict):
        return None
    return data
