"""Validates a raw text detection result and consolidates it into one text."""

from typing import Any

from docworker.pipeline.exceptions import MalformedResultError

_PAGE_SEPARATOR = "\n\n"


def consolidate(raw: Any) -> dict[str, object]:
    """Validate a Textract-shaped result and build the consolidated fields.

    Returns:
        Dict with ``text``, ``line_count``, ``block_confidences`` and
        ``mean_confidence``.

    Raises:
        MalformedResultError: on any schema violation.
    """
    blocks = _require_blocks(raw)
    pages: dict[int, list[str]] = {}
    confidences: list[dict[str, object]] = []
    scores: list[float] = []
    for index, block in enumerate(blocks):
        block_type = _block_type(block, index)
        if block_type != "LINE":
            continue
        text = _line_text(block, index)
        page = _page_number(block, index)
        pages.setdefault(page, []).append(text)
        confidence = _confidence(block, index)
        if confidence is not None:
            scores.append(confidence)
            confidences.append({"page": page, "text": text, "confidence": round(confidence, 2)})

    text = _PAGE_SEPARATOR.join("\n".join(pages[page]) for page in sorted(pages))
    return {
        "text": text,
        "line_count": sum(len(lines) for lines in pages.values()),
        "block_confidences": confidences,
        "mean_confidence": round(sum(scores) / len(scores), 2) if scores else None,
    }


def _require_blocks(raw: Any) -> list[Any]:
    if not isinstance(raw, dict):
        raise MalformedResultError("Detection result must be an object")
    blocks = raw.get("Blocks")
    if not isinstance(blocks, list):
        raise MalformedResultError("Detection result must contain a 'Blocks' list")
    return blocks


def _block_type(block: Any, index: int) -> str:
    if not isinstance(block, dict):
        raise MalformedResultError(f"Block at index {index} must be an object")
    block_type = block.get("BlockType")
    if not block_type or not isinstance(block_type, str):
        raise MalformedResultError(f"Block at index {index}: 'BlockType' must be a non-empty string")
    return block_type


def _line_text(block: dict[str, Any], index: int) -> str:
    text = block.get("Text")
    if not isinstance(text, str):
        raise MalformedResultError(f"LINE block at index {index}: 'Text' must be a string")
    return text


def _page_number(block: dict[str, Any], index: int) -> int:
    page = block.get("Page", 1)
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise MalformedResultError(f"Block at index {index}: 'Page' must be a positive integer")
    return page


def _confidence(block: dict[str, Any], index: int) -> float | None:
    confidence = block.get("Confidence")
    if confidence is None:
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise MalformedResultError(f"Block at index {index}: 'Confidence' must be a number")
    return float(confidence)
