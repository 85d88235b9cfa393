"""Helpers for parsing and validating model JSON responses.

Models are asked for raw JSON but routinely wrap it in markdown fences or
add a sentence around it. The lenient parsers return None on failure so
callers decide whether a bad answer is fatal.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```/```json fence, if any."""
    content = text.strip()
    if content.startswith("```"):
        content = _FENCE_OPEN_RE.sub("", content, count=1)
        content = _FENCE_CLOSE_RE.sub("", content, count=1)
    return content.strip()


def _load_json(text: str, fallback: re.Pattern[str], kind: str):
    content = strip_code_fences(text)
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        match = fallback.search(content)
        if not match:
            logger.warning(f"Failed to parse JSON {kind}: {exc}")
            return None
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError as inner_exc:
            logger.warning(f"Failed to parse JSON {kind}: {inner_exc}")
            return None


def parse_json_object(text: str) -> dict | None:
    data = _load_json(text, _OBJECT_RE, "object")
    return data if isinstance(data, dict) else None


def parse_json_array(text: str) -> list | None:
    data = _load_json(text, _ARRAY_RE, "array")
    return data if isinstance(data, list) else None


def validate_model(model_cls: type[ModelT], data: dict | None) -> ModelT | None:
    if data is None:
        return None
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        logger.warning(f"{model_cls.__name__} validation failed: {exc}")
        return None
