"""Turn a vision model's free-form answer into an AnalysisResult.

normalize_response() never raises: text that does not contain a usable JSON object
yields one of FALLBACK_RESULTS instead, and the raw text is logged for diagnosis.
"""

import json
import logging
import random
import re
from typing import Any, Iterator

from pydantic import ValidationError

from pokiface.ai.schema import AnalysisResult

_log = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*")

# Accepted keys for the creature name, in priority order.
NAME_KEYS = ("pokemon_name", "name")
DESCRIPTION_KEY = "description"

FALLBACK_RESULTS: tuple[AnalysisResult, ...] = (
    AnalysisResult(
        creature_name="Pikachu",
        description=(
            "You're like Pikachu - energetic and friendly! Your bright eyes and cheerful "
            "expression show an electric personality that lights up any room."
        ),
    ),
    AnalysisResult(
        creature_name="Eevee",
        description=(
            "You're like Eevee - adaptable and charming! Your versatile features suggest "
            "someone who can fit into any situation with grace and style."
        ),
    ),
    AnalysisResult(
        creature_name="Snorlax",
        description=(
            "You're like Snorlax - calm and dependable! Your relaxed expression and gentle "
            "features show someone who brings peace and comfort to others."
        ),
    ),
    AnalysisResult(
        creature_name="Psyduck",
        description=(
            "You're like Psyduck - thoughtful and unique! Your expressive eyes suggest a deep "
            "thinker who sees the world in interesting ways."
        ),
    ),
    AnalysisResult(
        creature_name="Jigglypuff",
        description=(
            "You're like Jigglypuff - sweet and endearing! Your soft features and gentle "
            "expression show someone who brings joy and melody to life."
        ),
    ),
)


def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers (```json, ```) wherever they appear."""
    return _FENCE_RE.sub("", text).strip()


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the '}' closing the '{' at start, or None if it never closes.

    Braces inside JSON string literals are ignored.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def iter_json_spans(text: str) -> Iterator[str]:
    """Yield every balanced {...} span, in order of its opening brace."""
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            yield text[start:end]
        start = text.find("{", start + 1)


def extract_json_object(text: str) -> str | None:
    """Return the first balanced {...} span in text, or None when there is none."""
    return next(iter_json_spans(text), None)


def result_from_mapping(data: Any) -> AnalysisResult | None:
    """Build an AnalysisResult from parsed JSON, or None if a required field is missing or empty."""
    if not isinstance(data, dict):
        return None
    name = next(
        (data[k] for k in NAME_KEYS if isinstance(data.get(k), str) and data[k].strip()),
        None,
    )
    description = data.get(DESCRIPTION_KEY)
    if name is None or not isinstance(description, str):
        return None
    try:
        return AnalysisResult(creature_name=name, description=description)
    except ValidationError:
        return None


def parse_response(text: str) -> AnalysisResult | None:
    """Strict half of the normalizer: the parsed result, or None on any failure."""
    cleaned = strip_code_fences(text.strip())
    for span in iter_json_spans(cleaned):
        try:
            data = json.loads(span)
        except ValueError:
            continue
        result = result_from_mapping(data)
        if result is not None:
            return result
    return None


def choose_fallback(rng: random.Random | None = None) -> AnalysisResult:
    return (rng or random).choice(FALLBACK_RESULTS)


def normalize_response(text: str | None, rng: random.Random | None = None) -> AnalysisResult:
    """Parse the model's answer; fall back to a fixed entry when it cannot be parsed."""
    raw = text or ""
    _log.debug("Raw model response: %r", raw)
    result = parse_response(raw)
    if result is not None:
        return result
    fallback = choose_fallback(rng)
    _log.warning(
        "Could not parse model response, using fallback %s. Raw text: %r",
        fallback.creature_name,
        raw,
    )
    return fallback
