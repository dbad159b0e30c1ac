"""Normalization of completion model output into a search strategy.

The model is asked for a bare JSON object but is not trusted to comply. Output goes
through these rules, in order:

1. Trim surrounding whitespace.
2. Remove code fences (with or without a language tag), single backticks, and the
   control characters ``\\n``, ``\\r`` and ``\\t``.
3. Keep the span from the first ``{`` to the last ``}``; without such a span the
   output is malformed.
4. Parse the span as JSON and require a JSON object.
5. Decode the object into a ``SearchStrategy``.

Any failure raises ``StrategyParseError``.
"""

import json
import re
from typing import Any

from pydantic import ValidationError

from chatrecall.errors import StrategyParseError
from chatrecall.models import SearchStrategy

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*")
_CONTROL_CHARS = str.maketrans("", "", "\n\r\t")


def strip_formatting(output: str) -> str:
    """Apply rules 1 and 2."""
    text = output.strip()
    text = _FENCE_RE.sub("", text)
    text = text.replace("`", "")
    return text.translate(_CONTROL_CHARS)


def extract_json_object(output: str) -> str:
    """Apply rules 1 to 3 and return the candidate JSON text."""
    text = strip_formatting(output)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise StrategyParseError("No JSON object found in model output", raw_output=output)
    return text[start : end + 1]


def parse_json_object(output: str) -> dict[str, Any]:
    """Apply rules 1 to 4."""
    candidate = extract_json_object(output)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise StrategyParseError(f"Model output is not valid JSON: {e}", raw_output=output) from e
    if not isinstance(data, dict):
        raise StrategyParseError("Model output is not a JSON object", raw_output=output)
    return data


def parse_strategy(output: str) -> SearchStrategy:
    """Turn raw model output into a validated SearchStrategy."""
    data = parse_json_object(output)
    try:
        strategy = SearchStrategy.model_validate(data)
    except ValidationError as e:
        raise StrategyParseError(f"Model output has invalid fields: {e}", raw_output=output) from e
    if not strategy.key_terms and not (strategy.search_query or "").strip():
        raise StrategyParseError("Model output has no search terms", raw_output=output)
    return strategy
