"""
Splits a language model's raw reply into display text and an optional
trailing JSON "analysis" object.

The chat prompt asks the model to append a JSON object after its
natural-language answer. Nothing guarantees the model does so, or that the
JSON it emits is valid, so ``split`` never raises: whenever the trailing
object cannot be recovered, the full raw text is returned as display text
with an empty analysis.
"""

import json
import logging
from typing import Any, Callable, Dict, NamedTuple, Optional

logger = logging.getLogger(__name__)

# A split strategy maps raw text to the index where the JSON suffix starts.
SplitStrategy = Callable[[str], Optional[int]]

# last_brace gives up after this many candidate braces
MAX_BRACE_SCANS = 64


class SplitResult(NamedTuple):
    display_text: str
    analysis: Dict[str, Any]

    def to_payload(self, text_field: str = "text") -> Dict[str, Any]:
        """Response body for the chat endpoint."""
        return {text_field: self.display_text, "analysis": self.analysis}


# ============================================================================
# Parsing
# ============================================================================

def _reject_constant(name: str):
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"non-standard JSON constant {name}")


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


def _parse_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = _decoder.decode(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


# ============================================================================
# Split strategies
# ============================================================================

def first_brace(raw: str) -> Optional[int]:
    index = raw.find("{")
    return index if index != -1 else None


def last_brace(raw: str) -> Optional[int]:
    """
    Rightmost ``{`` whose suffix parses as a JSON object.

    Only the last ``MAX_BRACE_SCANS`` braces are tried. Falls back to the
    first ``{`` so that a failed search still goes through the normal
    parse-failure path.
    """
    index = raw.rfind("{")
    scans = 0
    while index != -1 and scans < MAX_BRACE_SCANS:
        scans += 1
        try:
            value, end = _decoder.raw_decode(raw, index)
        except (ValueError, RecursionError):
            value, end = None, index
        if isinstance(value, dict) and not raw[end:].strip():
            return index
        index = raw.rfind("{", 0, index)
    return first_brace(raw)


def key_anchored(key: str) -> SplitStrategy:
    """Split at the first ``{"<key>":``, e.g. ``{"summaryTitle":``."""
    anchor = "{" + json.dumps(key, ensure_ascii=False) + ":"

    def strategy(raw: str) -> Optional[int]:
        index = raw.find(anchor)
        return index if index != -1 else None

    strategy.__name__ = f"key_anchored_{key}"
    return strategy


STRATEGIES: Dict[str, SplitStrategy] = {
    "first_brace": first_brace,
    "last_brace": last_brace,
    "summary_title": key_anchored("summaryTitle"),
}


def get_strategy(name: str) -> SplitStrategy:
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown split strategy {name!r}; expected one of {sorted(STRATEGIES)}"
        ) from None


# ============================================================================
# Splitting
# ============================================================================

def split(raw: Any, strategy: SplitStrategy = first_brace) -> SplitResult:
    """
    Separate ``raw`` into ``(display_text, analysis)``.

    - no split point                  -> (raw, {})
    - suffix is not a JSON object     -> (raw, {})
    - parsed, non-empty prefix        -> (prefix.strip(), parsed)
    - parsed, prefix empty            -> (raw, parsed)
    """
    if not raw or not isinstance(raw, str):
        return SplitResult(raw, {})

    index = strategy(raw)
    if index is None:
        return SplitResult(raw, {})

    prefix = raw[:index].strip()
    analysis = _parse_object(raw[index:])
    if analysis is None:
        logger.debug("Analysis JSON could not be parsed; returning raw text")
        return SplitResult(raw, {})

    # An empty display string is never a useful answer
    if not prefix:
        return SplitResult(raw, analysis)

    return SplitResult(prefix, analysis)
