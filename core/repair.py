"""
Structured Text Repair
======================

Best-effort normalization of near-valid JSON produced by language models.

Repairs are applied in a fixed order, each one re-validated before the
next is tried:
1. Extract the first balanced {...} region (drops prose and code fences)
2. Convert single-quoted strings to double-quoted strings
3. Quote bare object keys
4. Remove trailing commas before } or ]
5. Normalize smart quotation marks used as delimiters

Only delimiter syntax is touched; field values are never rewritten.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from core.errors import UnrepairableStructuredText

logger = logging.getLogger(__name__)

_FENCE_JSON = "```json"
_FENCE = "```"

_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)(\s*:)")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_WHITESPACE_RE = re.compile(r"\s*")

# Characters that may legitimately follow a closing string delimiter
_AFTER_STRING = ",:}]"


def load_json(text: str) -> Any:
    """
    json.loads that tolerates raw newlines inside strings.

    Raises:
        ValueError: if the text is not JSON, including nesting too deep to decode
    """
    try:
        return json.loads(text, strict=False)
    except RecursionError as e:
        raise ValueError("JSON nesting too deep to decode") from e


def is_parseable(text: str) -> bool:
    try:
        load_json(text)
    except (ValueError, TypeError):
        return False
    return True


# =============================================================================
# Region extraction
# =============================================================================

def strip_code_fences(text: str) -> str:
    """
    Return the body of the first JSON code fence in `text`.

    Fences tagged with another language (```python) are skipped and the
    text after them is searched instead.
    """
    content = text.strip()

    if _FENCE_JSON in content:
        start = content.index(_FENCE_JSON) + len(_FENCE_JSON)
        end = content.find(_FENCE, start)
        if end > start:
            return content[start:end]
        return content[start:]

    if _FENCE in content:
        start = content.index(_FENCE)
        line_end = content.find("\n", start)
        if line_end > 0:
            lang = content[start + 3:line_end].strip()
            close = content.find(_FENCE, start + 3)
            if lang and lang != "json" and "{" not in lang:
                if close > 0:
                    after = content[close + 3:]
                    if "{" in after:
                        return after
            elif close > 0:
                return content[start + 3:close]

    return content


def _balanced_regions(text: str) -> List[str]:
    """
    Outermost balanced {...} regions of `text`, in order.

    Braces inside double-quoted strings are ignored once a region is open.
    An unmatched "{" does not hide the balanced regions that follow it.
    """
    spans: List[Tuple[int, int]] = []
    opened: List[int] = []
    in_string = False
    escape = False
    for i, ch in enumerate(text):
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and opened:
            in_string = True
        elif ch == "{":
            opened.append(i)
        elif ch == "}" and opened:
            start = opened.pop()
            # Regions nested inside this one are superseded
            while spans and spans[-1][0] > start:
                spans.pop()
            spans.append((start, i))
    return [text[start:end + 1] for start, end in spans]


def extract_structured_region(text: str) -> Optional[str]:
    """
    Locate the structured-text region of a model response.

    Returns the parseable object with the most keys when several are
    present, otherwise the first balanced region (possibly still malformed),
    or None when the text holds no balanced braces at all.
    """
    content = strip_code_fences(text)
    regions = _balanced_regions(content)
    if not regions:
        return None

    best = None
    best_keys = -1
    for region in regions:
        try:
            obj = load_json(region)
        except ValueError:
            continue
        if isinstance(obj, dict) and len(obj) > best_keys:
            best = region
            best_keys = len(obj)

    if best is not None:
        return best.strip()
    return regions[0].strip()


# =============================================================================
# Individual repairs
# =============================================================================

def _split_strings(text: str) -> List[Tuple[bool, str]]:
    """Split text into (inside_double_quoted_string, chunk) segments."""
    segments = []
    buf = []
    in_string = False
    escape = False
    for ch in text:
        if in_string:
            buf.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                segments.append((True, "".join(buf)))
                buf = []
                in_string = False
            continue
        if ch == '"':
            if buf:
                segments.append((False, "".join(buf)))
            buf = [ch]
            in_string = True
            continue
        buf.append(ch)
    if buf:
        segments.append((in_string, "".join(buf)))
    return segments


def _outside_strings(text: str, fn: Callable[[str], str]) -> str:
    return "".join(chunk if inside else fn(chunk) for inside, chunk in _split_strings(text))


def _find_string_close(text: str, start: int, close_chars: str) -> int:
    """Find a closing delimiter followed by structural punctuation or the end."""
    j = start
    while j < len(text):
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch in close_chars:
            after = _WHITESPACE_RE.match(text, j + 1).end()
            if after == len(text) or text[after] in _AFTER_STRING:
                return j
        j += 1
    return -1


def _requote(text: str, open_chars: str, close_chars: str) -> str:
    """
    Rewrite strings delimited by `open_chars`/`close_chars` as JSON strings.

    Characters inside already double-quoted runs are left untouched.
    """
    out = []
    i = 0
    in_double = False
    escape = False
    while i < len(text):
        ch = text[i]
        if in_double:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_double = False
            i += 1
            continue
        if ch == '"':
            in_double = True
            out.append(ch)
            i += 1
            continue
        if ch in open_chars:
            close = _find_string_close(text, i + 1, close_chars)
            if close > i:
                body = text[i + 1:close].replace("\\'", "'")
                body = re.sub(r'(?<!\\)"', r'\\"', body)
                out.append('"' + body + '"')
                i = close + 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _extract_region(text: str) -> str:
    region = extract_structured_region(text)
    return region if region is not None else text


def _convert_single_quotes(text: str) -> str:
    return _requote(text, "'", "'")


def _quote_bare_keys(text: str) -> str:
    return _outside_strings(text, lambda chunk: _BARE_KEY_RE.sub(r'\1"\2"\3', chunk))


def _remove_trailing_commas(text: str) -> str:
    return _outside_strings(text, lambda chunk: _TRAILING_COMMA_RE.sub(r"\1", chunk))


def _normalize_smart_quotes(text: str) -> str:
    text = _requote(text, "“„‟", "”“")
    return _requote(text, "‘‚", "’‘")


REPAIRS: List[Tuple[str, Callable[[str], str]]] = [
    ("extract_region", _extract_region),
    ("single_quotes", _convert_single_quotes),
    ("bare_keys", _quote_bare_keys),
    ("trailing_commas", _remove_trailing_commas),
    ("smart_quotes", _normalize_smart_quotes),
]


# =============================================================================
# Public API
# =============================================================================

def repair_structured_text(blob: str, extract_region: bool = True) -> str:
    """
    Repair near-valid structured text.

    Pass extract_region=False when `blob` is already the extracted region.

    Returns `blob` unchanged when it already parses, so repairing a repaired
    blob is a no-op.

    Raises:
        UnrepairableStructuredText: if no sequence of repairs yields
            parseable text. The original blob is attached.
    """
    if is_parseable(blob):
        return blob

    candidate = blob
    applied = []
    for name, repair in REPAIRS:
        if name == "extract_region" and not extract_region:
            continue
        updated = repair(candidate)
        if updated == candidate:
            continue
        candidate = updated
        applied.append(name)
        if is_parseable(candidate):
            logger.debug(f"🔧 [Repair] Recovered structured text after: {', '.join(applied)}")
            return candidate

    logger.debug(f"🔧 [Repair] Gave up after: {', '.join(applied) or 'no applicable repairs'}")
    raise UnrepairableStructuredText(blob)


def parse_structured_text(text: str) -> Tuple[Dict[str, Any], bool]:
    """
    Extract and decode the JSON object embedded in a model response.

    Returns:
        (object, repaired) where `repaired` tells whether the repair engine
        was needed.

    Raises:
        UnrepairableStructuredText: if no object can be recovered.
    """
    region = extract_structured_region(text)
    candidate = region if region is not None else text.strip()

    repaired = False
    try:
        obj = load_json(candidate)
    except ValueError:
        obj = load_json(repair_structured_text(candidate, extract_region=False))
        repaired = True

    if not isinstance(obj, dict):
        raise UnrepairableStructuredText(text, message="expected a JSON object")
    return obj, repaired
