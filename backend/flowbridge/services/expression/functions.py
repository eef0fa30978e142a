"""
Expression function mapping between n8n and Make.com.

Each known function has an n8n spelling (`$str.upper`), a Make.com spelling
(`upper`) and a Python implementation used by the evaluator.
"""
import json
import logging
import random
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)


@dataclass
class FunctionMapping:
    """One function known in both expression languages."""
    n8n_name: str
    make_name: str
    implementation: Callable[..., Any]
    min_args: int = 0
    max_args: int = 99
    description: str = ""
    review_note: str = ""   # set when argument semantics differ between platforms


# ==================== Value helpers ====================

def to_text(value: Any) -> str:
    """Render a value the way string concatenation does."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def normalize_number(value: Any) -> Any:
    """Collapse integral floats to int so `4 / 2` gives 2."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value != ""
    return bool(value)


# ==================== String Functions ====================

def _upper(value: Any) -> Optional[str]:
    return None if value is None else to_text(value).upper()


def _lower(value: Any) -> Optional[str]:
    return None if value is None else to_text(value).lower()


def _trim(value: Any) -> Optional[str]:
    return None if value is None else to_text(value).strip()


def _replace(value: Any, search: Any, replacement: Any) -> Optional[str]:
    if value is None:
        return None
    return to_text(value).replace(to_text(search), to_text(replacement))


def _substr(value: Any, start: Any, length: Any = None) -> Optional[str]:
    """n8n: substring by start and length."""
    if value is None:
        return None
    text = to_text(value)
    start = int(start)
    if length is None:
        return text[start:]
    return text[start:start + int(length)]


def _substring(value: Any, start: Any, end: Any = None) -> Optional[str]:
    """Make.com: substring by start and end index."""
    if value is None:
        return None
    text = to_text(value)
    if end is None:
        return text[int(start):]
    return text[int(start):int(end)]


# ==================== Array Functions ====================

def _first(values: Any) -> Any:
    if isinstance(values, (list, tuple)) and values:
        return values[0]
    return None


def _last(values: Any) -> Any:
    if isinstance(values, (list, tuple)) and values:
        return values[-1]
    return None


def _join(values: Any, separator: Any = ",") -> Optional[str]:
    if not isinstance(values, (list, tuple)):
        return None
    return to_text(separator).join(to_text(v) for v in values)


# ==================== Date Functions ====================

# moment.js style tokens used by both platforms -> strftime
_DATE_TOKENS = [
    ("YYYY", "%Y"), ("YY", "%y"), ("MMMM", "%B"), ("MMM", "%b"), ("MM", "%m"),
    ("DD", "%d"), ("dddd", "%A"), ("ddd", "%a"), ("HH", "%H"), ("hh", "%I"),
    ("mm", "%M"), ("ss", "%S"), ("A", "%p"),
]
_DATE_TOKEN_RE = re.compile("|".join(token for token, _ in _DATE_TOKENS))


def _moment_to_strftime(fmt: str) -> str:
    lookup = dict(_DATE_TOKENS)
    return _DATE_TOKEN_RE.sub(lambda m: lookup[m.group(0)], fmt)


def _now() -> str:
    return datetime.now().isoformat()


def _format_date(value: Any, fmt: Any = None) -> Optional[str]:
    if value is None:
        return None
    moment = value if isinstance(value, datetime) else date_parser.parse(to_text(value))
    if fmt is None:
        return moment.isoformat()
    return moment.strftime(_moment_to_strftime(to_text(fmt)))


# ==================== Math Functions ====================

def _round(value: Any, decimals: Any = 0) -> Any:
    if not is_number(value):
        return None
    return normalize_number(round(float(value), int(decimals)))


def _random(minimum: Any = None, maximum: Any = None) -> Any:
    if minimum is None or maximum is None:
        return random.random()
    return random.randint(int(minimum), int(maximum))


# ==================== Conditional Functions ====================

def _if_then_else(condition: Any, when_true: Any, when_false: Any = None) -> Any:
    return when_true if is_truthy(condition) else when_false


# ==================== Function table ====================

FUNCTION_MAPPINGS: List[FunctionMapping] = [
    FunctionMapping("$str.upper", "upper", _upper, 1, 1, "Convert to uppercase"),
    FunctionMapping("$str.lower", "lower", _lower, 1, 1, "Convert to lowercase"),
    FunctionMapping("$str.trim", "trim", _trim, 1, 1, "Remove leading/trailing whitespace"),
    FunctionMapping("$str.replace", "replace", _replace, 3, 3, "Replace all occurrences"),
    FunctionMapping(
        "$str.substr", "substring", _substr, 2, 3, "Extract substring",
        review_note="n8n takes a length, Make.com takes an end index",
    ),
    FunctionMapping("$array.first", "first", _first, 1, 1, "First array element"),
    FunctionMapping("$array.last", "last", _last, 1, 1, "Last array element"),
    FunctionMapping("$array.join", "join", _join, 1, 2, "Join array elements"),
    FunctionMapping("$date.now", "now", _now, 0, 0, "Current timestamp"),
    FunctionMapping("$date.format", "formatDate", _format_date, 1, 2, "Format a date"),
    FunctionMapping("$math.round", "round", _round, 1, 2, "Round a number"),
    FunctionMapping("$math.random", "random", _random, 0, 2, "Random number"),
    FunctionMapping("$if", "if", _if_then_else, 2, 3, "Conditional value"),
]

N8N_TO_MAKE_FUNCTIONS: Dict[str, str] = {f.n8n_name: f.make_name for f in FUNCTION_MAPPINGS}
MAKE_TO_N8N_FUNCTIONS: Dict[str, str] = {f.make_name: f.n8n_name for f in FUNCTION_MAPPINGS}

# Implementations by either spelling; Make.com substring keeps end-index semantics
FUNCTIONS: Dict[str, FunctionMapping] = {}
for _mapping in FUNCTION_MAPPINGS:
    FUNCTIONS[_mapping.n8n_name] = _mapping
    FUNCTIONS[_mapping.make_name] = _mapping
FUNCTIONS["substring"] = FunctionMapping(
    "$str.substr", "substring", _substring, 2, 3, "Extract substring by end index"
)

# JavaScript methods callable on values inside n8n expressions
STRING_METHODS: Dict[str, Callable[..., Any]] = {
    "toUpperCase": lambda s: s.upper(),
    "toLowerCase": lambda s: s.lower(),
    "trim": lambda s: s.strip(),
    "toString": lambda s: s,
    "includes": lambda s, part: to_text(part) in s,
    "startsWith": lambda s, part: s.startswith(to_text(part)),
    "endsWith": lambda s, part: s.endswith(to_text(part)),
    "split": lambda s, sep=None: s.split(to_text(sep)) if sep is not None else [s],
}

LIST_METHODS: Dict[str, Callable[..., Any]] = {
    "join": lambda values, sep=",": _join(values, sep),
    "includes": lambda values, item: item in values,
    "toString": lambda values: _join(values, ","),
}

SUPPORTED_METHODS = set(STRING_METHODS) | set(LIST_METHODS)


def get_function(name: str) -> Optional[FunctionMapping]:
    """Look up a function by its n8n or Make.com name."""
    return FUNCTIONS.get(name)


def call_function(name: str, args: List[Any]) -> Any:
    """Call a known function, validating the argument count."""
    mapping = FUNCTIONS.get(name)
    if mapping is None:
        raise ValueError(f"Unknown function: {name}")
    if not mapping.min_args <= len(args) <= mapping.max_args:
        raise ValueError(
            f"{name} expects {mapping.min_args}-{mapping.max_args} arguments, got {len(args)}"
        )
    return mapping.implementation(*args)
