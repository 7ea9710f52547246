"""
Response normalizer: turns unreliable LLM text into schema-conformant data.

Parsing runs an ordered list of pure extraction strategies (first success
wins), then the parsed object is checked against a per-schema rule table that
fills defaults, coerces types and clamps numbers. ``normalize`` never raises.
"""
import copy
import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config import NORMALIZER_ERROR_THRESHOLD, RAW_PREVIEW_CHARS

logger = logging.getLogger("normalizer")

_NO_DEFAULT = object()


@dataclass(frozen=True)
class FieldRule:
    """Validation rule for a single field."""
    type: str
    required: bool = False
    default: Any = _NO_DEFAULT
    min: Optional[float] = None
    max: Optional[float] = None
    coerce: bool = False
    fields: Optional[Dict[str, "FieldRule"]] = None
    choices: Optional[Tuple[str, ...]] = None

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT

    def default_value(self) -> Any:
        value = copy.deepcopy(self.default)
        if self.type == "object" and self.fields and isinstance(value, dict):
            value = {**value, **defaults_for(self.fields)}
        return value


@dataclass
class NormalizeResult:
    """Outcome of normalizing one raw LLM reply."""
    ok: bool
    data: Dict[str, Any]
    errors: List[str] = field(default_factory=list)
    method: str = "failed"
    raw_preview: Optional[str] = None


# =============================================================================
# SCHEMAS
# =============================================================================

def _score(default: int = 70, required: bool = True) -> FieldRule:
    if not required:
        return FieldRule("number", min=0, max=100, coerce=True)
    return FieldRule("number", required=True, default=default, min=0, max=100, coerce=True)


def _list(default: Optional[List[str]] = None) -> FieldRule:
    return FieldRule("array", required=True, default=list(default or []), coerce=True)


DIFFICULTIES = ("easy", "medium", "hard")
DECISIONS = ("approve", "reject", "revise")

SCHEMAS: Dict[str, Dict[str, FieldRule]] = {
    "topic_analysis": {
        "mainConcepts": _list(),
        "skills": _list(),
        "technologies": _list(),
        "focusAreas": _list(),
        "relevanceKeywords": _list(),
        "complexity": FieldRule("string", required=True, default="medium",
                                choices=("low", "medium", "high")),
        "questionCategories": _list(),
    },
    "question_generation": {
        "question": FieldRule("string", required=True),
        "metadata": FieldRule("object", required=True, default={}, fields={
            "category": FieldRule("string", coerce=True),
            "difficulty": FieldRule("string", choices=DIFFICULTIES),
            "focusArea": FieldRule("string", coerce=True),
            "concepts": FieldRule("array", coerce=True),
            "questionType": FieldRule("string", coerce=True),
        }),
        "reasoning": FieldRule("string", coerce=True),
    },
    "question_validation": {
        "validation": FieldRule("object", required=True, default={}, fields={
            "isValid": FieldRule("boolean", required=True, default=False, coerce=True),
            "topicRelevance": _score(50),
            "difficultyMatch": _score(50),
            "clarity": _score(50),
            "overallScore": _score(required=False),
        }),
        "issues": _list(),
        "suggestions": _list(),
        "decision": FieldRule("string", choices=DECISIONS),
        "reasoning": FieldRule("string", coerce=True),
    },
    "question_plan": {
        "questionPlan": FieldRule("object", required=True, default={}, fields={
            "totalQuestions": FieldRule("number", min=1, max=15, coerce=True),
            "progression": FieldRule("string", coerce=True),
            "focusDistribution": FieldRule("object"),
        }),
        "nextQuestionSpec": FieldRule("object", required=True, fields={
            "category": FieldRule("string", required=True, coerce=True),
            "difficulty": FieldRule("string", required=True, choices=DIFFICULTIES),
            "focusArea": FieldRule("string", required=True, coerce=True),
            "concepts": FieldRule("array", required=True, coerce=True),
            "avoidTopics": _list(),
            "questionType": FieldRule("string", required=True, default="theoretical", coerce=True),
        }),
        "reasoning": FieldRule("string", coerce=True),
    },
    "response_analysis": {
        "responseAnalysis": FieldRule("object", required=True, fields={
            "clarity": _score(),
            "structure": _score(),
            "technical": _score(),
            "communication": _score(),
            "confidence": _score(),
            "relevance": _score(),
        }),
        "score": _score(required=False),
        "strengths": _list(),
        "improvements": _list(),
        "keyInsights": _list(),
        "feedback": FieldRule("string", required=True, default="", coerce=True),
        "reasoning": FieldRule("string", coerce=True),
    },
    "overall_analysis": {
        "overallScore": _score(required=False),
        "performanceLevel": FieldRule("string", coerce=True),
        "strengths": _list(["Shows understanding of core concepts"]),
        "improvements": _list(["Provide more specific examples"]),
        "recommendations": _list(["Practice structured responses"]),
        "nextSteps": _list(["Continue practicing interview scenarios"]),
        "responseAnalysis": FieldRule("object", required=True, default={}, fields={
            "clarity": _score(),
            "structure": _score(),
            "technical": _score(),
            "communication": _score(),
            "confidence": _score(),
        }),
        "trends": FieldRule("object", required=True, default={}, fields={
            "improvement": FieldRule("string", required=True, default="consistent",
                                     choices=("improving", "declining", "consistent")),
            "consistency": FieldRule("string", required=True, default="medium",
                                     choices=("high", "medium", "low")),
            "adaptability": FieldRule("string", required=True, default="medium",
                                      choices=("high", "medium", "low")),
        }),
        "executiveSummary": FieldRule("string", coerce=True),
    },
}


# =============================================================================
# EXTRACTION STRATEGIES
# =============================================================================

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?```\s*$")
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_JSON_FENCE = re.compile(r"```json\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_AFTER_JSON_KEYWORD = re.compile(r"json\s*(\{[\s\S]*\})", re.IGNORECASE)
_BALANCED_OBJECT = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}")
_ANY_FENCE = re.compile(r"```[A-Za-z0-9_-]*\s*([\s\S]*?)```")
_LABELLED_OBJECT = re.compile(r"(?:response|result|output|json|data)\s*:\s*(\{[\s\S]*\})", re.IGNORECASE)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    """json.loads that only accepts objects; unwraps one level of string encoding."""
    try:
        value = json.loads(text)
        if isinstance(value, str):
            value = json.loads(value)
    except (ValueError, TypeError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def parse_direct(text: str) -> Optional[Dict[str, Any]]:
    return _load_object(text.strip())


def parse_cleaned(text: str) -> Optional[Dict[str, Any]]:
    """Strip one layer of code fences, stray backticks and wrapping quotes."""
    cleaned = text.strip()
    cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    cleaned = cleaned.strip().strip("`").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in ("'", '"'):
        cleaned = cleaned[1:-1].strip()
    return _load_object(cleaned)


def parse_extracted(text: str) -> Optional[Dict[str, Any]]:
    """First '{' to last '}', then a ```json block, then whatever follows 'json'."""
    for pattern in (_GREEDY_OBJECT, _JSON_FENCE, _AFTER_JSON_KEYWORD):
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1) if pattern.groups else match.group(0)
        parsed = _load_object(candidate)
        if parsed is not None:
            return parsed
    return None


def parse_advanced(text: str) -> Optional[Dict[str, Any]]:
    """Longest balanced-looking span, any fenced block, then labelled payloads."""
    spans = sorted(_BALANCED_OBJECT.findall(text), key=len, reverse=True)
    for span in spans:
        parsed = _load_object(span)
        if parsed is not None:
            return parsed

    for block in _ANY_FENCE.findall(text):
        parsed = _load_object(block.strip())
        if parsed is None:
            match = _GREEDY_OBJECT.search(block)
            parsed = _load_object(match.group(0)) if match else None
        if parsed is not None:
            return parsed

    match = _LABELLED_OBJECT.search(text)
    if match:
        return _load_object(match.group(1))
    return None


STRATEGIES: List[Tuple[str, Callable[[str], Optional[Dict[str, Any]]]]] = [
    ("direct", parse_direct),
    ("cleaned", parse_cleaned),
    ("extracted", parse_extracted),
    ("advanced", parse_advanced),
]


# =============================================================================
# VALIDATION
# =============================================================================

_TYPE_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "string": lambda v: isinstance(v, str),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}

_ZERO_VALUES: Dict[str, Any] = {
    "number": 0,
    "string": "",
    "boolean": False,
    "array": [],
    "object": {},
}


def _coerce(value: Any, type_name: str) -> Tuple[bool, Any]:
    """Convert value to type_name. Returns (converted, value)."""
    if type_name == "number":
        if isinstance(value, bool):
            return True, int(value)
        try:
            number = float(str(value).strip().rstrip("%"))
        except ValueError:
            return True, 0
        if math.isnan(number) or math.isinf(number):
            return True, 0
        return True, int(number) if number.is_integer() else number
    if type_name == "string":
        return True, str(value)
    if type_name == "boolean":
        if isinstance(value, str):
            return True, value.strip().lower() not in ("", "false", "no", "0", "null", "none")
        return True, bool(value)
    if type_name == "array":
        return True, [value]
    return False, value


def _clamp(value: float, rule: FieldRule) -> float:
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        value = rule.default_value() if rule.has_default else 0
    if rule.min is not None and value < rule.min:
        value = rule.min
    if rule.max is not None and value > rule.max:
        value = rule.max
    return value


def validate(data: Dict[str, Any], rules: Dict[str, FieldRule], path: str = "") -> Tuple[Dict[str, Any], List[str]]:
    """
    Apply a rule table to a parsed object.

    Unknown keys pass through untouched. Returns the normalized copy and the
    list of validation errors (dotted paths for nested fields).
    """
    result = dict(data)
    errors: List[str] = []

    for name, rule in rules.items():
        key = f"{path}{name}"
        value = result.get(name)

        if value is None:
            result.pop(name, None)
            if rule.required:
                if rule.has_default:
                    result[name] = rule.default_value()
                else:
                    errors.append(f"{key}: required field missing")
            continue

        if not _TYPE_CHECKS[rule.type](value):
            converted = False
            if rule.coerce:
                converted, value = _coerce(value, rule.type)
            if not converted:
                errors.append(f"{key}: expected {rule.type}, got {type(value).__name__}")
                if rule.has_default:
                    result[name] = rule.default_value()
                elif not rule.required:
                    result.pop(name, None)
                continue

        if rule.type == "number":
            value = _clamp(value, rule)
        elif rule.type == "object" and rule.fields:
            value, nested_errors = validate(value, rule.fields, path=f"{key}.")
            errors.extend(nested_errors)

        if rule.choices is not None and value not in rule.choices:
            errors.append(f"{key}: {value!r} not in {list(rule.choices)}")
            if rule.has_default:
                value = rule.default_value()
            else:
                result.pop(name, None)
                continue

        result[name] = value

    return result, errors


def defaults_for(rules: Dict[str, FieldRule]) -> Dict[str, Any]:
    """Build the fully defaulted object for a rule table (required fields only)."""
    data: Dict[str, Any] = {}
    for name, rule in rules.items():
        if not rule.required:
            continue
        if rule.type == "object" and rule.fields and not rule.has_default:
            data[name] = defaults_for(rule.fields)
        elif rule.has_default:
            data[name] = rule.default_value()
        else:
            data[name] = copy.deepcopy(_ZERO_VALUES[rule.type])
    return data


def normalize(raw_text: Any, schema_name: str) -> NormalizeResult:
    """
    Parse and validate an LLM reply against a named schema.

    Args:
        raw_text: Raw model output, supposedly JSON
        schema_name: Key into SCHEMAS; unknown names parse without validation

    Returns:
        NormalizeResult; ``data`` is always a usable dict
    """
    rules = SCHEMAS.get(schema_name)
    if rules is None:
        logger.warning(f"Unknown schema '{schema_name}', parsing without validation")
        rules = {}

    text = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))

    for method, strategy in STRATEGIES:
        parsed = strategy(text)
        if parsed is None:
            continue

        data, errors = validate(parsed, rules)
        ok = len(errors) < NORMALIZER_ERROR_THRESHOLD
        if errors:
            logger.debug(f"[{schema_name}] {len(errors)} validation error(s) via {method}: {errors}")
        if method != "direct":
            logger.debug(f"[{schema_name}] parsed using '{method}' strategy")
        return NormalizeResult(
            ok=ok,
            data=data,
            errors=errors,
            method=method,
            raw_preview=None if ok else text[:RAW_PREVIEW_CHARS],
        )

    logger.warning(f"[{schema_name}] all parsing strategies failed, using defaults")
    logger.debug("Raw response preview: %r", text[:RAW_PREVIEW_CHARS])
    return NormalizeResult(
        ok=False,
        data=defaults_for(rules),
        errors=["no JSON object could be parsed"],
        method="failed",
        raw_preview=text[:RAW_PREVIEW_CHARS],
    )
