"""Turn whatever text the model returned into a fully populated CallAnalysis.

The model is asked for a JSON object but its reply is untrusted: it may be
fenced in markdown, wrapped in prose, truncated, or missing fields. Every
expected field resolves independently to either the parsed value or the
fallback's value, so one bad field never costs the others.
"""
import copy
import json
import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .models import (
    AppointmentOutcome, CallAnalysis, ConversionLikelihood, Sentiment, SKILL_NAMES, TimelineEntry, is_known,
)

log = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```json([\s\S]*?)```", re.IGNORECASE)

_INVALID = object()


@dataclass(frozen=True)
class Parsed:
    value: Any


@dataclass(frozen=True)
class Default:
    value: Any


Resolved = Union[Parsed, Default]


def fallback_analysis() -> CallAnalysis:
    """Canned analysis used when the model is unavailable or unparseable."""
    return CallAnalysis(
        quality_score=78,
        appointment_outcome=AppointmentOutcome.FOLLOW_UP.value,
        conversion_likelihood=ConversionLikelihood.MEDIUM.value,
        script_adherence=0.72,
        skills={"discovery": 80, "objectionHandling": 65, "closing": 70, "rapport": 90},
        coaching_summary=(
            "Focus on slowing down during discovery, confirming pain points, and being clearer "
            "on next steps. Overall, good rapport and tone."
        ),
        script_adherence_summary="Followed the opening and qualification sections; skipped the recap before the close.",
        appointment_recommendation="Schedule a follow-up call within two days and propose two concrete time slots.",
        call_timeline=[
            TimelineEntry(label="Opening", description="Agent introduced themselves and the reason for the call.",
                          type="opening", moment="early"),
            TimelineEntry(label="Discovery", description="Agent asked about the prospect's current situation.",
                          type="discovery", moment="middle"),
            TimelineEntry(label="Next steps", description="Call ended with a loose agreement to talk again.",
                          type="close", moment="late"),
        ],
        key_objections=["Timing is not right"],
        strengths=["Warm, friendly tone", "Built rapport quickly"],
        improvement_areas=["Ask deeper discovery questions", "Ask directly for the appointment"],
        coaching_plan=["Role-play the close with a manager", "Practise two open discovery questions per call"],
        recommended_phrases=["What would make this a good time to meet?"],
        phrases_to_avoid=["I'll let you go"],
        raw=None,
    )


def sentiment_for_score(score: int) -> str:
    if score >= 85:
        return Sentiment.POSITIVE.value
    if score >= 75:
        return Sentiment.NEUTRAL.value
    return Sentiment.NEEDS_IMPROVEMENT.value


def strip_fences(text: str) -> str:
    m = FENCE_RE.search(text)
    return m.group(1) if m else text


def parse_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    if not text or not text.strip():
        return None
    try:
        data = json.loads(strip_fences(text).strip())
    except ValueError as e:
        log.warning("Failed to parse JSON from model: %s", e)
        return None
    except RecursionError:
        log.warning("Failed to parse JSON from model: nesting too deep")
        return None
    if not isinstance(data, dict):
        log.warning("Model returned JSON %s, expected an object", type(data).__name__)
        return None
    return data


# Field validators: (value, default) -> repaired value or _INVALID

def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def _score(value, default):
    if not _is_number(value) or not 0 <= value <= 100:
        return _INVALID
    return int(round(value))


def _percent(value, default):
    if not _is_number(value) or not 0 <= value <= 100:
        return _INVALID
    return value / 100


def _text(value, default):
    if not isinstance(value, str) or not value.strip():
        return _INVALID
    return value


def _str_list(value, default):
    if not isinstance(value, list):
        return _INVALID
    return [v for v in value if isinstance(v, str) and v.strip()]


def _skills(value, default):
    if not isinstance(value, dict):
        return _INVALID
    out = {}
    for name in SKILL_NAMES:
        score = _score(value.get(name), None)
        out[name] = default[name] if score is _INVALID else score
    return out


def _optional_str(value) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _timeline(value, default):
    if not isinstance(value, list):
        return _INVALID
    entries = []
    for item in value:
        if not isinstance(item, dict) or not _optional_str(item.get("label")):
            continue
        description = _optional_str(item.get("description")) or _optional_str(item.get("summary")) or ""
        entries.append(TimelineEntry(
            label=item["label"],
            description=description,
            type=_optional_str(item.get("type")),
            moment=_optional_str(item.get("moment")),
        ))
    return entries


@dataclass(frozen=True)
class FieldSpec:
    keys: Tuple[str, ...]  # response keys, first match wins
    attr: str
    check: Callable[[Any, Any], Any]


FIELDS: List[FieldSpec] = [
    FieldSpec(("qualityScore",), "quality_score", _score),
    FieldSpec(("appointmentOutcome",), "appointment_outcome", _text),
    FieldSpec(("conversionLikelihood",), "conversion_likelihood", _text),
    FieldSpec(("scriptAdherencePercent",), "script_adherence", _percent),
    FieldSpec(("skills",), "skills", _skills),
    FieldSpec(("coachingSummary",), "coaching_summary", _text),
    FieldSpec(("scriptAdherenceSummary",), "script_adherence_summary", _text),
    FieldSpec(("appointmentRecommendation",), "appointment_recommendation", _text),
    FieldSpec(("callTimeline", "timeline"), "call_timeline", _timeline),
    FieldSpec(("keyObjections",), "key_objections", _str_list),
    FieldSpec(("strengths",), "strengths", _str_list),
    FieldSpec(("improvementAreas", "improvements"), "improvement_areas", _str_list),
    FieldSpec(("coachingPlan",), "coaching_plan", _str_list),
    FieldSpec(("recommendedPhrases",), "recommended_phrases", _str_list),
    FieldSpec(("phrasesToAvoid",), "phrases_to_avoid", _str_list),
]

_ENUM_FIELDS = {"appointment_outcome": AppointmentOutcome, "conversion_likelihood": ConversionLikelihood}


def resolve_field(data: Dict[str, Any], spec: FieldSpec, fallback: CallAnalysis) -> Resolved:
    default = getattr(fallback, spec.attr)
    for key in spec.keys:
        if key in data:
            value = spec.check(data[key], default)
            if value is not _INVALID:
                return Parsed(value)
    return Default(copy.deepcopy(default))


@dataclass
class Normalized:
    analysis: CallAnalysis
    parsed: bool
    fields: Dict[str, Resolved] = field(default_factory=dict)

    @property
    def sentiment(self) -> str:
        return sentiment_for_score(self.analysis.quality_score)

    @property
    def defaulted(self) -> List[str]:
        return [name for name, r in self.fields.items() if isinstance(r, Default)]


def fallback_result(fallback: Optional[CallAnalysis] = None, raw: Optional[str] = None) -> Normalized:
    fallback = fallback or fallback_analysis()
    analysis = replace(copy.deepcopy(fallback), raw=raw)
    resolved = {spec.attr: Default(getattr(analysis, spec.attr)) for spec in FIELDS}
    return Normalized(analysis=analysis, parsed=False, fields=resolved)


def normalize_response(text: Optional[str], fallback: Optional[CallAnalysis] = None) -> Normalized:
    fallback = fallback or fallback_analysis()
    data = parse_json(text)
    if data is None:
        return fallback_result(fallback, raw=text)

    resolved = {spec.attr: resolve_field(data, spec, fallback) for spec in FIELDS}
    for attr, enum_cls in _ENUM_FIELDS.items():
        r = resolved[attr]
        if isinstance(r, Parsed) and not is_known(enum_cls, r.value):
            log.info("Passing through unrecognized %s value %r", attr, r.value)

    analysis = CallAnalysis(raw=text, **{attr: r.value for attr, r in resolved.items()})
    result = Normalized(analysis=analysis, parsed=True, fields=resolved)
    if result.defaulted:
        log.info("Model response missing or invalid fields, using defaults: %s", ", ".join(result.defaulted))
    return result
