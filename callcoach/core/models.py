import re
from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Any, Dict, List, Optional

SKILL_NAMES = ("discovery", "objectionHandling", "closing", "rapport")
NO_FILE = "No file"


class Sentiment(str, Enum):
    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEEDS_IMPROVEMENT = "Needs Improvement"


class AppointmentOutcome(str, Enum):
    BOOKED = "Booked"
    FOLLOW_UP = "FollowUp"
    NO_NEXT_STEP = "NoNextStep"


class ConversionLikelihood(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True)
class Unrecognized:
    """A label outside an enum's closed set, kept verbatim rather than coerced."""
    value: str


def parse_label(enum_cls, value: str):
    try:
        return enum_cls(value)
    except ValueError:
        return Unrecognized(value)


def is_known(enum_cls, value: str) -> bool:
    return not isinstance(parse_label(enum_cls, value), Unrecognized)


def _camel(name: str) -> str:
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name)


def _snake(name: str) -> str:
    return re.sub(r"([A-Z])", lambda m: "_" + m.group(1).lower(), name)


@dataclass
class TimelineEntry:
    label: str
    description: str
    type: Optional[str] = None
    moment: Optional[str] = None


@dataclass
class CallAnalysis:
    # Enum-valued fields hold the raw label; use outcome/likelihood for the typed view.
    quality_score: int
    appointment_outcome: str
    conversion_likelihood: str
    script_adherence: float  # ratio 0..1
    skills: Dict[str, int]
    coaching_summary: str
    script_adherence_summary: str = ""
    appointment_recommendation: str = ""
    call_timeline: List[TimelineEntry] = field(default_factory=list)
    key_objections: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    improvement_areas: List[str] = field(default_factory=list)
    coaching_plan: List[str] = field(default_factory=list)
    recommended_phrases: List[str] = field(default_factory=list)
    phrases_to_avoid: List[str] = field(default_factory=list)
    raw: Optional[str] = None

    @property
    def outcome(self):
        return parse_label(AppointmentOutcome, self.appointment_outcome)

    @property
    def likelihood(self):
        return parse_label(ConversionLikelihood, self.conversion_likelihood)

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(k): v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallAnalysis":
        names = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            attr = _snake(key)
            if attr in names:
                kwargs[attr] = value
        kwargs["call_timeline"] = [TimelineEntry(**t) for t in kwargs.get("call_timeline") or []]
        return cls(**kwargs)


@dataclass
class CallRecord:
    agent_name: str
    notes: str
    transcript: str
    filename: str
    created_at: str
    sentiment: str
    analysis: CallAnalysis
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "id": self.id,
            "agentName": self.agent_name,
            "notes": self.notes,
            "transcript": self.transcript,
            "filename": self.filename,
            "createdAt": self.created_at,
            "sentiment": self.sentiment,
        }
        out.update(self.analysis.to_dict())
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallRecord":
        return cls(
            id=data.get("id"),
            agent_name=data.get("agentName", "Unknown"),
            notes=data.get("notes", ""),
            transcript=data.get("transcript", ""),
            filename=data.get("filename", NO_FILE),
            created_at=data.get("createdAt", ""),
            sentiment=data.get("sentiment", ""),
            analysis=CallAnalysis.from_dict(data),
        )


@dataclass
class Script:
    id: str
    name: str
    content: str
    active: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Script":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            content=data.get("content", ""),
            active=bool(data.get("active", False)),
        )
