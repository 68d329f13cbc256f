"""Data records shared by the analyzer, the rule set and the collaborators."""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union


class Severity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]

    @classmethod
    def coerce(cls, value: Union["Severity", str, None]) -> "Severity":
        """Map a string (or None) onto a Severity, defaulting to WARNING."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.WARNING


SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


@dataclass(frozen=True)
class Diagnosis:
    """A single finding about a CORS misconfiguration."""

    issue: str
    description: str
    recommendation: str
    code_example: Optional[str] = None
    pattern: Optional[str] = None
    severity: Severity = Severity.WARNING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issue": self.issue,
            "description": self.description,
            "recommendation": self.recommendation,
            "code_example": self.code_example,
            "pattern": self.pattern,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class SecurityIssue:
    level: Severity
    title: str
    description: str
    recommendation: str


OriginSetting = Union[str, List[str], bool]

# camelCase spellings accepted in config files
_FIELD_ALIASES = {
    "allowedHeaders": "allowed_headers",
    "exposedHeaders": "exposed_headers",
    "maxAge": "max_age",
}

_LIST_FIELDS = ("methods", "allowed_headers", "exposed_headers")


@dataclass
class CorsConfiguration:
    """A CORS policy, either desired or reconstructed from response headers.

    ``origin`` is an exact origin string, a list of origins, ``True`` for the
    wildcard or ``False`` for "CORS disabled". Optional fields left as
    ``None`` count as absent.
    """

    origin: Optional[OriginSetting] = None
    methods: Optional[List[str]] = None
    allowed_headers: Optional[List[str]] = None
    exposed_headers: Optional[List[str]] = None
    credentials: Optional[bool] = None
    max_age: Optional[int] = None

    def present_fields(self) -> Iterator[Tuple[str, Any]]:
        """Yield (name, value) for every field that is set."""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                yield f.name, value

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.present_fields())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CorsConfiguration":
        """Build a configuration from a mapping.

        Raises:
            ValueError: If the mapping has unknown keys or wrongly typed values
        """
        if not isinstance(data, Mapping):
            raise ValueError("CORS configuration must be a mapping/object")

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = _FIELD_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown CORS configuration property: {key}")
            values[name] = value

        origin = values.get("origin")
        if origin is not None and not isinstance(origin, (str, bool, list)):
            raise ValueError("origin must be a string, a list of strings or a boolean")
        if isinstance(origin, list) and not all(isinstance(o, str) for o in origin):
            raise ValueError("origin list must only contain strings")

        for name in _LIST_FIELDS:
            value = values.get(name)
            if value is None:
                continue
            if isinstance(value, str):
                # "GET, POST" is a common shorthand in YAML files
                values[name] = [part.strip() for part in value.split(",") if part.strip()]
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                values[name] = list(value)
            else:
                raise ValueError(f"{name} must be a list of strings")

        credentials = values.get("credentials")
        if credentials is not None and not isinstance(credentials, bool):
            raise ValueError("credentials must be a boolean")

        max_age = values.get("max_age")
        if max_age is not None and (isinstance(max_age, bool) or not isinstance(max_age, int)):
            raise ValueError("max_age must be an integer")

        return cls(**values)


@dataclass(frozen=True)
class IncorrectProperty:
    property: str
    current: Any
    expected: Any


@dataclass
class ConfigurationDiff:
    missing: List[str] = field(default_factory=list)
    incorrect: List[IncorrectProperty] = field(default_factory=list)
    extra: List[str] = field(default_factory=list)
    summary: str = ""

    @property
    def matches(self) -> bool:
        return not (self.missing or self.incorrect or self.extra)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "missing": list(self.missing),
            "incorrect": [
                {"property": item.property, "current": item.current, "expected": item.expected}
                for item in self.incorrect
            ],
            "extra": list(self.extra),
            "summary": self.summary,
        }


@dataclass(frozen=True)
class PreflightResult:
    required: bool
    allowed: bool


@dataclass
class OriginTestResult:
    """Outcome of simulating a request from one origin against a policy."""

    allowed: bool
    headers: Dict[str, str] = field(default_factory=dict)
    preflight: PreflightResult = field(
        default_factory=lambda: PreflightResult(required=False, allowed=False)
    )
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "headers": dict(self.headers),
            "preflight": {
                "required": self.preflight.required,
                "allowed": self.preflight.allowed,
            },
        }


def as_configuration(value: Union[CorsConfiguration, Mapping[str, Any], None]) -> CorsConfiguration:
    """Accept either a CorsConfiguration or a plain mapping."""
    if value is None:
        return CorsConfiguration()
    if isinstance(value, CorsConfiguration):
        return value
    return CorsConfiguration.from_dict(value)
