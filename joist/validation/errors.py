"""Validation Error System

Reports are produced during traversal and rendered into ErrorDetail entries
once the run completes. Supports both fail-fast (abort_early) and
collect-all accumulation.

Error Format:
{
    "error": {
        "type": "validation_error",
        "message": "\"username\" length must be at least 3 characters long",
        "errors": [
            {
                "message": "\"username\" length must be at least 3 characters long",
                "path": ["username"],
                "type": "string.min",
                "context": {"limit": 3, "value": "ab", "label": "username", "key": "username"}
            }
        ]
    }
}
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable

from joist.errors import AppError, ErrorCode

from .common import UNDEFINED, format_path


def _code_value(code: ErrorCode | str) -> str:
    return code.value if isinstance(code, ErrorCode) else code


@dataclass(slots=True)
class Report:
    """A single failure found during traversal, not yet rendered.

    - code: dotted error code
    - value: offending value
    - local: code-specific context (limit, peers, valids, ...)
    - path: keys/indexes from the root
    - flags: flags of the reporting schema (label lookup)
    - prefs: preferences in effect (messages, renderer, error_label)
    - template: per-rule message override
    """
    code: ErrorCode | str
    value: Any
    local: dict
    path: tuple
    flags: dict
    prefs: Any
    template: str | None = None

    @property
    def type(self) -> str:
        return _code_value(self.code)

    @property
    def label(self) -> str:
        if self.flags.get("label"): return self.flags["label"]
        path = self.path
        if self.prefs is not None and self.prefs.error_label == "key" and len(path) > 1: path = path[-1:]
        return format_path(path) or "value"

    @property
    def context(self) -> dict:
        context = dict(self.local)
        context["label"] = self.label
        if self.value is not UNDEFINED and "value" not in context: context["value"] = self.value
        if self.path and "key" not in context: context["key"] = self.path[-1]
        return context

    def render(self) -> str:
        from .messages import DEFAULT_RENDERER, render_template

        context = self.context
        template = self.template
        if template is None and self.prefs is not None: template = self.prefs.messages.get(self.type)
        if template is not None: return render_template(template, context)
        renderer = self.prefs.renderer if self.prefs is not None and self.prefs.renderer is not None else DEFAULT_RENDERER
        return renderer.render(self.type, context, self.path)

    def to_detail(self) -> ErrorDetail:
        context = {k: v for k, v in self.context.items() if v is not UNDEFINED}
        return ErrorDetail(message=self.render(), path=list(self.path), type=self.type, context=context)


class ReportList(list):
    """Several reports returned by one rule."""


def as_reports(result: Any) -> list[Report] | None:
    """Normalize a rule/base-check return into a report list (None when it is a value)."""
    if isinstance(result, Report): return [result]
    if isinstance(result, ReportList): return list(result)
    return None


@dataclass(frozen=True, slots=True)
class ErrorDetail:
    """Rendered failure exposed to callers."""
    message: str
    path: list
    type: str
    context: dict = field(default_factory=dict)

    @property
    def field_path(self) -> str:
        return format_path(self.path) or "$"

    def to_dict(self) -> dict[str, Any]:
        context = {k: v for k, v in self.context.items() if _jsonable(v)}
        return {"message": self.message, "path": list(self.path), "type": self.type, "context": context}


def _jsonable(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool, list, dict))


@dataclass
class ValidationError(Exception):
    """Validation failure with ordered details."""
    message: str
    details: list[ErrorDetail]
    original: Any = None

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def field_errors(self) -> dict[str, list[ErrorDetail]]:
        """Group errors by field path."""
        result: dict[str, list[ErrorDetail]] = {}
        for detail in self.details: result.setdefault(detail.field_path, []).append(detail)
        return result

    @property
    def first_error(self) -> ErrorDetail | None: return self.details[0] if self.details else None

    def to_app_error(self) -> AppError:
        """Convert to AppError for Result-based boundaries."""
        first = self.details[0] if self.details else None
        code = ErrorCode(first.type) if first and first.type in ErrorCode._value2member_map_ else ErrorCode.ANY_CUSTOM
        return AppError(code=code, message=self.message, origin="validate",
            metadata={"error_count": len(self.details), "errors": [d.to_dict() for d in self.details]})

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"type": "validation_error", "message": self.message,
            "error_count": len(self.details), "errors": [d.to_dict() for d in self.details]}}


def process(reports: Iterable[Report], original: Any) -> ValidationError | None:
    """Render reports into a ValidationError."""
    details = [report.to_detail() for report in reports]
    if not details: return None
    return ValidationError(message=". ".join(d.message for d in details), details=details, original=original)


# ============================================================================
# Accumulators
# ============================================================================

class ReportAccumulator(ABC):
    """Abstract base for error accumulation strategies."""

    @abstractmethod
    def add(self, reports: Report | Iterable[Report]) -> bool:
        """Add reports. Returns True if validation should continue."""

    @property
    @abstractmethod
    def errors(self) -> list[Report]:
        """Accumulated reports."""


@dataclass
class FailFastAccumulator(ReportAccumulator):
    """Keeps the first failure and asks the caller to stop."""
    _errors: list[Report] = field(default_factory=list)

    def add(self, reports: Report | Iterable[Report]) -> bool:
        reports = [reports] if isinstance(reports, Report) else list(reports)
        if not reports: return True
        if not self._errors: self._errors = reports
        return False

    @property
    def errors(self) -> list[Report]: return list(self._errors)


@dataclass
class CollectAllAccumulator(ReportAccumulator):
    """Gathers every failure in order."""
    _errors: list[Report] = field(default_factory=list)

    def add(self, reports: Report | Iterable[Report]) -> bool:
        if isinstance(reports, Report): self._errors.append(reports)
        else: self._errors.extend(reports)
        return True

    @property
    def errors(self) -> list[Report]: return list(self._errors)


def create_accumulator(abort_early: bool, initial: Iterable[Report] = ()) -> ReportAccumulator:
    """Factory for creating accumulators based on the abort_early preference."""
    accumulator = FailFastAccumulator() if abort_early else CollectAllAccumulator()
    initial = list(initial)
    if initial: accumulator.add(initial)
    return accumulator
