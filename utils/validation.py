from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from models.template import (
    AIContentGeneration,
    MetricSubmission,
    OptionSubmission,
    PhaseSubmission,
    TemplateSubmission,
    persisted_id,
)
from utils.errors import ValidationError

TEMPLATE_CATEGORIES = ("reading", "problem-solving", "lecture")
COMPLEXITY_LEVELS = ("easy", "medium", "hard")
METRIC_TYPES = ("percentage", "time", "count", "rating", "text")
NUMERIC_METRIC_TYPES = ("percentage", "count", "rating")
RANGED_METRIC_TYPES = ("percentage", "rating")

DEFAULT_CATEGORY = "reading"
DEFAULT_PHASE_ICON = "brain"
DEFAULT_PHASE_COLOR = "rgba(98, 102, 241, 1)"
DEFAULT_PHASE_BACKGROUND = "rgba(98, 102, 241, 0.1)"


@dataclass(frozen=True)
class Violation:
    message: str
    field: str

    def to_error(self) -> ValidationError:
        return ValidationError(self.message, self.field)


def _blank(value) -> bool:
    return value is None or not str(value).strip()


def _is_number(value) -> bool:
    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return False
    # nan / inf cannot be written back out as JSON
    return math.isfinite(number)


def validate_template(template: TemplateSubmission, *, strict: bool = False) -> Optional[Violation]:
    """Return the first field violation in document order, or None when the tree is valid.

    `strict` adds the bulk upload rules: every option needs a phase, every
    phase a metric, and phase display fields may not be left to defaults.
    """
    for violation in _template_violations(template, strict):
        return violation
    return None


def check_template(template: TemplateSubmission, *, strict: bool = False) -> None:
    """Raise ValidationError for the first violation found."""
    violation = validate_template(template, strict=strict)
    if violation:
        raise violation.to_error()


def _template_violations(template: TemplateSubmission, strict: bool) -> Iterator[Violation]:
    if _blank(template.name):
        yield Violation("Template name is required", "name")
    if _blank(template.description):
        yield Violation("Template description is required", "description")
    if _blank(template.icon):
        yield Violation("Template icon is required", "icon")
    if template.category is not None and template.category not in TEMPLATE_CATEGORIES:
        yield Violation(
            f'Invalid template category "{template.category}". '
            f"Must be one of: {', '.join(TEMPLATE_CATEGORIES)}",
            "category",
        )
    for level, config in (template.complexity_levels or {}).items():
        path = f"complexityLevels.{level}"
        if level not in COMPLEXITY_LEVELS:
            yield Violation(
                f'Invalid complexity level "{level}". Must be one of: {", ".join(COMPLEXITY_LEVELS)}',
                path,
            )
            continue
        if config is None:
            continue
        if _blank(config.name) or _blank(config.description) or _blank(config.ai_prompt):
            yield Violation(f'Complexity level "{level}" must have name, description, and aiPrompt', path)
        accuracy = config.target_accuracy
        if accuracy is None or not 0 <= accuracy <= 100:
            yield Violation(
                f'Complexity level "{level}" targetAccuracy must be a number between 0 and 100',
                f"{path}.targetAccuracy",
            )
    if template.ai_content_generation is not None:
        yield from _ai_violations(template.ai_content_generation, "aiContentGeneration")

    options = template.options or []
    if strict and not options:
        yield Violation("Template must have at least one option", "options")
    seen: set = set()
    for index, option in enumerate(options):
        path = f"options[{index}]"
        yield from _duplicate_violation(option.id, seen, path, "option")
        yield from _option_violations(option, index, path, strict)


def _duplicate_violation(node_id, seen: set, path: str, label: str) -> Iterator[Violation]:
    stored_id = persisted_id(node_id)
    if stored_id is None:
        return
    if stored_id in seen:
        yield Violation(f"Duplicate {label} id {stored_id} in submission", f"{path}.id")
    seen.add(stored_id)


def _option_violations(option: OptionSubmission, index: int, path: str, strict: bool) -> Iterator[Violation]:
    if _blank(option.name):
        yield Violation(f"Option {index + 1}: name is required", f"{path}.name")
    phases = option.phases or []
    if strict and not phases:
        yield Violation(f'Option "{option.name}": must have at least one phase', f"{path}.phases")
    seen: set = set()
    for phase_index, phase in enumerate(phases):
        phase_path = f"{path}.phases[{phase_index}]"
        yield from _duplicate_violation(phase.id, seen, phase_path, "phase")
        yield from _phase_violations(option, phase, phase_index, phase_path, strict)


def _phase_violations(
    option: OptionSubmission,
    phase: PhaseSubmission,
    index: int,
    path: str,
    strict: bool,
) -> Iterator[Violation]:
    if _blank(phase.title):
        yield Violation(f'Option "{option.name}", Phase {index + 1}: title is required', f"{path}.title")
    if strict:
        if _blank(phase.icon):
            yield Violation(f'Phase "{phase.title}": icon is required', f"{path}.icon")
        if _blank(phase.color):
            yield Violation(f'Phase "{phase.title}": color is required', f"{path}.color")
        if _blank(phase.background_color):
            yield Violation(f'Phase "{phase.title}": backgroundColor is required', f"{path}.backgroundColor")
    if phase.sequence_number is not None and phase.sequence_number < 1:
        yield Violation(f'Phase "{phase.title}": sequenceNumber must be 1 or greater', f"{path}.sequenceNumber")
    if phase.ai_content_generation is not None:
        yield from _ai_violations(phase.ai_content_generation, f"{path}.aiContentGeneration")
    metrics = phase.metrics or []
    if strict and not metrics:
        yield Violation(f'Phase "{phase.title}": must have at least one metric', f"{path}.metrics")
    seen: set = set()
    for metric_index, metric in enumerate(metrics):
        metric_path = f"{path}.metrics[{metric_index}]"
        yield from _duplicate_violation(metric.id, seen, metric_path, "metric")
        yield from _metric_violations(phase, metric, metric_index, metric_path)


def _metric_violations(phase: PhaseSubmission, metric: MetricSubmission, index: int, path: str) -> Iterator[Violation]:
    if _blank(metric.name):
        yield Violation(f'Phase "{phase.title}", Metric {index + 1}: name is required', f"{path}.name")
    if _blank(metric.type):
        yield Violation(f'Metric "{metric.name}": type is required', f"{path}.type")
        return
    if metric.type not in METRIC_TYPES:
        yield Violation(f'Metric "{metric.name}": invalid type "{metric.type}"', f"{path}.type")
        return
    if metric.type in NUMERIC_METRIC_TYPES and metric.default_value is not None:
        if not _is_number(metric.default_value):
            yield Violation(
                f'Metric "{metric.name}": defaultValue must be a number for {metric.type} metrics',
                f"{path}.defaultValue",
            )
    if metric.type in RANGED_METRIC_TYPES and metric.min is not None and metric.max is not None:
        if metric.min >= metric.max:
            yield Violation(f'Metric "{metric.name}": min must be less than max', f"{path}.min")
    if metric.sequence_number is not None and metric.sequence_number < 1:
        yield Violation(f'Metric "{metric.name}": sequenceNumber must be 1 or greater', f"{path}.sequenceNumber")


def _ai_violations(config: AIContentGeneration, path: str) -> Iterator[Violation]:
    if _blank(config.base_prompt):
        yield Violation(
            'AI content generation "basePrompt" is required and must be a string',
            f"{path}.basePrompt",
        )
    for index, capability in enumerate(config.capabilities):
        if _blank(capability):
            yield Violation("AI content generation capabilities cannot be empty", f"{path}.capabilities[{index}]")


# --- defaulting rules -------------------------------------------------------


def order_by_sequence(children: Sequence) -> List:
    """Order siblings by explicit sequence number (position when absent), ties by submission order.

    Callers number the result densely 1..N.
    """
    keyed = [
        (child.sequence_number if child.sequence_number is not None else position, position, child)
        for position, child in enumerate(children, 1)
    ]
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [child for _, _, child in keyed]


def format_number(value) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def parse_number(text: str):
    number = float(text)
    if number.is_integer():
        return int(number)
    return number


def encode_default_value(metric_type: str, value) -> Optional[str]:
    if value is None:
        return None
    if metric_type in NUMERIC_METRIC_TYPES:
        return format_number(value)
    return str(value)


def decode_default_value(metric_type: str, stored: Optional[str]):
    if stored is None:
        return None
    if metric_type in NUMERIC_METRIC_TYPES:
        try:
            return parse_number(stored)
        except ValueError:
            return stored
    return stored


def _text_or_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def phase_fields(phase: PhaseSubmission, sequence_number: int) -> dict:
    ai_config = phase.ai_content_generation
    return {
        "title": phase.title.strip(),
        "description": _text_or_none(phase.description),
        "icon": phase.icon or DEFAULT_PHASE_ICON,
        "color": phase.color or DEFAULT_PHASE_COLOR,
        "background_color": phase.background_color or DEFAULT_PHASE_BACKGROUND,
        "sequence_number": sequence_number,
        "ai_generation": encode_ai_generation(ai_config),
    }


def metric_fields(metric: MetricSubmission, sequence_number: int) -> dict:
    ranged = metric.type in RANGED_METRIC_TYPES
    return {
        "name": metric.name.strip(),
        "description": _text_or_none(metric.description),
        "metric_type": metric.type,
        "default_value": encode_default_value(metric.type, metric.default_value),
        "min_value": metric.min if ranged else None,
        "max_value": metric.max if ranged else None,
        "sequence_number": sequence_number,
    }


def option_fields(option: OptionSubmission) -> dict:
    return {
        "name": option.name.strip(),
        "description": _text_or_none(option.description),
    }


def encode_ai_generation(config: Optional[AIContentGeneration]) -> Optional[str]:
    if config is None:
        return None
    return json.dumps(
        {
            "enabled": config.enabled,
            "capabilities": list(config.capabilities),
            "basePrompt": config.base_prompt,
        }
    )


def encode_complexity(levels) -> Optional[str]:
    if not levels:
        return None
    payload = {}
    for level in COMPLEXITY_LEVELS:
        config = levels.get(level)
        if config is None:
            continue
        payload[level] = {
            "name": config.name,
            "description": config.description,
            "targetAccuracy": parse_number(format_number(config.target_accuracy)),
            "aiPrompt": config.ai_prompt,
        }
    return json.dumps(payload) if payload else None


def apply_ai_generation_default(template: TemplateSubmission) -> None:
    """Give phases without their own AI configuration the template-level one."""
    default = template.ai_content_generation
    if default is None:
        return
    for option in template.options or []:
        for phase in option.phases or []:
            if phase.ai_content_generation is None:
                phase.ai_content_generation = default.model_copy(deep=True)
