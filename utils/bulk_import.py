from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, List, Optional

import pydantic

from db.database import transaction
from models.template import AIContentGeneration, ComplexityLevel, TemplateSubmission
from utils.auth import Identity, require_identity
from utils.categories import infer_category
from utils.errors import LearnboardError
from utils.templates import insert_template
from utils.validation import validate_template

logger = logging.getLogger(__name__)

DEFAULT_COMPLEXITY_LEVELS = {
    "easy": {
        "name": "Basic Review",
        "description": "Fundamental concepts and first-order questions",
        "targetAccuracy": 75,
        "aiPrompt": "Generate basic content focusing on fundamental concepts and recall.",
    },
    "medium": {
        "name": "Standard Review",
        "description": "Clinical application with 2-step reasoning",
        "targetAccuracy": 65,
        "aiPrompt": "Generate intermediate content with clinical vignettes and application.",
    },
    "hard": {
        "name": "Advanced Review",
        "description": "Complex integration and atypical cases",
        "targetAccuracy": 55,
        "aiPrompt": "Generate advanced content with complex scenarios and edge cases.",
    },
}

DEFAULT_AI_CONTENT_GENERATION = {
    "enabled": True,
    "capabilities": [
        "generate_summaries",
        "create_practice_questions",
        "identify_key_concepts",
    ],
    "basePrompt": "You are an educational expert helping students learn effectively.",
}


@dataclass
class ImportResult:
    success: bool
    template_name: str
    template_id: Optional[int] = None
    error: Optional[str] = None
    detected_category: Optional[str] = None
    has_complexity: bool = False
    has_ai_generation: bool = False

    def to_dict(self) -> dict:
        result = {"success": self.success, "templateName": self.template_name}
        if self.success:
            result.update(
                templateId=self.template_id,
                detectedCategory=self.detected_category,
                hasComplexity=self.has_complexity,
                hasAIGeneration=self.has_ai_generation,
            )
        else:
            result["error"] = self.error
        return result


def _display_name(raw: Any, index: int) -> str:
    if isinstance(raw, dict):
        name = raw.get("name")
        if isinstance(name, str) and name.strip():
            return name
    return f"Template {index + 1}"


def _shape_error(exc: pydantic.ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid template")


def _uses_ai_generation(submission: TemplateSubmission) -> bool:
    if submission.ai_content_generation is not None:
        return True
    return any(
        phase.ai_content_generation is not None
        for option in submission.options or []
        for phase in option.phases or []
    )


def import_one(
    conn,
    raw: Any,
    index: int,
    identity: Identity,
    *,
    apply_default_complexity: bool = True,
    apply_default_ai_generation: bool = True,
) -> ImportResult:
    """Validate and create one template from a bulk upload; failures are returned, not raised."""
    name = _display_name(raw, index)
    if not isinstance(raw, dict):
        return ImportResult(False, name, error="Template must be a JSON object")
    try:
        submission = TemplateSubmission.model_validate(raw)
    except pydantic.ValidationError as exc:
        return ImportResult(False, name, error=_shape_error(exc))

    violation = validate_template(submission, strict=True)
    if violation:
        logger.warning("Bulk upload: template %r rejected: %s", name, violation.message)
        return ImportResult(False, name, error=violation.message)

    category = infer_category(submission.name, submission.description, submission.icon, submission.category)
    has_complexity = bool(submission.complexity_levels)
    has_ai_generation = _uses_ai_generation(submission)
    if not has_complexity and apply_default_complexity:
        submission.complexity_levels = {
            level: ComplexityLevel.model_validate(config)
            for level, config in DEFAULT_COMPLEXITY_LEVELS.items()
        }
    if not has_ai_generation and apply_default_ai_generation:
        submission.ai_content_generation = AIContentGeneration.model_validate(DEFAULT_AI_CONTENT_GENERATION)

    try:
        with transaction(conn):
            template_id = insert_template(conn, submission, created_by=identity.user_id, category=category)
    except (LearnboardError, sqlite3.Error) as exc:
        logger.error("Bulk upload: failed to create template %r: %s", name, exc)
        return ImportResult(False, name, error=f"Failed to create template: {exc}")

    logger.info("Bulk upload: created template %r with id %s (%s)", name, template_id, category)
    return ImportResult(
        True,
        name,
        template_id=template_id,
        detected_category=category,
        has_complexity=has_complexity,
        has_ai_generation=has_ai_generation,
    )


def import_templates(
    conn,
    raw_templates: List[Any],
    identity: Optional[Identity],
    *,
    apply_default_complexity: bool = True,
    apply_default_ai_generation: bool = True,
) -> dict:
    """Create every template in a batch independently and report each outcome in input order."""
    identity = require_identity(identity)
    logger.info("Bulk upload: processing %d templates", len(raw_templates))
    results = [
        import_one(
            conn,
            raw,
            index,
            identity,
            apply_default_complexity=apply_default_complexity,
            apply_default_ai_generation=apply_default_ai_generation,
        )
        for index, raw in enumerate(raw_templates)
    ]
    successful = sum(1 for result in results if result.success)
    failed = len(results) - successful
    logger.info("Bulk upload: completed, %d succeeded, %d failed", successful, failed)
    return {
        "message": f"Processed {len(results)} templates",
        "summary": {"total": len(results), "successful": successful, "failed": failed},
        "results": [result.to_dict() for result in results],
    }
