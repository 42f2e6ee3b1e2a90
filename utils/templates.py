from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Dict, List, Optional

from db.database import transaction
from models.template import TemplateSubmission
from utils.auth import Identity, require_identity
from utils.errors import Forbidden, NotFound, StorageError, ValidationError
from utils.sync import OPTION_LEVEL, PHASE_LEVEL, SyncStats, read_child_ids, reconcile_children, renumber, sync_options
from utils.validation import (
    DEFAULT_CATEGORY,
    apply_ai_generation_default,
    check_template,
    decode_default_value,
    encode_complexity,
)

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(action: str):
    """Re-raise sqlite3 failures as StorageError."""
    try:
        yield
    except sqlite3.Error as exc:
        logger.exception("Database error while trying to %s", action)
        raise StorageError(f"Failed to {action}") from exc


# --- reads --------------------------------------------------------------------


def _placeholders(values) -> str:
    return ",".join("?" for _ in values)


def _load_json(text: Optional[str]):
    if not text:
        return None
    return json.loads(text)


def _metric_dict(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"] or "",
        "type": row["metric_type"],
        "defaultValue": decode_default_value(row["metric_type"], row["default_value"]),
        "min": row["min_value"],
        "max": row["max_value"],
        "sequenceNumber": row["sequence_number"],
    }


def _phase_dict(row) -> dict:
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"] or "",
        "icon": row["icon"],
        "color": row["color"],
        "backgroundColor": row["background_color"],
        "sequenceNumber": row["sequence_number"],
        "aiContentGeneration": _load_json(row["ai_generation"]),
        "metrics": [],
    }


def _option_dict(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"] or "",
        "phases": [],
    }


def _template_dict(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "description": row["description"],
        "icon": row["icon"],
        "category": row["category"],
        "isDefault": bool(row["is_default"]),
        "isActive": bool(row["is_active"]),
        "createdBy": row["created_by"],
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
        "complexityLevels": _load_json(row["complexity_levels"]),
        "options": [],
    }


def load_phases(conn, option_ids: List[int]) -> Dict[int, List[dict]]:
    """Phases with their metrics for each option id, in sequence order."""
    phases_by_option: Dict[int, List[dict]] = {option_id: [] for option_id in option_ids}
    if not option_ids:
        return phases_by_option
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT * FROM learning_phases
        WHERE option_id IN ({_placeholders(option_ids)})
        ORDER BY option_id, sequence_number, id
        """,
        option_ids,
    )
    phases_by_id: Dict[int, dict] = {}
    for row in cursor.fetchall():
        phase = _phase_dict(row)
        phases_by_id[row["id"]] = phase
        phases_by_option[row["option_id"]].append(phase)
    if not phases_by_id:
        return phases_by_option
    phase_ids = list(phases_by_id)
    cursor.execute(
        f"""
        SELECT * FROM phase_metrics
        WHERE phase_id IN ({_placeholders(phase_ids)})
        ORDER BY phase_id, sequence_number, id
        """,
        phase_ids,
    )
    for row in cursor.fetchall():
        phases_by_id[row["phase_id"]]["metrics"].append(_metric_dict(row))
    return phases_by_option


def _attach_options(conn, templates: List[dict]) -> List[dict]:
    if not templates:
        return templates
    by_id = {template["id"]: template for template in templates}
    template_ids = list(by_id)
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT * FROM learning_options
        WHERE template_id IN ({_placeholders(template_ids)})
        ORDER BY name, id
        """,
        template_ids,
    )
    options = []
    for row in cursor.fetchall():
        option = _option_dict(row)
        options.append(option)
        by_id[row["template_id"]]["options"].append(option)
    phases = load_phases(conn, [option["id"] for option in options])
    for option in options:
        option["phases"] = phases[option["id"]]
    return templates


def list_templates(conn, include_inactive: bool = False) -> List[dict]:
    where = "" if include_inactive else "WHERE is_active = 1"
    with storage_errors("fetch learning templates"):
        cursor = conn.cursor()
        cursor.execute(f"SELECT * FROM learning_templates {where} ORDER BY is_default DESC, name ASC, id ASC")
        templates = [_template_dict(row) for row in cursor.fetchall()]
        return _attach_options(conn, templates)


def _fetch_template_row(conn, template_id: int):
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM learning_templates WHERE id = ?", (template_id,))
    return cursor.fetchone()


def get_template(conn, template_id: int) -> dict:
    with storage_errors("fetch learning template"):
        row = _fetch_template_row(conn, template_id)
        if not row:
            raise NotFound("Template not found")
        return _attach_options(conn, [_template_dict(row)])[0]


# --- writes -------------------------------------------------------------------


def insert_template(
    conn,
    submission: TemplateSubmission,
    *,
    created_by: Optional[int] = None,
    is_default: bool = False,
    category: Optional[str] = None,
) -> int:
    """Insert a validated template and its whole tree; the caller owns the transaction."""
    apply_ai_generation_default(submission)
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO learning_templates
            (name, description, icon, category, is_default, is_active, complexity_levels, created_by)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            submission.name.strip(),
            submission.description.strip(),
            submission.icon,
            category or submission.category or DEFAULT_CATEGORY,
            1 if is_default else 0,
            0 if submission.is_active is False else 1,
            encode_complexity(submission.complexity_levels),
            created_by,
        ),
    )
    template_id = cursor.lastrowid
    stats = reconcile_children(conn, template_id, [], submission.options or [], OPTION_LEVEL)
    logger.info("Template %s created: %s", template_id, stats.summary())
    return template_id


def create_template(conn, submission: TemplateSubmission, identity: Optional[Identity]) -> dict:
    identity = require_identity(identity)
    check_template(submission)
    with storage_errors("create learning template"):
        with transaction(conn):
            template_id = insert_template(conn, submission, created_by=identity.user_id)
    return get_template(conn, template_id)


def _check_can_modify(row, identity: Identity) -> None:
    if row["is_default"] and not identity.is_admin:
        raise Forbidden("Not authorized to modify default templates")


def update_template(conn, template_id: int, submission: TemplateSubmission, identity: Optional[Identity]) -> dict:
    """Overwrite a template's fields and reconcile its options, phases and metrics.

    Omitted isActive / category keep the stored values. complexityLevels is
    only touched when present in the submission. isDefault is never written.
    """
    identity = require_identity(identity)
    with storage_errors("update learning template"):
        with transaction(conn):
            row = _fetch_template_row(conn, template_id)
            if not row:
                raise NotFound("Template not found")
            _check_can_modify(row, identity)
            check_template(submission)
            apply_ai_generation_default(submission)

            complexity = row["complexity_levels"]
            if "complexity_levels" in submission.model_fields_set:
                complexity = encode_complexity(submission.complexity_levels)
            is_active = row["is_active"] if submission.is_active is None else int(submission.is_active)
            conn.execute(
                """
                UPDATE learning_templates
                SET name = ?, description = ?, icon = ?, category = ?, is_active = ?,
                    complexity_levels = ?, updated_at = datetime('now')
                WHERE id = ?
                """,
                (
                    submission.name.strip(),
                    submission.description.strip(),
                    submission.icon,
                    submission.category or row["category"],
                    is_active,
                    complexity,
                    template_id,
                ),
            )
            if submission.options is not None:
                sync_options(conn, template_id, submission.options, SyncStats())
    return get_template(conn, template_id)


def delete_template(conn, template_id: int, identity: Optional[Identity]) -> dict:
    require_identity(identity)
    with storage_errors("delete learning template"):
        with transaction(conn):
            row = _fetch_template_row(conn, template_id)
            if not row:
                raise NotFound("Template not found")
            if row["is_default"]:
                raise Forbidden("Default templates cannot be deleted")
            conn.execute("DELETE FROM learning_templates WHERE id = ?", (template_id,))
    logger.info("Template %s deleted", template_id)
    return {"success": True}


def reorder_phase(conn, option_id: int, phase_id: int, direction: str, identity: Optional[Identity]) -> dict:
    """Swap a phase with its neighbour and renumber the option's phases 1..N."""
    identity = require_identity(identity)
    if direction not in ("up", "down"):
        raise ValidationError("direction must be 'up' or 'down'", "direction")
    with storage_errors("reorder learning phases"):
        with transaction(conn):
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT t.is_default
                FROM learning_options o
                JOIN learning_templates t ON t.id = o.template_id
                WHERE o.id = ?
                """,
                (option_id,),
            )
            row = cursor.fetchone()
            if not row:
                raise NotFound("Option not found")
            _check_can_modify(row, identity)
            phase_ids = read_child_ids(conn, PHASE_LEVEL, option_id)
            if phase_id not in phase_ids:
                raise NotFound("Phase not found")
            index = phase_ids.index(phase_id)
            target = index - 1 if direction == "up" else index + 1
            if 0 <= target < len(phase_ids):
                phase_ids[index], phase_ids[target] = phase_ids[target], phase_ids[index]
            renumber(conn, PHASE_LEVEL, phase_ids)
        phases = load_phases(conn, [option_id])[option_id]
    return {"success": True, "optionId": option_id, "phases": phases}
