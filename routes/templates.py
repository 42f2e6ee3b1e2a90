from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from config import load_config
from db.database import get_db
from models.template import BulkUploadPayload, TemplateSubmission
from utils.auth import Identity, get_identity
from utils.bulk_import import import_templates
from utils.complexity import recommend_complexity
from utils.errors import ValidationError
from utils.templates import (
    create_template,
    delete_template,
    get_template,
    list_templates,
    update_template,
)

router = APIRouter()


@router.get("")
async def list_learning_templates(
    include_inactive: bool = Query(False, alias="includeInactive"),
    conn=Depends(get_db),
):
    """All templates with their full trees, default templates first."""
    return list_templates(conn, include_inactive)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_learning_template(
    submission: TemplateSubmission,
    conn=Depends(get_db),
    identity: Optional[Identity] = Depends(get_identity),
):
    return create_template(conn, submission, identity)


@router.post("/bulk-upload")
async def bulk_upload_templates(
    payload: BulkUploadPayload,
    conn=Depends(get_db),
    identity: Optional[Identity] = Depends(get_identity),
):
    """Create many templates from an uploaded JSON file; each one succeeds or fails on its own."""
    if payload.templates is None:
        raise ValidationError('Invalid payload: "templates" array is required', "templates")
    if not payload.templates:
        raise ValidationError("No templates provided", "templates")
    bulk_cfg = load_config()["bulk_upload"]
    if len(payload.templates) > bulk_cfg["max_templates"]:
        raise ValidationError(
            f"Too many templates: at most {bulk_cfg['max_templates']} per upload",
            "templates",
        )
    report = import_templates(
        conn,
        payload.templates,
        identity,
        apply_default_complexity=bulk_cfg["apply_default_complexity"],
        apply_default_ai_generation=bulk_cfg["apply_default_ai_generation"],
    )
    status_code = status.HTTP_200_OK if report["summary"]["successful"] else status.HTTP_400_BAD_REQUEST
    return JSONResponse(report, status_code=status_code)


@router.get("/{template_id}")
async def get_learning_template(template_id: int, conn=Depends(get_db)):
    return get_template(conn, template_id)


@router.get("/{template_id}/recommended-complexity")
async def recommended_complexity(
    template_id: int,
    accuracy: Optional[float] = Query(None, ge=0, le=100),
    conn=Depends(get_db),
):
    template = get_template(conn, template_id)
    return {
        "templateId": template_id,
        "level": recommend_complexity(template["complexityLevels"], accuracy),
    }


@router.put("/{template_id}")
async def update_learning_template(
    template_id: int,
    submission: TemplateSubmission,
    conn=Depends(get_db),
    identity: Optional[Identity] = Depends(get_identity),
):
    """Make the stored template tree match the submitted one."""
    return update_template(conn, template_id, submission, identity)


@router.delete("/{template_id}")
async def delete_learning_template(
    template_id: int,
    conn=Depends(get_db),
    identity: Optional[Identity] = Depends(get_identity),
):
    return delete_template(conn, template_id, identity)
