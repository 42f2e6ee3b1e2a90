from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union

# Client-side ids for nodes that do not exist yet, e.g. "temp-1718040000000"
PLACEHOLDER_PREFIX = "temp-"

NodeId = Optional[Union[int, str]]


def is_placeholder_id(node_id: NodeId) -> bool:
    return isinstance(node_id, str) and node_id.startswith(PLACEHOLDER_PREFIX)


def persisted_id(node_id: NodeId) -> Optional[int]:
    """Return the stored row id a submitted node refers to, or None for new nodes."""
    if node_id is None or isinstance(node_id, bool) or is_placeholder_id(node_id):
        return None
    if isinstance(node_id, int):
        return node_id
    text = node_id.strip()
    if text.isascii() and text.isdigit():
        return int(text)
    return None


class SubmissionModel(BaseModel):
    class Config:
        populate_by_name = True
        extra = "forbid"


class ComplexityLevel(SubmissionModel):
    name: Optional[str] = None
    description: Optional[str] = None
    target_accuracy: Optional[float] = Field(None, alias="targetAccuracy", allow_inf_nan=False)
    ai_prompt: Optional[str] = Field(None, alias="aiPrompt")


class AIContentGeneration(SubmissionModel):
    enabled: bool = False
    capabilities: List[str] = Field(default_factory=list)
    base_prompt: Optional[str] = Field(None, alias="basePrompt")


class MetricSubmission(SubmissionModel):
    id: NodeId = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    default_value: Optional[Union[int, float, str]] = Field(None, alias="defaultValue")
    min: Optional[float] = Field(None, allow_inf_nan=False)
    max: Optional[float] = Field(None, allow_inf_nan=False)
    sequence_number: Optional[int] = Field(None, alias="sequenceNumber")


class PhaseSubmission(SubmissionModel):
    id: NodeId = None
    title: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    background_color: Optional[str] = Field(
        None, validation_alias=AliasChoices("backgroundColor", "background_color")
    )
    sequence_number: Optional[int] = Field(None, alias="sequenceNumber")
    ai_content_generation: Optional[AIContentGeneration] = Field(None, alias="aiContentGeneration")
    metrics: Optional[List[MetricSubmission]] = None


class OptionSubmission(SubmissionModel):
    id: NodeId = None
    name: Optional[str] = None
    description: Optional[str] = None
    phases: Optional[List[PhaseSubmission]] = None


class TemplateSubmission(SubmissionModel):
    """A whole template tree as sent by the editor or a bulk upload file.

    Read-only fields of the fetched representation (isDefault, createdBy,
    timestamps) are accepted so a fetched template can be sent back as is,
    but they are never written.
    """

    id: NodeId = None
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    category: Optional[str] = Field(
        None, validation_alias=AliasChoices("category", "templateCategory")
    )
    is_active: Optional[bool] = Field(None, alias="isActive")
    is_default: Optional[bool] = Field(None, alias="isDefault")
    created_by: Optional[int] = Field(None, alias="createdBy")
    created_at: Optional[str] = Field(None, alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")
    complexity_levels: Optional[Dict[str, Optional[ComplexityLevel]]] = Field(None, alias="complexityLevels")
    ai_content_generation: Optional[AIContentGeneration] = Field(None, alias="aiContentGeneration")
    options: Optional[List[OptionSubmission]] = None


class BulkUploadPayload(BaseModel):
    version: Optional[str] = None
    # Items stay raw so one malformed template fails alone instead of the batch
    templates: Optional[List[Any]] = None


class PhaseReorder(BaseModel):
    option_id: int = Field(alias="optionId")
    phase_id: int = Field(alias="phaseId")
    direction: Literal["up", "down"]

    class Config:
        populate_by_name = True
