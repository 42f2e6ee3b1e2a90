from .template import (
    AIContentGeneration,
    BulkUploadPayload,
    ComplexityLevel,
    MetricSubmission,
    OptionSubmission,
    PhaseReorder,
    PhaseSubmission,
    TemplateSubmission,
)

__all__ = [
    'AIContentGeneration',
    'BulkUploadPayload',
    'ComplexityLevel',
    'MetricSubmission',
    'OptionSubmission',
    'PhaseReorder',
    'PhaseSubmission',
    'TemplateSubmission',
]
