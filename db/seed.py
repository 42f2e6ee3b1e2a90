"""Built-in default templates, inserted once into an empty database."""
import logging

from models.template import TemplateSubmission
from utils.templates import insert_template

from .database import transaction

logger = logging.getLogger(__name__)

INDIGO = ("rgba(98, 102, 241, 1)", "rgba(98, 102, 241, 0.1)")
PURPLE = ("rgba(139, 92, 246, 1)", "rgba(139, 92, 246, 0.1)")
PINK = ("rgba(236, 72, 153, 1)", "rgba(236, 72, 153, 0.1)")
CYAN = ("rgba(6, 182, 212, 1)", "rgba(6, 182, 212, 0.1)")
SKY = ("rgba(14, 165, 233, 1)", "rgba(14, 165, 233, 0.1)")
BLUE = ("rgba(2, 132, 199, 1)", "rgba(2, 132, 199, 0.1)")
ORANGE = ("rgba(249, 115, 22, 1)", "rgba(249, 115, 22, 0.1)")
AMBER = ("rgba(234, 88, 12, 1)", "rgba(234, 88, 12, 0.1)")
RED = ("rgba(217, 70, 0, 1)", "rgba(217, 70, 0, 0.1)")


def _phase(title, icon, colors, metrics):
    return {
        "title": title,
        "icon": icon,
        "color": colors[0],
        "backgroundColor": colors[1],
        "metrics": metrics,
    }


def _metric(name, metric_type, default=None, min_value=None, max_value=None):
    metric = {"name": name, "type": metric_type}
    if default is not None:
        metric["defaultValue"] = default
    if min_value is not None:
        metric["min"] = min_value
        metric["max"] = max_value
    return metric


DEFAULT_TEMPLATES = [
    {
        "name": "Problem Solving",
        "description": "Approach mathematical, scientific, or logical problems methodically",
        "icon": "math-compass",
        "category": "problem-solving",
        "options": [
            {
                "name": "3-Phase Approach",
                "description": "Break down problems into understanding, planning, and solving",
                "phases": [
                    _phase("Understanding", "brain", INDIGO, [
                        _metric("Time Spent", "time", 0),
                        _metric("Clarifying Questions", "count", 0),
                        _metric("Initial Confidence", "percentage", 50, 0, 100),
                    ]),
                    _phase("Planning", "lightbulb", PURPLE, [
                        _metric("Strategies Considered", "count", 0),
                        _metric("Plan Revisions", "count", 0),
                        _metric("Time Spent", "time", 0),
                    ]),
                    _phase("Solution", "check-circle", PINK, [
                        _metric("Accuracy", "percentage", 100),
                        _metric("Time to Solve", "time", 0),
                        _metric("Efficiency", "rating", 3, 1, 5),
                        _metric("Hints Used", "count", 0),
                        _metric("Errors Made", "count", 0),
                    ]),
                ],
            },
            {
                "name": "2-Phase Approach",
                "description": "Streamlined process with analysis and solution phases",
                "phases": [
                    _phase("Analysis", "magnify", INDIGO, [
                        _metric("Time Spent Analyzing", "time", 0),
                        _metric("Clarifying Questions", "count", 0),
                        _metric("Potential Approaches", "count", 0),
                        _metric("Initial Confidence", "percentage", 50),
                    ]),
                    _phase("Solution", "check-circle", PINK, [
                        _metric("Accuracy", "percentage", 100),
                        _metric("Time to Solve", "time", 0),
                        _metric("Efficiency", "rating", 3, 1, 5),
                        _metric("Mistakes Made", "count", 0),
                        _metric("Hints Used", "count", 0),
                    ]),
                ],
            },
        ],
    },
    {
        "name": "Book / PDF Reading",
        "description": "Structured approach to reading and annotating documents",
        "icon": "book-open-page-variant",
        "category": "reading",
        "options": [
            {
                "name": "3-Phase Reading",
                "description": "Preview, read & annotate, and reflect on reading material",
                "phases": [
                    _phase("Preview", "eye", CYAN, [
                        _metric("Skim Time", "time", 0),
                        _metric("Initial Questions", "count", 0),
                    ]),
                    _phase("Read & Annotate", "text-box-edit", SKY, [
                        _metric("Reading Time", "time", 0),
                        _metric("Annotations", "count", 0),
                        _metric("Sections Covered", "count", 0),
                    ]),
                    _phase("Reflect", "thought-bubble", BLUE, [
                        _metric("Summary Quality", "rating", 3, 1, 5),
                        _metric("Follow-up Questions", "count", 0),
                        _metric("Self-Assessed Understanding", "percentage", 50),
                    ]),
                ],
            },
            {
                "name": "2-Phase Reading",
                "description": "Skim and detailed reading approach",
                "phases": [
                    _phase("Skim", "fast-forward", CYAN, [
                        _metric("Skim Time", "time", 0),
                        _metric("Sections Previewed", "count", 0),
                        _metric("Initial Questions", "count", 0),
                    ]),
                    _phase("Detailed Read", "book-open-variant", SKY, [
                        _metric("Reading Time", "time", 0),
                        _metric("Annotations", "count", 0),
                        _metric("Completion Percentage", "percentage", 0),
                        _metric("Final Summary", "text"),
                    ]),
                ],
            },
        ],
    },
    {
        "name": "Recorded Lecture",
        "description": "Structured approach to watching and reviewing lecture videos",
        "icon": "video",
        "category": "lecture",
        "options": [
            {
                "name": "3-Phase Lecture",
                "description": "Preview, watch, and review recorded lectures",
                "phases": [
                    _phase("Preview", "clipboard-text", ORANGE, [
                        _metric("Preview Time", "time", 0),
                        _metric("Initial Questions", "count", 0),
                    ]),
                    _phase("Watch", "play-circle", AMBER, [
                        _metric("Watch Duration", "time", 0),
                        _metric("Completion Percentage", "percentage", 0),
                        _metric("Pauses/Rewinds", "count", 0),
                    ]),
                    _phase("Review", "note-text", RED, [
                        _metric("Summary Quality", "rating", 3, 1, 5),
                        _metric("Follow-up Questions", "count", 0),
                        _metric("Self-Assessed Clarity", "percentage", 50),
                    ]),
                ],
            },
            {
                "name": "2-Phase Lecture",
                "description": "Watch and reflect on recorded lectures",
                "phases": [
                    _phase("Watch", "play-circle", AMBER, [
                        _metric("Watch Time", "time", 0),
                        _metric("Rewinds", "count", 0),
                        _metric("Completion Percentage", "percentage", 0),
                    ]),
                    _phase("Reflect", "thought-bubble", RED, [
                        _metric("Summary Created", "text"),
                        _metric("Additional Questions", "count", 0),
                        _metric("Self-Assessed Clarity", "percentage", 50),
                    ]),
                ],
            },
        ],
    },
]


def seed_default_templates(conn) -> int:
    """Insert the built-in templates as default templates unless any default template exists."""
    cursor = conn.cursor()
    cursor.execute("SELECT COUNT(*) FROM learning_templates WHERE is_default = 1")
    if cursor.fetchone()[0]:
        return 0
    with transaction(conn):
        for template in DEFAULT_TEMPLATES:
            insert_template(conn, TemplateSubmission.model_validate(template), is_default=True)
    logger.info("Seeded %d default templates", len(DEFAULT_TEMPLATES))
    return len(DEFAULT_TEMPLATES)
