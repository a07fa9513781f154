# Domain Package
from .models import Card, ImportResult, StageView
from .schedule import (
    StageStatus,
    classify_stage,
    generate_schedule,
    is_due,
    resolve_next_due,
    stage_label,
)

__all__ = [
    "Card",
    "ImportResult",
    "StageView",
    "StageStatus",
    "classify_stage",
    "generate_schedule",
    "is_due",
    "resolve_next_due",
    "stage_label",
]
