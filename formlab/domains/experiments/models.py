"""Pydantic models for form A/B tests.

Attributes are snake_case; the serialized (wire) form is camelCase so the
records can be handed to storage and UI collaborators unchanged.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ABTestStatus(StrEnum):
    DRAFT = "draft"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class AssignmentStrategy(StrEnum):
    RANDOM = "random"
    USER_HASH = "user_hash"


class GoalType(StrEnum):
    CONVERSION = "conversion"
    COMPLETION_RATE = "completion_rate"
    TIME_ON_FORM = "time_on_form"
    DROP_OFF_RATE = "drop_off_rate"
    CUSTOM_EVENT = "custom_event"


class ModificationOperation(StrEnum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"
    REPLACE = "replace"


class ContentSlot(StrEnum):
    NAME = "name"
    DESCRIPTION = "description"
    SUBMIT_BUTTON_TEXT = "submitButtonText"
    SUCCESS_MESSAGE = "successMessage"


# ---------------------------------------------------------------------------
# Modifications
# ---------------------------------------------------------------------------


class _ModificationBase(_CamelModel):
    target: str = ""
    operation: ModificationOperation = ModificationOperation.UPDATE
    # Kept for rollback tooling; nothing in the engine reads it.
    original_value: Any = None


class FieldModification(_ModificationBase):
    """Patch against the document's field list, keyed by field id."""

    type: Literal["field"] = "field"
    value: dict[str, Any] | None = None


class StyleModification(_ModificationBase):
    """Patch against the styling tree; ``target`` is a dotted path."""

    type: Literal["style"] = "style"
    value: Any = None


class ContentModification(_ModificationBase):
    """Replacement text for a named document slot (see ``ContentSlot``)."""

    type: Literal["content"] = "content"
    value: str | None = None


class LayoutModification(_ModificationBase):
    """Positional per-field widths; only the ``columns`` target is supported."""

    type: Literal["layout"] = "layout"
    value: list[Any] = Field(default_factory=list)


Modification = Annotated[
    FieldModification | StyleModification | ContentModification | LayoutModification,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Test definition
# ---------------------------------------------------------------------------


class ABTestGoal(_CamelModel):
    type: GoalType
    value: float | None = None
    event: str | None = None


class TargetAudience(_CamelModel):
    criteria: list[str] = Field(default_factory=list)
    percentage: float | None = None


class ABTestVariant(_CamelModel):
    id: str
    name: str
    form_id: str = ""
    modifications: list[Modification] = Field(default_factory=list)
    weight: float = 0.0  # display copy of the matching traffic_split entry


class ABTestResult(_CamelModel):
    variant_id: str
    submissions: int = 0
    conversions: int = 0
    completion_rate: float = 0.0  # percent
    average_time: float = 0.0  # seconds
    drop_off_rate: float = 0.0  # percent
    custom_metrics: dict[str, float] | None = None


class MetricsUpdate(_CamelModel):
    """Partial metrics reported by the caller for one variant."""

    submissions: int | None = Field(default=None, ge=0)
    conversions: int | None = Field(default=None, ge=0)
    average_time: float | None = None
    drop_off_rate: float | None = None
    custom_metrics: dict[str, float] | None = None


class CreateABTestRequest(_CamelModel):
    name: str
    description: str = ""
    hypothesis: str = ""
    form_id: str = ""
    variants: list[ABTestVariant] = Field(min_length=1)
    traffic_split: list[float]
    target_audience: TargetAudience | None = None
    goals: list[ABTestGoal] = Field(default_factory=list)


class ABTest(_CamelModel):
    id: str
    name: str
    description: str = ""
    hypothesis: str = ""
    form_id: str = ""
    status: ABTestStatus = ABTestStatus.DRAFT
    variants: list[ABTestVariant] = Field(default_factory=list)
    traffic_split: list[float] = Field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None
    target_audience: TargetAudience | None = None
    goals: list[ABTestGoal] = Field(default_factory=list)
    results: list[ABTestResult] | None = None
    winner: str | None = None
    confidence: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def variant(self, variant_id: str) -> ABTestVariant | None:
        return next((v for v in self.variants if v.id == variant_id), None)

    def result(self, variant_id: str) -> ABTestResult | None:
        return next((r for r in self.results or [] if r.variant_id == variant_id), None)


class SignificanceResult(BaseModel):
    """Outcome of a control-vs-treatment two-proportion z-test."""

    control_variant: str
    treatment_variant: str
    control_rate: float
    treatment_rate: float
    pooled_rate: float
    standard_error: float
    z_score: float
    p_value: float
    confidence: float
    control_sample_size: int
    treatment_sample_size: int
