"""
Constraint records.

A constraint's ``parameters`` are a tagged union keyed by ``category``: each
category has its own typed parameter model, so an unknown category or a
parameter of the wrong shape is rejected when the record is built.

Examples:
    Constraint(id="c1", type="hard", category="temporal",
               parameters={"rule": "business_hours", "start": "09:00", "end": "17:00"})
    Constraint(id="c2", type="soft", category="time_preferences", weight=0.6,
               parameters={"start": "09:00", "end": "12:00"})
"""

from datetime import time
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class ConstraintType(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class ConstraintCategory(str, Enum):
    TEMPORAL = "temporal"
    CAPACITY = "capacity"
    DEPENDENCY = "dependency"
    BUSINESS_RULES = "business_rules"
    TIME_PREFERENCES = "time_preferences"
    RESOURCE_OPTIMIZATION = "resource_optimization"
    PERSONAL_PREFERENCES = "personal_preferences"
    BUSINESS_OPTIMIZATION = "business_optimization"


class _Parameters(BaseModel):
    # Empty means the constraint applies to every task.
    task_ids: List[str] = Field(default_factory=list)

    def applies_to(self, task_id: str) -> bool:
        return not self.task_ids or task_id in self.task_ids


class _DailyWindowMixin(BaseModel):
    start: time = time(9, 0)
    end: time = time(17, 0)

    @model_validator(mode="after")
    def check_window(self):
        if self.end <= self.start:
            raise ValueError("daily window must end after it starts")
        return self


class TemporalParameters(_DailyWindowMixin, _Parameters):
    category: Literal["temporal"] = "temporal"
    rule: Literal["no_overlap", "buffer_time", "business_hours"] = "no_overlap"
    resources: List[str] = Field(default_factory=list)
    duration: Optional[int] = Field(None, ge=0)  # buffer minutes


class CapacityParameters(_Parameters):
    category: Literal["capacity"] = "capacity"
    resource_id: Optional[str] = None
    max_count: int = Field(1, ge=0)


class DependencyParameters(_Parameters):
    category: Literal["dependency"] = "dependency"
    task_id: Optional[str] = None
    predecessor_id: Optional[str] = None

    @model_validator(mode="after")
    def check_pair(self):
        if (self.task_id is None) != (self.predecessor_id is None):
            raise ValueError("task_id and predecessor_id must be given together")
        return self


class BusinessRulesParameters(_DailyWindowMixin, _Parameters):
    category: Literal["business_rules"] = "business_rules"
    rule: Literal["business_hours", "max_consecutive_hours"] = "business_hours"
    max_hours: float = Field(4.0, gt=0)
    break_minutes: int = Field(30, ge=0)


class TimePreferencesParameters(_DailyWindowMixin, _Parameters):
    category: Literal["time_preferences"] = "time_preferences"
    days: List[int] = Field(default_factory=list)

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: List[int]):
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days must be in [0, 6] (0 = Sunday)")
        return v


class ResourceOptimizationParameters(_Parameters):
    category: Literal["resource_optimization"] = "resource_optimization"
    preferred_resources: List[str] = Field(default_factory=list)


class PersonalPreferencesParameters(_Parameters):
    category: Literal["personal_preferences"] = "personal_preferences"
    avoid_days: List[int] = Field(default_factory=list)
    avoid_start: Optional[time] = None
    avoid_end: Optional[time] = None

    @model_validator(mode="after")
    def check_avoid_window(self):
        if (self.avoid_start is None) != (self.avoid_end is None):
            raise ValueError("avoid_start and avoid_end must be given together")
        if self.avoid_start is not None and self.avoid_end <= self.avoid_start:
            raise ValueError("avoid window must end after it starts")
        return self


class BusinessOptimizationParameters(_Parameters):
    category: Literal["business_optimization"] = "business_optimization"
    max_gap_minutes: int = Field(60, ge=0)


ConstraintParameters = Annotated[
    Union[
        TemporalParameters,
        CapacityParameters,
        DependencyParameters,
        BusinessRulesParameters,
        TimePreferencesParameters,
        ResourceOptimizationParameters,
        PersonalPreferencesParameters,
        BusinessOptimizationParameters,
    ],
    Field(discriminator="category"),
]


class Constraint(BaseModel):
    id: str
    type: ConstraintType
    category: ConstraintCategory
    name: Optional[str] = None
    weight: float = Field(1.0, ge=0.0, le=1.0)  # hard constraints must keep 1.0
    priority: int = Field(5, ge=1, le=10)
    is_active: bool = True
    parameters: ConstraintParameters

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def tag_parameters(cls, data: Any):
        """Copy the record's category into its parameters so the union can dispatch."""
        if not isinstance(data, dict):
            return data
        category = data.get("category")
        if isinstance(category, Enum):
            category = category.value
        params = data.get("parameters")
        if params is None:
            params = {}
        if isinstance(params, dict):
            params = dict(params)
            params.setdefault("category", category)
            data = {**data, "parameters": params}
        return data

    @model_validator(mode="after")
    def check_category(self):
        if self.parameters.category != self.category.value:
            raise ValueError(
                f"parameters for category {self.parameters.category!r} "
                f"do not match constraint category {self.category.value!r}"
            )
        return self

    @property
    def is_hard(self) -> bool:
        return self.type == ConstraintType.HARD

    def applies_to(self, task_id: str) -> bool:
        return self.is_active and self.parameters.applies_to(task_id)
