from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ApiMetric = Literal["confirmed", "active", "recovered", "deceased"]
ApiEventType = Literal["mouseenter", "mouseleave", "touchstart", "click", "click_outside"]


class ApiViewport(BaseModel):
    width: float = Field(gt=0.0)
    height: float = Field(gt=0.0)


class ApiAggregate(BaseModel):
    max: float = 0.0
    total: float = 0.0


class ApiRenderRequest(BaseModel):
    map: str
    view: Literal["states", "districts"] | None = None
    stat: Literal["total", "zone"] = "total"
    metric: ApiMetric = "confirmed"
    # state -> metrics | district -> metrics | district -> zone label
    data: dict[str, dict[str, Any]] = Field(default_factory=dict)
    aggregates: dict[str, ApiAggregate] = Field(default_factory=dict)
    viewport: ApiViewport | None = None


class ApiEvent(BaseModel):
    type: ApiEventType
    featureId: str | None = None


class ApiRegion(BaseModel):
    state: str
    district: str | None = None
