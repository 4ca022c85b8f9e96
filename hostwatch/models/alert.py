from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, model_validator


class AlertLevel(StrEnum):
    OK = "ok"
    WARN = "warn"
    CRIT = "crit"


class AlertThreshold(BaseModel):
    """Percent-used bands for a resource. Each band includes its lower bound."""

    warn_percent: float = 80.0
    crit_percent: float = 90.0

    @model_validator(mode="after")
    def _check_order(self) -> AlertThreshold:
        if self.warn_percent >= self.crit_percent:
            raise ValueError("warn_percent must be lower than crit_percent")
        return self

    def classify(self, percent: float) -> AlertLevel:
        if percent >= self.crit_percent:
            return AlertLevel.CRIT
        if percent >= self.warn_percent:
            return AlertLevel.WARN
        return AlertLevel.OK
