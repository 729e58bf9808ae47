from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import Dict, List, Optional
from enum import Enum


class CacheDriftDirection(str, Enum):
    ADDED = "added"      # server has a booking the cache did not know about
    REMOVED = "removed"  # cache believed in a booking the server has no record of


class CacheChange(BaseModel):
    trip_date: date
    cached: bool
    server: bool
    direction: CacheDriftDirection


class ReconcileRequest(BaseModel):
    date_from: date
    date_to: date
    cache: Dict[date, bool] = Field(default_factory=dict, description="date -> has confirmed booking")
    timeout_seconds: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.date_to < self.date_from:
            raise ValueError("date_to must not be before date_from")
        return self


class ReconciliationResult(BaseModel):
    corrected_cache: Dict[date, bool]
    diff: List[CacheChange] = Field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.diff
