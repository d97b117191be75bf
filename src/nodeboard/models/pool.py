"""Minipool record models produced by the report parser."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PoolRecord(BaseModel):
    """One minipool parsed from the backend text report.

    Flags are taken from the section header preceding the record and are
    never recomputed. Both false means the pool is staking/active.
    """

    model_config = ConfigDict(frozen=True)

    data: Dict[str, str] = Field(default_factory=dict)
    is_finalized: bool = False
    is_prelaunch: bool = False

    @model_validator(mode="after")
    def flags_exclusive(self):
        if self.is_finalized and self.is_prelaunch:
            raise ValueError("A pool record cannot be both finalized and prelaunch")
        return self

    def __getitem__(self, key: str) -> str:
        return self.data[key]

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.data.get(key, default)


class MinipoolSummary(BaseModel):
    """Aggregates shown on the node card."""

    count: int = 0
    finalized: int = 0
    prelaunch: int = 0
    active: int = 0
    total_borrowed: float = Field(0.0, description="Sum of RP-deposit values")
    total_staked: float = Field(0.0, description="Sum of Node-deposit values")
