"""Route point sequencing option schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import Coordinate


class SequencerOptions(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    algorithm: str = Field(..., description="nearest_neighbor, two_opt or genetic.")
    max_iterations: Optional[int] = Field(None, ge=1, description="2-opt pass cap or genetic generation count.")
    population_size: Optional[int] = Field(None, ge=2)
    mutation_rate: Optional[float] = Field(None, ge=0, le=1)
    start_point: Optional[Coordinate] = None
    end_point: Optional[Coordinate] = None
    preserve_start_end: bool = False
    seed: Optional[int] = Field(None, description="Seed for the genetic algorithm's random source.")
