"""Schémas des requêtes et réponses de l'API du compteur."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CounterOperation(str, enum.Enum):
    increment = "increment"
    decrement = "decrement"
    reset = "reset"


class CounterOut(BaseModel):
    id: int
    value: int
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CounterUpdateIn(BaseModel):
    operation: CounterOperation
