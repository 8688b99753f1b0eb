# File: dispatchwatch/features/entities/domain/models.py
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class UnitMention:
    unit_type: str
    number: int

    @property
    def label(self) -> str:
        return f"{self.unit_type} {self.number}"


@dataclass(frozen=True)
class AddressCandidate:
    """
    One strategy's answer. `method` names the strategy that produced it.
    """
    address: str
    confidence: float
    method: str


@dataclass(frozen=True)
class EntitySet:
    units: List[str] = field(default_factory=list)
    hospitals: List[str] = field(default_factory=list)
    addresses: List[str] = field(default_factory=list)
    codes: List[str] = field(default_factory=list)
    medical: List[str] = field(default_factory=list)
