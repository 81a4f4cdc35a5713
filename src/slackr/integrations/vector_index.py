"""Similarity index contract and an in-process implementation."""

from __future__ import annotations

import asyncio
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

type MetadataFilter = Mapping[str, Any]


@dataclass(frozen=True)
class VectorRecord:
    id: str
    values: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VectorMatch:
    id: str
    score: float
    metadata: dict[str, Any] | None = None


class VectorIndex(Protocol):
    """Nearest-neighbour search over message embeddings."""

    async def query(
        self, vector: Sequence[float], *, top_k: int, filter: MetadataFilter | None = None
    ) -> list[VectorMatch]: ...

    async def upsert(self, records: Sequence[VectorRecord]) -> None: ...


class InMemoryVectorIndex:
    """Cosine-similarity index kept in process memory.

    Filters follow the common metadata filter shape: ``{"field": value}`` for
    equality, or ``{"field": {"$in": [...]}}`` / ``{"$eq": ...}`` /
    ``{"$gte": ...}`` for operators.
    """

    def __init__(self) -> None:
        self._records: dict[str, VectorRecord] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._records)

    async def upsert(self, records: Sequence[VectorRecord]) -> None:
        async with self._lock:
            for record in records:
                self._records[record.id] = record

    async def query(
        self, vector: Sequence[float], *, top_k: int, filter: MetadataFilter | None = None
    ) -> list[VectorMatch]:
        async with self._lock:
            candidates = [record for record in self._records.values() if _matches(record.metadata, filter)]
        scored = [
            VectorMatch(id=record.id, score=_cosine(vector, record.values), metadata=dict(record.metadata))
            for record in candidates
        ]
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]


def _cosine(left: Sequence[float], right: Sequence[float]) -> float:
    if len(left) != len(right):
        raise ValueError(f"dimension mismatch: {len(left)} != {len(right)}")
    dot = sum(a * b for a, b in zip(left, right, strict=True))
    norm = math.sqrt(sum(a * a for a in left)) * math.sqrt(sum(b * b for b in right))
    if norm == 0:
        return 0.0
    return dot / norm


def _matches(metadata: Mapping[str, Any], filter: MetadataFilter | None) -> bool:
    if not filter:
        return True
    for key, condition in filter.items():
        value = metadata.get(key)
        if isinstance(condition, Mapping):
            if not all(_apply_operator(op, value, expected) for op, expected in condition.items()):
                return False
        elif value != condition:
            return False
    return True


def _apply_operator(op: str, value: Any, expected: Any) -> bool:
    if op == "$in":
        return value in expected
    if op == "$eq":
        return bool(value == expected)
    if op == "$gte":
        return value is not None and value >= expected
    if op == "$lte":
        return value is not None and value <= expected
    raise ValueError(f"unsupported filter operator: {op}")
