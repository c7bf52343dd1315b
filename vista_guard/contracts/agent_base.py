"""vista_guard.contracts.agent_base

Base abstractions for pipeline steps and the shared query context.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar, Optional

from .models import QueryRequest, SafetyReport, QueryResult

T = TypeVar("T")


@dataclass
class QueryContext:
    """Shared context passed across the pipeline."""
    request: QueryRequest
    safety: Optional[SafetyReport] = None
    query_result: Optional[QueryResult] = None
    last_error: Optional[str] = None


class BaseAgent(ABC, Generic[T]):
    """Abstract pipeline step."""

    name: str

    @abstractmethod
    def run(self, ctx: QueryContext) -> T:
        """Run this step and return a typed result."""
        raise NotImplementedError
