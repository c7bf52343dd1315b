"""vista_guard.tracing

Trace collection for debug views.
Each pipeline step appends a structured payload (guard reason, row counts, timings).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from vista_guard.contracts.models import StepTrace


@dataclass
class TraceCollector:
    """Collects per-step traces for a single query run."""
    traces: list[StepTrace] = field(default_factory=list)

    def add(self, step_name: str, payload: dict[str, Any]) -> None:
        self.traces.append(StepTrace(step_name=step_name, payload=dict(payload)))

    def steps(self) -> list[str]:
        return [t.step_name for t in self.traces]

    def drain(self) -> list[StepTrace]:
        """Return collected traces and start over; a collector is reused across runs."""
        out, self.traces = self.traces, []
        return out
