"""
report — Counterexample report DTO.

This defines what the oracle hands to a surrounding test-runner integration
(and what FailureStore / ReportPublisher persist).

Key convention: JSON keys in camelCase, matching the other report consumers.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional

from .common import ts_ms


@dataclass
class FailureReport:
    """Minimal failing command sequence plus the violated property."""
    name: str = ""                          # property / model-run name
    seed: Optional[int] = None              # per-trial seed that reproduces the run
    run_index: int = 0
    commands: List[str] = field(default_factory=list)   # labels with sampled params
    original_length: int = 0                # length of the unshrunk failing prefix
    source: str = ""                        # invariant name, or "command body"
    failing_command: str = ""
    error_type: str = ""
    error: str = ""
    shrink_steps: int = 0
    created_at: int = field(default_factory=ts_ms)   # ms

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "seed": self.seed,
            "runIndex": self.run_index,
            "commands": list(self.commands),
            "originalLength": self.original_length,
            "source": self.source,
            "failingCommand": self.failing_command,
            "errorType": self.error_type,
            "error": self.error,
            "shrinkSteps": self.shrink_steps,
            "createdAt": self.created_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, raw: dict) -> "FailureReport":
        return cls(
            name=raw.get("name", ""),
            seed=raw.get("seed"),
            run_index=int(raw.get("runIndex", 0)),
            commands=list(raw.get("commands", [])),
            original_length=int(raw.get("originalLength", 0)),
            source=raw.get("source", ""),
            failing_command=raw.get("failingCommand", ""),
            error_type=raw.get("errorType", ""),
            error=raw.get("error", ""),
            shrink_steps=int(raw.get("shrinkSteps", 0)),
            created_at=int(raw.get("createdAt", 0)),
        )

    def describe(self) -> str:
        """Human-readable counterexample, one command per line."""
        lines = [f"Counterexample for {self.name or 'model run'} (seed={self.seed}):"]
        lines.extend(f"  {i}. {label}" for i, label in enumerate(self.commands, start=1))
        lines.append(f"Failed in {self.source} after {self.failing_command}: "
                     f"{self.error_type}: {self.error}")
        if self.original_length:
            lines.append(f"Shrunk from {self.original_length} to {len(self.commands)} "
                         f"commands in {self.shrink_steps} steps")
        return "\n".join(lines)
