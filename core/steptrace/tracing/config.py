"""Configuration for the step recorder."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass
class StepTraceConfig:
    """Configuration for step tracing."""

    default_source: str = "unknown"

    trace_id_prefix: str = "tr_"
    env_id_prefix: str = "env_"

    # Deep-copy payload/meta when recorded and records when read back
    copy_values: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepTraceConfig:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
