"""
Stage timing for the region scan and pair matching pipeline.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class StageTiming:
    """Duration of one pipeline stage."""
    name: str
    duration_ms: float
    details: Optional[str] = None


@dataclass
class StageTimings:
    """Collects stage durations for one analyzed frame."""
    stages: List[StageTiming] = field(default_factory=list)

    def add(self, name: str, duration_ms: float, details: Optional[str] = None):
        self.stages.append(StageTiming(name, duration_ms, details))

    @property
    def total_ms(self) -> float:
        return sum(stage.duration_ms for stage in self.stages)

    def to_dict(self) -> Dict[str, float]:
        """Stage durations keyed by snake_case stage name, plus ``total_ms``."""
        result = {}
        for stage in self.stages:
            key = stage.name.lower().replace(' ', '_')
            result[key] = round(stage.duration_ms, 2)
        result['total_ms'] = round(self.total_ms, 2)
        return result

    def summary_lines(self, title: str = "Timing Breakdown") -> List[str]:
        """Formatted summary, one line per stage."""
        lines = [f"[{title}]"]
        for stage in self.stages:
            detail_str = f" ({stage.details})" if stage.details else ""
            lines.append(f"  {stage.name:.<25} {stage.duration_ms:>8.2f} ms{detail_str}")
        lines.append(f"  {'-' * 40}")
        lines.append(f"  {'TOTAL':.<25} {self.total_ms:>8.2f} ms")
        return lines


@contextmanager
def timed_stage(timings: Optional[StageTimings], name: str, details: Optional[str] = None):
    """
    Time the enclosed block and record it on ``timings``.

    Does nothing when ``timings`` is None.

    Usage:
        with timed_stage(timings, "Region scan"):
            regions = find_color_regions(frame, settings)
    """
    if timings is None:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        timings.add(name, (time.perf_counter() - start) * 1000, details)
