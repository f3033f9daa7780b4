# studymate/utils/sync_metrics.py
"""Poll/refresh counters."""
from typing import Any, Dict


class SyncMetrics:
    def __init__(self):
        self.completed = 0
        self.failed = 0
        self.skipped = 0
        self.discarded = 0
        self.total_ticks = 0
        self.total_time = 0.0

    def record_completed(self, duration: float = 0.0):
        self.completed += 1
        self.total_ticks += 1
        self.total_time += duration

    def record_failed(self, duration: float = 0.0):
        self.failed += 1
        self.total_ticks += 1
        self.total_time += duration

    def record_skipped(self):
        self.skipped += 1

    def record_discarded(self):
        self.discarded += 1

    def get_stats(self) -> Dict[str, Any]:
        ran = self.completed + self.failed
        failure_rate = (self.failed / ran * 100) if ran > 0 else 0
        return {
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "discarded": self.discarded,
            "total_ticks": self.total_ticks,
            "failure_rate_percent": round(failure_rate, 2),
            "avg_tick_seconds": round(self.total_time / ran, 3) if ran else 0.0
        }
