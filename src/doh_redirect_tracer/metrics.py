"""In-process metrics for traces served by the API."""
import time
from dataclasses import dataclass, field
from typing import List
from .config import logger


@dataclass
class TraceMetrics:
    """Tracks trace counts, chain lengths and latencies between log intervals."""

    total_traces: int = 0
    failed_traces: int = 0
    total_hops: int = 0
    response_times: List[float] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)
    last_log_time: float = field(default_factory=time.time)

    def record_success(self, hops: int, response_time: float):
        """Record a completed trace with its chain length and duration."""
        self.total_traces += 1
        self.total_hops += hops
        self.response_times.append(response_time)
        # Keep list bounded to last 1000 entries
        if len(self.response_times) > 1000:
            self.response_times = self.response_times[-1000:]

    def record_failure(self):
        """Record a trace that ended in a resolution or chain error."""
        self.total_traces += 1
        self.failed_traces += 1

    def get_traces_per_minute(self) -> float:
        elapsed_minutes = (time.time() - self.last_log_time) / 60.0
        if elapsed_minutes == 0:
            return 0.0
        return self.total_traces / elapsed_minutes

    def get_failure_rate(self) -> float:
        """Failure rate as a percentage."""
        if self.total_traces == 0:
            return 0.0
        return (self.failed_traces / self.total_traces) * 100

    def get_mean_hops(self) -> float:
        succeeded = self.total_traces - self.failed_traces
        if succeeded == 0:
            return 0.0
        return self.total_hops / succeeded

    def get_min_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return min(self.response_times)

    def get_mean_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return sum(self.response_times) / len(self.response_times)

    def get_max_response_time(self) -> float:
        if not self.response_times:
            return 0.0
        return max(self.response_times)

    def log_stats(self):
        """Log statistics for the interval and reset the counters."""
        tpm = self.get_traces_per_minute()

        logger.info("=== Trace Metrics ===")

        trace_stats = (
            f"Traces: {self.total_traces} ({self.failed_traces} failed, "
            f"{self.get_failure_rate():.1f}% failure rate), mean hops={self.get_mean_hops():.1f}"
        )

        if self.response_times:
            response_stats = (
                f", Trace times: min={self.get_min_response_time():.3f}s, "
                f"mean={self.get_mean_response_time():.3f}s, max={self.get_max_response_time():.3f}s"
            )
        else:
            response_stats = ""

        logger.info(f"Traces/min: {tpm:.1f}, {trace_stats}{response_stats}")

        self.total_traces = 0
        self.failed_traces = 0
        self.total_hops = 0
        self.response_times = []
        self.last_log_time = time.time()
