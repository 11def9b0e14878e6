"""Unit tests for the metrics module."""
import time
from unittest.mock import patch
from doh_redirect_tracer.metrics import TraceMetrics


def test_trace_metrics_initialization():
    """Test TraceMetrics initialization."""
    metrics = TraceMetrics()

    assert metrics.total_traces == 0
    assert metrics.failed_traces == 0
    assert metrics.total_hops == 0
    assert metrics.response_times == []
    assert metrics.start_time > 0
    assert metrics.last_log_time > 0


def test_record_success():
    """Test recording a successful trace."""
    metrics = TraceMetrics()

    metrics.record_success(3, 0.25)

    assert metrics.total_traces == 1
    assert metrics.failed_traces == 0
    assert metrics.total_hops == 3
    assert metrics.response_times == [0.25]


def test_record_failure():
    """Test recording a failed trace."""
    metrics = TraceMetrics()

    metrics.record_failure()

    assert metrics.total_traces == 1
    assert metrics.failed_traces == 1
    assert metrics.total_hops == 0
    assert metrics.response_times == []


def test_failure_rate_and_mean_hops():
    """Test derived rates over a mix of outcomes."""
    metrics = TraceMetrics()

    metrics.record_success(2, 0.1)
    metrics.record_success(4, 0.3)
    metrics.record_failure()
    metrics.record_failure()

    assert metrics.get_failure_rate() == 50.0
    assert metrics.get_mean_hops() == 3.0


def test_rates_with_no_traces():
    """Test that empty metrics do not divide by zero."""
    metrics = TraceMetrics()

    assert metrics.get_failure_rate() == 0.0
    assert metrics.get_mean_hops() == 0.0
    assert metrics.get_min_response_time() == 0.0
    assert metrics.get_mean_response_time() == 0.0
    assert metrics.get_max_response_time() == 0.0


def test_response_time_stats():
    """Test min, mean and max trace times."""
    metrics = TraceMetrics()

    metrics.record_success(1, 0.1)
    metrics.record_success(1, 0.2)
    metrics.record_success(1, 0.6)

    assert metrics.get_min_response_time() == 0.1
    assert abs(metrics.get_mean_response_time() - 0.3) < 1e-9
    assert metrics.get_max_response_time() == 0.6


def test_response_times_bounded():
    """Test that only the last 1000 trace times are kept."""
    metrics = TraceMetrics()

    for i in range(1100):
        metrics.record_success(1, float(i))

    assert len(metrics.response_times) == 1000
    assert metrics.response_times[0] == 100.0
    assert metrics.total_traces == 1100


def test_traces_per_minute():
    """Test traces per minute since the last log."""
    metrics = TraceMetrics()
    metrics.last_log_time = time.time() - 120

    for _ in range(10):
        metrics.record_success(1, 0.1)

    assert 4.9 < metrics.get_traces_per_minute() < 5.1


def test_log_stats_resets_counters():
    """Test that log_stats logs and resets the interval counters."""
    metrics = TraceMetrics()
    metrics.record_success(2, 0.1)
    metrics.record_failure()
    before = metrics.last_log_time

    with patch('doh_redirect_tracer.metrics.logger') as mock_logger:
        metrics.log_stats()

    assert mock_logger.info.call_count == 2
    summary = mock_logger.info.call_args_list[1][0][0]
    assert "Traces: 2 (1 failed" in summary
    assert "Trace times" in summary

    assert metrics.total_traces == 0
    assert metrics.failed_traces == 0
    assert metrics.total_hops == 0
    assert metrics.response_times == []
    assert metrics.last_log_time >= before


def test_log_stats_without_response_times():
    """Test that latency stats are omitted when nothing succeeded."""
    metrics = TraceMetrics()
    metrics.record_failure()

    with patch('doh_redirect_tracer.metrics.logger') as mock_logger:
        metrics.log_stats()

    summary = mock_logger.info.call_args_list[1][0][0]
    assert "Trace times" not in summary
