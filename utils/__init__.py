"""Utilities for the tally engine."""

from .utils import (
    setup_logging,
    save_results,
    PerformanceMonitor,
    create_performance_report,
    get_system_info,
    compute_hash,
    format_duration,
    timed
)

__all__ = [
    'setup_logging',
    'save_results',
    'PerformanceMonitor',
    'create_performance_report',
    'get_system_info',
    'compute_hash',
    'format_duration',
    'timed'
]
