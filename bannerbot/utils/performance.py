"""Resource usage reporting for the banner bot."""

from __future__ import annotations

import time
from typing import Any, Dict

import psutil

from ..core.logger import log


class PerformanceMonitor:
    """Track process memory, including the browser child processes."""

    def __init__(self):
        """Initialize the performance monitor."""
        self.start_time = time.time()
        self._process = psutil.Process()

    def capture_metrics(self) -> Dict[str, Any]:
        """Capture current memory and CPU metrics.

        Returns:
            Dictionary containing current metrics, empty on failure.
        """
        try:
            process_mb = self._process.memory_info().rss / (1024 * 1024)

            children_mb = 0.0
            children = self._process.children(recursive=True)
            for child in children:
                try:
                    children_mb += child.memory_info().rss / (1024 * 1024)
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    continue

            memory = psutil.virtual_memory()
            cpu_percent = self._process.cpu_percent(interval=None)

            metrics = {
                'timestamp': time.time(),
                'uptime': time.time() - self.start_time,
                'cpu': {
                    'process_percent': cpu_percent,
                },
                'memory': {
                    'process_mb': process_mb,
                    'children_mb': children_mb,
                    'children': len(children),
                    'system_percent': memory.percent,
                    'available_mb': memory.available / (1024 * 1024),
                },
            }
            log.log_resource_usage(process_mb + children_mb, cpu_percent)
            return metrics

        except psutil.Error as e:
            log.error(f"Failed to capture performance metrics: {e}")
            return {}

    def format_memory(self) -> str:
        """One-line memory summary for status replies."""
        metrics = self.capture_metrics()
        if not metrics:
            return "unavailable"
        memory = metrics['memory']
        return (
            f"{memory['process_mb']:.1f}MB bot + {memory['children_mb']:.1f}MB browser "
            f"({memory['children']} child processes), system {memory['system_percent']:.0f}%"
        )
