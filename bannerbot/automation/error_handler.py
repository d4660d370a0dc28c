"""Error classification and bookkeeping for capture sessions."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, List

from ..core.exceptions import (
    CaptureError,
    ClassificationError,
    DispatchError,
    HealthCheckFailure,
    LifecycleError,
)
from ..core.logger import log


class Disposition(Enum):
    """What the session does after an error."""
    RETRY = "retry"            # abort this probe iteration and try again
    NO_MATCH = "no_match"      # count the iteration as "nothing on screen"
    ESCALATE = "escalate"      # end the session and report to the channel
    LOG_ONLY = "log_only"      # log and continue, never resend


class ErrorHandler:
    """Classifies errors caught at the orchestrator boundary and keeps a short history."""

    def __init__(self, max_history: int = 50):
        """Initialize the error handler."""
        self.error_history: List[Dict[str, Any]] = []
        self.max_history = max_history
        self.dispositions = self._load_dispositions()

    def classify(self, error: BaseException) -> Disposition:
        for error_type, disposition in self.dispositions.items():
            if isinstance(error, error_type):
                return disposition
        return Disposition.ESCALATE

    def handle_error(self, error: BaseException, context: Dict[str, Any]) -> Dict[str, Any]:
        """Record an error and decide how the session proceeds.

        Args:
            error: The exception that occurred.
            context: Context information about the error.

        Returns:
            Dict describing the error and its disposition.
        """
        disposition = self.classify(error)
        error_record = {
            'error_id': f"error_{int(time.time() * 1000)}",
            'timestamp': time.time(),
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context,
            'disposition': disposition.value,
            'reported': disposition is Disposition.ESCALATE,
        }

        if disposition is Disposition.ESCALATE:
            log.error(f"Handling error {error_record['error_id']}: {error}")
        else:
            log.warning(f"{error_record['error_type']} ({disposition.value}): {error}")

        self.error_history.append(error_record)
        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]

        return error_record

    def get_error_summary(self) -> Dict[str, Any]:
        """Get a summary of error handling statistics.

        Returns:
            Summary dictionary with error statistics.
        """
        if not self.error_history:
            return {
                'total_errors': 0,
                'reported_errors': 0,
                'most_common_error': None,
                'last_error': None
            }

        error_types = [error['error_type'] for error in self.error_history]
        return {
            'total_errors': len(self.error_history),
            'reported_errors': sum(1 for error in self.error_history if error['reported']),
            'most_common_error': max(set(error_types), key=error_types.count),
            'last_error': self.error_history[-1],
        }

    def _load_dispositions(self) -> Dict[type, Disposition]:
        return {
            CaptureError: Disposition.RETRY,
            ClassificationError: Disposition.NO_MATCH,
            DispatchError: Disposition.LOG_ONLY,
            HealthCheckFailure: Disposition.ESCALATE,
            LifecycleError: Disposition.ESCALATE,
        }
