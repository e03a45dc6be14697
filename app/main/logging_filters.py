"""
Logging filters to suppress expected request errors so they don't clutter
logs with WARNING tracebacks (non-members hitting team pages, invalid forms).
"""

import logging

from django.core.exceptions import PermissionDenied


class SuppressExpectedRequestErrors(logging.Filter):
    """
    Filter out log records for expected HTTP client errors that are handled
    by Django. A 403 on a team page is the normal outcome for a user who is
    not a member of that team and need not be logged with a traceback.
    """

    expected_fragments = (
        "Forbidden (Permission denied)",
        "Form validation failed",
    )

    def filter(self, record):
        if record.exc_info:
            exc_value = record.exc_info[1]
            if isinstance(exc_value, PermissionDenied):
                return False
        msg = record.getMessage()
        return not any(fragment in msg for fragment in self.expected_fragments)
