"""
Callback interface for report module progress reporting.
"""

from typing import Protocol


class ReportCallbacks(Protocol):
    """
    Callback interface for report module progress reporting.

    Modules call these methods to report progress. Implementations can be
    plain recorders (tests) or forward to a UI or console.
    """

    def on_progress(self, current: int, total: int, message: str = "") -> None:
        """
        Report progress.

        Args:
            current: Current item/step (0-based)
            total: Total items/steps
            message: Optional status message
        """
        ...

    def on_step(self, step_name: str) -> None:
        """Report entering a new processing step."""
        ...
