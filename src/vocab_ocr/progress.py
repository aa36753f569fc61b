"""Progress reporting for a single pipeline run.

Phases map onto fixed percent ranges:

    rotation_detection   0-10
    preprocessing       10-20
    recognizing         20-90  (split evenly across strategies)
    postprocessing      90-100

Callback exceptions never propagate into the pipeline.
"""

import logging
from typing import Callable, Optional

from .types import ProgressEvent, ProgressStatus, clamp_score

logger = logging.getLogger(__name__)

ProgressHandler = Callable[[ProgressEvent], None]

RECOGNITION_START = 20.0
RECOGNITION_SPAN = 70.0


class ProgressReporter:
    """Forward progress events to an optional user callback.

    Percent values are clamped to [0, 100] and never decrease within a run.

    Args:
        callback: Callable receiving ProgressEvent instances, or None.
    """

    def __init__(self, callback: Optional[ProgressHandler] = None):
        self.callback = callback
        self._last_percent = 0.0

    def emit(self, status: ProgressStatus, percent: float, detail: Optional[str] = None) -> None:
        """Report progress.

        Args:
            status: Current pipeline phase
            percent: Overall progress (0-100)
            detail: Optional detail such as a strategy name
        """
        percent = max(clamp_score(percent), self._last_percent)
        self._last_percent = percent

        if self.callback is None:
            return

        try:
            self.callback(ProgressEvent(status=status, percent=percent, detail=detail))
        except Exception as e:
            logger.warning(f"Progress callback raised {type(e).__name__}: {e}")

    def strategy_percent(self, index: int, total: int, fraction: float = 0.0) -> float:
        """Overall percent for a position inside the strategy phase.

        Args:
            index: Zero-based strategy index
            total: Number of strategies
            fraction: Engine-reported progress of the current strategy (0-1)

        Returns:
            Percent within the 20-90 range
        """
        share = RECOGNITION_SPAN / max(total, 1)
        fraction = min(1.0, max(0.0, fraction))
        return RECOGNITION_START + index * share + fraction * share
