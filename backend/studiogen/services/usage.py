"""Usage/cost bookkeeping collaborator.

The generation core reports one UsageEvent per top-level call through the
UsageRecorder interface and never depends on what the recorder does with it.
InMemoryUsageRecorder keeps the aggregate counters and estimated cost.
"""

import logging
from typing import Optional, Protocol

from studiogen.schemas.generation import ApiUsage, ImageModel, UsageEvent

logger = logging.getLogger(__name__)

# Estimated cost per successful call (USD)
COST_PER_CALL: dict[ImageModel, float] = {
    ImageModel.FAST: 0.0001,
    ImageModel.HIGH_QUALITY: 0.015,
    ImageModel.VIDEO: 0.05,
}


class UsageRecorder(Protocol):
    """Receives the final outcome of each generation call."""

    def on_usage_event(self, event: UsageEvent) -> None:
        ...


class NullUsageRecorder:
    """Recorder that discards every event."""

    def on_usage_event(self, event: UsageEvent) -> None:
        return None


class InMemoryUsageRecorder:
    """Aggregates usage events into ApiUsage counters."""

    def __init__(self) -> None:
        self._stats = ApiUsage()
        self.events: list[UsageEvent] = []

    @property
    def stats(self) -> ApiUsage:
        return self._stats.model_copy()

    def on_usage_event(self, event: UsageEvent) -> None:
        self.events.append(event)
        stats = self._stats

        stats.total_requests += 1
        if event.success:
            stats.success_count += 1
            stats.estimated_cost += COST_PER_CALL.get(event.model, 0.0)
        else:
            stats.failure_count += 1

        if event.model is ImageModel.FAST:
            stats.flash_requests += 1
        else:
            stats.pro_requests += 1

    def reset(self) -> ApiUsage:
        """Clear all counters and return the defaults."""
        self._stats = ApiUsage()
        self.events.clear()
        return self.stats


def record_usage(
    recorder: Optional[UsageRecorder], model: ImageModel, success: bool
) -> None:
    """Emit a UsageEvent; recorder failures never affect the generation outcome."""
    if recorder is None:
        recorder = NullUsageRecorder()
    try:
        recorder.on_usage_event(UsageEvent(model=model, success=success))
    except Exception as e:
        logger.warning(f"Usage recorder failed (non-fatal): {e}")
