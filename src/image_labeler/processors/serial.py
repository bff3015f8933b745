"""Serial fail-fast processor - processes notifications one by one."""

from typing import TYPE_CHECKING, List, Optional, Sequence

from ..core.cancellation import CancellationToken
from ..core.models import ObjectCreatedNotification, ProcessingResult

if TYPE_CHECKING:
    from ..core.services import ImageProcessingService


def process_batch(
    batch: Sequence[ObjectCreatedNotification],
    processing_service: "ImageProcessingService",
    cancellation: Optional[CancellationToken] = None,
    max_workers: int = 1,
) -> List[ProcessingResult]:
    """
    Processes a batch serially in delivery order, stopping at the first failure.

    Notifications after the failing one are not attempted. The caller reports
    the whole batch as failed and the delivery system redelivers all of it,
    so notifications that already succeeded are processed again; every step
    overwrites, so that costs work but not correctness.

    Args:
        batch: Notifications in delivery order.
        processing_service: Service running the per-notification steps.
        cancellation: Invocation cancellation signal.
        max_workers: Ignored; accepted for a uniform processor signature.

    Returns:
        Results for every attempted notification; the last one is the
        failure, if any.
    """
    results: List[ProcessingResult] = []

    for notification in batch:
        result = processing_service.process(notification, cancellation)
        results.append(result)
        if not result.success:
            break

    return results
