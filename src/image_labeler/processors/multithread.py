"""Multithreaded aggregating processor - processes every notification independently."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from ..core.cancellation import CancellationToken
from ..core.models import ObjectCreatedNotification, ProcessingResult

if TYPE_CHECKING:
    from ..core.services import ImageProcessingService

IndexedNotification = Tuple[int, ObjectCreatedNotification]


def group_by_key(
    batch: Sequence[ObjectCreatedNotification],
) -> List[List[IndexedNotification]]:
    """
    Group notifications by object key, keeping delivery order inside a group.

    Duplicate deliveries of one key share a group so they never run
    concurrently against the same thumbnail key.
    """
    groups: Dict[str, List[IndexedNotification]] = {}
    for index, notification in enumerate(batch):
        groups.setdefault(notification.key, []).append((index, notification))
    return list(groups.values())


def _process_group(
    group: List[IndexedNotification],
    processing_service: "ImageProcessingService",
    cancellation: Optional[CancellationToken],
) -> List[Tuple[int, ProcessingResult]]:
    return [
        (index, processing_service.process(notification, cancellation))
        for index, notification in group
    ]


def process_batch(
    batch: Sequence[ObjectCreatedNotification],
    processing_service: "ImageProcessingService",
    cancellation: Optional[CancellationToken] = None,
    max_workers: int = 8,
) -> List[ProcessingResult]:
    """
    Process a batch on a thread pool and aggregate the failures.

    Args:
        batch: Notifications in delivery order
        processing_service: Service running the per-notification steps
        cancellation: Invocation cancellation signal
        max_workers: Upper bound on worker threads

    Returns:
        One result per notification, in delivery order
    """
    if not batch:
        return []

    groups = group_by_key(batch)
    results: Dict[int, ProcessingResult] = {}
    workers = max(1, min(max_workers, len(groups)))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_group = {
            executor.submit(_process_group, group, processing_service, cancellation): group
            for group in groups
        }

        for future in as_completed(future_to_group):
            try:
                for index, result in future.result():
                    results[index] = result
            except Exception as e:
                # Unexpected errors fail every notification of the group
                for index, notification in future_to_group[future]:
                    results.setdefault(
                        index,
                        ProcessingResult(
                            key=notification.key,
                            success=False,
                            error=str(e),
                            error_type=type(e).__name__,
                        ),
                    )

    return [results[index] for index in range(len(batch))]
