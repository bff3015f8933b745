"""Batch processors implementing the two failure policies."""

from .serial import process_batch as serial_process_batch
from .multithread import process_batch as multithread_process_batch

BATCH_PROCESSORS = {
    "fail_fast": serial_process_batch,
    "aggregate": multithread_process_batch,
}

__all__ = [
    "BATCH_PROCESSORS",
    "serial_process_batch",
    "multithread_process_batch",
]
