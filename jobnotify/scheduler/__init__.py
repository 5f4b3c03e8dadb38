"""Scheduling of the refresh, notify and delivery stages."""

from .service import DELIVERY_JOB_ID, NOTIFY_JOB_ID, REFRESH_JOB_ID, SchedulerService

__all__ = [
    "SchedulerService",
    "REFRESH_JOB_ID",
    "NOTIFY_JOB_ID",
    "DELIVERY_JOB_ID",
]
