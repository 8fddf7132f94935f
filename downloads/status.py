"""
Status resolver.

Combines the queue record and the result cache into one view of a job.
Completed records are pruned from the queue, so a missing record with a
cached result still reads as completed.
"""

from dataclasses import dataclass
from typing import Optional

from downloads.models import DownloadJob
from downloads.results import JobResult

STATE_UNKNOWN = 'unknown'
STATE_NOT_FOUND = 'not_found'

KNOWN_STATES = {choice for choice, _ in DownloadJob.STATE_CHOICES}


@dataclass
class JobStatus:
    id: str
    state: str
    progress: int = 0
    result: Optional[JobResult] = None

    @property
    def is_terminal(self):
        return self.state in (DownloadJob.STATE_COMPLETED, DownloadJob.STATE_FAILED)

    def to_dict(self):
        return {
            'jobId': self.id,
            'state': self.state,
            'progress': self.progress,
            'result': self.result.to_dict() if self.result else None,
        }


class StatusResolver:
    def __init__(self, queue, results):
        self.queue = queue
        self.results = results

    def get_status(self, job_id):
        record = self.queue.get_record(job_id)
        result = self.results.get(job_id)

        if record is None:
            if result is not None:
                return JobStatus(job_id, DownloadJob.STATE_COMPLETED, 100, result)
            return JobStatus(job_id, STATE_NOT_FOUND, 0, None)

        state = record.state if record.state in KNOWN_STATES else STATE_UNKNOWN
        return JobStatus(job_id, state, record.progress, result)
