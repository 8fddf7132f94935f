"""
Progress reporting for running jobs.

Progress is advisory: a failed write is logged to the job log and the
attempt carries on.
"""

from django.db import DatabaseError


class JobProgress:
    """Callable(percent) forwarding milestones of one job to the queue"""

    def __init__(self, queue, job_id, logger=None):
        self.queue = queue
        self.job_id = job_id
        self.logger = logger

    def __call__(self, percent):
        try:
            self.queue.report_progress(self.job_id, percent)
        except DatabaseError as e:
            if self.logger:
                self.logger(f'Progress update to {percent}% failed: {e}')
