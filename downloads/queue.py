"""
Job queue over huey and the DownloadJob table.

The DownloadJob row is the durable job record; the huey task only carries
the job id. Claiming, FIFO order, the concurrency ceiling and retries are
huey's; state transitions are written by the signal handlers in
downloads/tasks.py through the mark_* methods below.
"""

from django.db.models import F
from django.utils import timezone
from huey.contrib.djhuey import HUEY

from downloads.models import DownloadJob
from downloads.service.config import get_attempts_allowed, remove_on_complete


class JobQueue:
    def submit(
        self,
        source_url,
        stream_id,
        container='mp4',
        filename_hint='',
        target_height=None,
        requester_tag='',
        attempts_allowed=None,
    ):
        """
        Persist a job and enqueue it.

        The row is committed before the task is enqueued, so a worker never
        sees an id without a record. Returns immediately with the job id.
        """
        from downloads.tasks import run_merge_job

        if attempts_allowed is None:
            attempts_allowed = get_attempts_allowed()

        job = DownloadJob.objects.create(
            source_url=source_url,
            stream_id=str(stream_id),
            container=container,
            filename_hint=filename_hint or '',
            target_height=target_height,
            requester_tag=requester_tag or '',
            attempts_allowed=attempts_allowed,
        )

        task = run_merge_job.s(job.id)
        task.id = job.id
        task.retries = max(attempts_allowed - 1, 0)
        HUEY.enqueue(task)

        return job.id

    def get_record(self, job_id):
        """DownloadJob for the id, or None when absent or pruned"""
        return DownloadJob.objects.filter(pk=job_id).first()

    def get_state(self, job_id):
        record = self.get_record(job_id)
        if record is None:
            return 'not_found'
        return record.state

    def report_progress(self, job_id, percent):
        """
        Raise a job's progress to ``percent``.

        Values are clamped to 0-100; anything not above the stored value is
        ignored, as are unknown ids.
        """
        percent = max(0, min(100, int(percent)))
        DownloadJob.objects.filter(pk=job_id, progress__lt=percent).update(
            progress=percent, updated_at=timezone.now()
        )

    def set_log_path(self, job_id, log_path):
        DownloadJob.objects.filter(pk=job_id).update(log_path=str(log_path))

    def mark_active(self, job_id):
        DownloadJob.objects.filter(pk=job_id).update(
            state=DownloadJob.STATE_ACTIVE,
            attempts_made=F('attempts_made') + 1,
            started_at=timezone.now(),
            updated_at=timezone.now(),
        )

    def mark_error(self, job_id, error_message, final):
        """Record an attempt failure; ``final`` moves the job to failed"""
        fields = {'error_message': error_message or '', 'updated_at': timezone.now()}
        if final:
            fields['state'] = DownloadJob.STATE_FAILED
            fields['finished_at'] = timezone.now()
        DownloadJob.objects.filter(pk=job_id).update(**fields)

    def mark_retrying(self, job_id):
        DownloadJob.objects.filter(pk=job_id).update(
            state=DownloadJob.STATE_QUEUED, updated_at=timezone.now()
        )

    def mark_completed(self, job_id):
        """Mark a job completed, pruning the record when configured to"""
        if remove_on_complete():
            DownloadJob.objects.filter(pk=job_id).delete()
            return
        DownloadJob.objects.filter(pk=job_id).update(
            state=DownloadJob.STATE_COMPLETED,
            progress=100,
            finished_at=timezone.now(),
            updated_at=timezone.now(),
        )

    def prune(self, older_than):
        """
        Delete terminal job records last updated before ``older_than``.

        Returns:
            int: Number of records deleted
        """
        deleted, _ = DownloadJob.objects.filter(
            state__in=DownloadJob.TERMINAL_STATES, updated_at__lt=older_than
        ).delete()
        return deleted
