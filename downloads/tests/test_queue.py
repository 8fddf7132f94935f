"""
Tests for downloads/queue.py
"""

from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase, override_settings
from django.utils import timezone

from downloads.models import DownloadJob
from downloads.queue import JobQueue
from downloads.tasks import run_merge_job


class JobQueueSubmitTest(TestCase):
    """Tests for submitting jobs"""

    def setUp(self):
        self.huey_patcher = patch('downloads.queue.HUEY')
        self.mock_huey = self.huey_patcher.start()
        self.queue = JobQueue()

    def tearDown(self):
        self.huey_patcher.stop()

    def test_submit_creates_record_then_enqueues(self):
        job_id = self.queue.submit(
            source_url='https://www.youtube.com/watch?v=abc123',
            stream_id='137',
            container='mp4',
            filename_hint='clip',
            target_height=720,
            requester_tag='10.0.0.1',
        )

        job = DownloadJob.objects.get(pk=job_id)
        self.assertEqual(job.state, DownloadJob.STATE_QUEUED)
        self.assertEqual(job.progress, 0)
        self.assertEqual(job.attempts_allowed, 2)
        self.assertEqual(job.target_height, 720)
        self.assertEqual(len(job_id), 21)

        task = self.mock_huey.enqueue.call_args[0][0]
        self.assertIsInstance(task, run_merge_job.task_class)
        self.assertEqual(task.id, job_id)
        self.assertEqual(task.args, (job_id,))
        self.assertEqual(task.retries, 1)

    def test_submit_with_custom_attempts(self):
        self.queue.submit(
            source_url='https://www.youtube.com/watch?v=abc123', stream_id='137', attempts_allowed=4
        )

        task = self.mock_huey.enqueue.call_args[0][0]
        self.assertEqual(task.retries, 3)

    def test_submit_single_attempt_has_no_retries(self):
        self.queue.submit(
            source_url='https://www.youtube.com/watch?v=abc123', stream_id='137', attempts_allowed=1
        )

        task = self.mock_huey.enqueue.call_args[0][0]
        self.assertEqual(task.retries, 0)

    def test_each_submit_gets_a_new_id(self):
        first = self.queue.submit(source_url='https://example.com/v', stream_id='18')
        second = self.queue.submit(source_url='https://example.com/v', stream_id='18')

        self.assertNotEqual(first, second)
        self.assertEqual(DownloadJob.objects.count(), 2)


class JobQueueStateTest(TestCase):
    """Tests for progress and state bookkeeping"""

    def setUp(self):
        self.queue = JobQueue()
        self.job = DownloadJob.objects.create(
            source_url='https://www.youtube.com/watch?v=abc123', stream_id='137'
        )

    def progress(self):
        return DownloadJob.objects.get(pk=self.job.pk).progress

    def test_progress_is_monotonic(self):
        self.queue.report_progress(self.job.id, 20)
        self.queue.report_progress(self.job.id, 10)
        self.assertEqual(self.progress(), 20)

        self.queue.report_progress(self.job.id, 50)
        self.assertEqual(self.progress(), 50)

    def test_progress_is_clamped(self):
        self.queue.report_progress(self.job.id, 250)
        self.assertEqual(self.progress(), 100)

        self.queue.report_progress(self.job.id, -5)
        self.assertEqual(self.progress(), 100)

    def test_progress_for_unknown_job_is_ignored(self):
        self.queue.report_progress('doesnotexist', 50)

        self.assertEqual(self.progress(), 0)

    def test_get_state(self):
        self.assertEqual(self.queue.get_state(self.job.id), 'queued')
        self.assertEqual(self.queue.get_state('doesnotexist'), 'not_found')

    def test_mark_active_counts_attempts(self):
        self.queue.mark_active(self.job.id)
        self.queue.mark_active(self.job.id)

        job = DownloadJob.objects.get(pk=self.job.pk)
        self.assertEqual(job.state, DownloadJob.STATE_ACTIVE)
        self.assertEqual(job.attempts_made, 2)
        self.assertIsNotNone(job.started_at)

    def test_non_final_error_keeps_job_alive(self):
        self.queue.mark_active(self.job.id)
        self.queue.mark_error(self.job.id, 'HTTP Error 403', final=False)
        self.queue.mark_retrying(self.job.id)

        job = DownloadJob.objects.get(pk=self.job.pk)
        self.assertEqual(job.state, DownloadJob.STATE_QUEUED)
        self.assertEqual(job.error_message, 'HTTP Error 403')

    def test_final_error_fails_job(self):
        self.queue.mark_error(self.job.id, 'HTTP Error 403', final=True)

        job = DownloadJob.objects.get(pk=self.job.pk)
        self.assertEqual(job.state, DownloadJob.STATE_FAILED)
        self.assertIsNotNone(job.finished_at)

    def test_completed_job_is_pruned_by_default(self):
        self.queue.mark_completed(self.job.id)

        self.assertIsNone(self.queue.get_record(self.job.id))

    @override_settings(MERGE_QUEUE_REMOVE_ON_COMPLETE=False)
    def test_completed_job_is_kept_when_configured(self):
        self.queue.mark_completed(self.job.id)

        job = self.queue.get_record(self.job.id)
        self.assertEqual(job.state, DownloadJob.STATE_COMPLETED)
        self.assertEqual(job.progress, 100)

    def test_prune_only_removes_old_terminal_jobs(self):
        failed = DownloadJob.objects.create(
            source_url='https://example.com/old', stream_id='18', state=DownloadJob.STATE_FAILED
        )
        old = timezone.now() - timedelta(days=10)
        DownloadJob.objects.filter(pk__in=[failed.pk, self.job.pk]).update(updated_at=old)

        pruned = self.queue.prune(timezone.now() - timedelta(days=7))

        self.assertEqual(pruned, 1)
        self.assertFalse(DownloadJob.objects.filter(pk=failed.pk).exists())
        self.assertTrue(DownloadJob.objects.filter(pk=self.job.pk).exists())
