"""
Tests for downloads/processing.py

Runs JobPipeline directly with fake collaborators.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

from django.core.cache import caches
from django.test import TestCase, override_settings

from downloads.models import DownloadJob, DownloadRecord
from downloads.processing import JobPipeline
from downloads.queue import JobQueue
from downloads.results import ResultCache
from downloads.service.catalog import Catalog, StreamDescriptor
from downloads.service.errors import (
    CatalogUnavailable,
    FetchFailed,
    FormatNotFound,
    JobNotFound,
    PublishFailed,
)

CATALOG = Catalog(
    title='Big Buck Bunny',
    streams=[
        StreamDescriptor(stream_id='v1', container='mp4', has_video=True, height=720),
        StreamDescriptor(stream_id='a1', container='m4a', has_audio=True, audio_bitrate=128),
    ],
)


def fake_fetcher(request, logger=None):
    Path(request.out_path).write_bytes(b'track')
    return Path(request.out_path)


def fake_mux(cmd, args, logger=None):
    Path(args[-1]).write_bytes(b'merged')


class ProgressRecordingQueue(JobQueue):
    def __init__(self):
        self.reported = []

    def report_progress(self, job_id, percent):
        self.reported.append(percent)
        super().report_progress(job_id, percent)


class JobPipelineTest(TestCase):
    """Tests for one job attempt"""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.temp_dir = Path(self.tmp) / 'work'
        self.settings_override = override_settings(
            MERGE_LOG_DIR=str(Path(self.tmp) / 'logs'),
            MERGE_TEMP_DIR=str(self.temp_dir),
        )
        self.settings_override.enable()

        self.queue = ProgressRecordingQueue()
        self.results = ResultCache()
        self.publisher = MagicMock(return_value='https://cdn.example.com/merged/x.mp4')
        self.job = DownloadJob.objects.create(
            source_url='https://www.youtube.com/watch?v=abc123',
            stream_id='v1',
            container='mp4',
            requester_tag='10.0.0.1',
            target_height=720,
        )

        self.mux_patcher = patch('downloads.service.merge.run_command', side_effect=fake_mux)
        self.mock_mux = self.mux_patcher.start()

    def tearDown(self):
        self.mux_patcher.stop()
        self.settings_override.disable()
        caches['results'].clear()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def build(self, catalog_client=None, fetcher=fake_fetcher):
        return JobPipeline(
            queue=self.queue,
            results=self.results,
            catalog_client=catalog_client or MagicMock(return_value=CATALOG),
            publisher=self.publisher,
            fetcher=fetcher,
            temp_dir=self.temp_dir,
        )

    def test_successful_attempt(self):
        result = self.build().run(self.job.id)

        self.assertEqual(result['downloadUrl'], 'https://cdn.example.com/merged/x.mp4')
        self.assertTrue(result['key'].startswith(f'merged/Big_Buck_Bunny-{self.job.id}-'))
        self.assertTrue(result['key'].endswith('.mp4'))

        cached = self.results.get(self.job.id)
        self.assertEqual(cached.storage_key, result['key'])

        record = DownloadRecord.objects.get(job_id=self.job.id)
        self.assertEqual(record.requester_tag, '10.0.0.1')
        self.assertEqual(record.resolution, '720p')
        self.assertEqual(record.file_size, len(b'merged'))

    def test_publish_receives_artifact_and_key(self):
        self.build().run(self.job.id)

        path, key = self.publisher.call_args[0]
        self.assertEqual(key, f'merged/{path.name}')
        self.assertEqual(path.parent, self.temp_dir)

    def test_local_artifact_is_removed(self):
        self.build().run(self.job.id)

        self.assertEqual(list(self.temp_dir.iterdir()), [])

    def test_progress_milestones_are_monotonic(self):
        self.build().run(self.job.id)

        self.assertEqual(self.queue.reported, sorted(self.queue.reported))
        self.assertEqual(self.queue.reported[0], 5)
        self.assertEqual(self.queue.reported[-1], 100)
        self.assertEqual(DownloadJob.objects.get(pk=self.job.pk).progress, 100)

    def test_filename_hint_wins_over_title(self):
        DownloadJob.objects.filter(pk=self.job.pk).update(filename_hint='my clip')

        result = self.build().run(self.job.id)

        self.assertTrue(result['key'].startswith(f'merged/my_clip-{self.job.id}-'))

    def test_job_log_is_written(self):
        self.build().run(self.job.id)

        job = DownloadJob.objects.get(pk=self.job.pk)
        log = Path(job.log_path).read_text()
        self.assertIn('=== CATALOG ===', log)
        self.assertIn('Plan: merge video v1 + audio a1 into mp4', log)
        self.assertIn('=== COMPLETED ===', log)

    def test_missing_record_raises(self):
        with self.assertRaises(JobNotFound):
            self.build().run('doesnotexist')

    def test_unknown_stream_fails_without_result(self):
        DownloadJob.objects.filter(pk=self.job.pk).update(stream_id='zzz')

        with self.assertRaises(FormatNotFound):
            self.build().run(self.job.id)

        self.assertIsNone(self.results.get(self.job.id))
        self.assertFalse(DownloadRecord.objects.exists())
        self.publisher.assert_not_called()

    def test_catalog_errors_are_wrapped(self):
        catalog_client = MagicMock(side_effect=RuntimeError('network down'))

        with self.assertRaises(CatalogUnavailable):
            self.build(catalog_client=catalog_client).run(self.job.id)

    def test_fetch_failure_propagates_and_is_logged(self):
        def failing_fetcher(request, logger=None):
            raise FetchFailed(request.format_id, [('yt-dlp library', 'HTTP Error 403')])

        with self.assertRaises(FetchFailed):
            self.build(fetcher=failing_fetcher).run(self.job.id)

        log = Path(DownloadJob.objects.get(pk=self.job.pk).log_path).read_text()
        self.assertIn('=== ERROR ===', log)
        self.assertIn('HTTP Error 403', log)

    def test_publish_failure_stores_no_result(self):
        self.publisher.side_effect = PublishFailed('bucket unreachable')

        with self.assertRaises(PublishFailed):
            self.build().run(self.job.id)

        self.assertIsNone(self.results.get(self.job.id))
        self.assertFalse(DownloadRecord.objects.exists())
