"""
Tests for downloads/views.py
"""

import json
import tempfile
from pathlib import Path
from unittest.mock import patch

from django.core.cache import caches
from django.test import Client, TestCase, override_settings

from downloads import runtime
from downloads.models import DownloadJob, DownloadRecord
from downloads.results import JobResult
from downloads.service.catalog import Catalog, StreamDescriptor
from downloads.service.errors import CatalogUnavailable


class DownloadViewTest(TestCase):
    """Tests for POST /api/download"""

    def setUp(self):
        self.client = Client()
        self.queue_patcher = patch('downloads.operations.get_job_queue')
        self.mock_get_queue = self.queue_patcher.start()
        self.mock_queue = self.mock_get_queue.return_value
        self.mock_queue.submit.return_value = 'JOB123'

    def tearDown(self):
        self.queue_patcher.stop()

    def test_json_request_is_queued(self):
        response = self.client.post(
            '/api/download',
            data=json.dumps(
                {
                    'url': 'https://www.youtube.com/watch?v=abc123',
                    'itag': 140,
                    'output': 'mp4',
                    'filename': 'my clip',
                    'resolution': '720p',
                }
            ),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 202)
        self.assertEqual(
            response.json(), {'status': True, 'jobId': 'JOB123', 'message': 'Job queued'}
        )
        self.mock_queue.submit.assert_called_once_with(
            source_url='https://www.youtube.com/watch?v=abc123',
            stream_id='140',
            container='mp4',
            filename_hint='my clip',
            target_height=720,
            requester_tag='127.0.0.1',
        )

    def test_form_request_defaults_to_mp4(self):
        response = self.client.post(
            '/api/download', {'url': 'https://www.youtube.com/watch?v=abc123', 'stream_id': '137'}
        )

        self.assertEqual(response.status_code, 202)
        kwargs = self.mock_queue.submit.call_args[1]
        self.assertEqual(kwargs['container'], 'mp4')
        self.assertEqual(kwargs['stream_id'], '137')
        self.assertIsNone(kwargs['target_height'])

    def test_empty_itag_falls_back_to_stream_id(self):
        response = self.client.post(
            '/api/download',
            {'url': 'https://www.youtube.com/watch?v=abc123', 'itag': '', 'stream_id': '137'},
        )

        self.assertEqual(response.status_code, 202)
        self.assertEqual(self.mock_queue.submit.call_args[1]['stream_id'], '137')

    def test_itag_zero_is_kept(self):
        self.client.post(
            '/api/download',
            data=json.dumps({'url': 'https://www.youtube.com/watch?v=abc123', 'itag': 0}),
            content_type='application/json',
        )

        self.assertEqual(self.mock_queue.submit.call_args[1]['stream_id'], '0')

    def test_forwarded_ip_is_requester_tag(self):
        self.client.post(
            '/api/download',
            {'url': 'https://www.youtube.com/watch?v=abc123', 'itag': '18'},
            HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1',
        )

        self.assertEqual(self.mock_queue.submit.call_args[1]['requester_tag'], '203.0.113.9')

    def test_missing_itag_is_rejected(self):
        response = self.client.post('/api/download', {'url': 'https://www.youtube.com/watch?v=a'})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['status'])
        self.mock_queue.submit.assert_not_called()

    def test_missing_url_is_rejected(self):
        response = self.client.post('/api/download', {'itag': '18'})

        self.assertEqual(response.status_code, 400)

    def test_unsupported_output_is_rejected(self):
        response = self.client.post(
            '/api/download',
            {'url': 'https://www.youtube.com/watch?v=a', 'itag': '18', 'output': 'webm'},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('webm', response.json()['message'])

    def test_get_not_allowed(self):
        response = self.client.get('/api/download')

        self.assertEqual(response.status_code, 405)

    def test_unexpected_error_is_json_500(self):
        self.mock_queue.submit.side_effect = RuntimeError('database is locked')

        response = self.client.post(
            '/api/download', {'url': 'https://www.youtube.com/watch?v=a', 'itag': '18'}
        )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {'status': False, 'message': 'Internal Server Error'})


class JobStatusViewTest(TestCase):
    """Tests for GET /api/job/<id>"""

    def setUp(self):
        self.client = Client()
        runtime.shutdown()

    def tearDown(self):
        caches['results'].clear()
        runtime.shutdown()

    def test_unknown_job_is_404(self):
        response = self.client.get('/api/job/doesnotexist')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {'status': False, 'message': 'Job not found'})

    def test_active_job(self):
        job = DownloadJob.objects.create(
            source_url='https://example.com/v', stream_id='18', state='active', progress=50
        )

        response = self.client.get(f'/api/job/{job.id}')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {'status': True, 'jobId': job.id, 'state': 'active', 'progress': 50, 'result': None},
        )

    def test_pruned_job_reports_completed_result(self):
        runtime.get_result_cache().store(
            'JOB123', JobResult(artifact_location='https://cdn/x.mp4', storage_key='merged/x.mp4')
        )

        response = self.client.get('/api/job/JOB123')

        data = response.json()
        self.assertEqual(data['state'], 'completed')
        self.assertEqual(data['progress'], 100)
        self.assertEqual(data['result'], {'downloadUrl': 'https://cdn/x.mp4', 'key': 'merged/x.mp4'})


class InfoViewTest(TestCase):
    """Tests for POST /api/info"""

    @patch('downloads.views.get_catalog')
    def test_info_lists_formats(self, mock_get_catalog):
        mock_get_catalog.return_value = Catalog(
            title='Big Buck Bunny',
            duration_seconds=596,
            streams=[StreamDescriptor(stream_id='18', container='mp4', has_video=True, has_audio=True)],
        )

        response = Client().post(
            '/api/info',
            data=json.dumps({'url': 'https://www.youtube.com/watch?v=abc123'}),
            content_type='application/json',
        )

        data = response.json()
        self.assertTrue(data['status'])
        self.assertEqual(data['data']['title'], 'Big Buck Bunny')
        self.assertEqual(data['data']['formats'][0]['itag'], '18')

    def test_info_requires_url(self):
        response = Client().post('/api/info', {})

        self.assertEqual(response.status_code, 400)

    @patch('downloads.views.get_catalog', side_effect=CatalogUnavailable('Video unavailable'))
    def test_info_catalog_failure(self, mock_get_catalog):
        response = Client().post('/api/info', {'url': 'https://www.youtube.com/watch?v=gone'})

        self.assertEqual(response.status_code, 502)
        self.assertFalse(response.json()['status'])


class FileDownloadViewTest(TestCase):
    """Tests for GET /api/downloads/<filename>"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.settings_override = override_settings(MERGE_PUBLIC_DIR=self.temp_dir.name)
        self.settings_override.enable()

    def tearDown(self):
        self.settings_override.disable()
        self.temp_dir.cleanup()

    def test_serves_file_as_attachment(self):
        (Path(self.temp_dir.name) / 'clip-J-1.mp4').write_bytes(b'merged')

        response = Client().get('/api/downloads/clip-J-1.mp4')

        self.assertEqual(response.status_code, 200)
        self.assertIn('attachment', response['Content-Disposition'])
        self.assertEqual(b''.join(response.streaming_content), b'merged')
        response.close()

    def test_missing_file_is_404(self):
        response = Client().get('/api/downloads/missing.mp4')

        self.assertEqual(response.status_code, 404)


class VideosViewTest(TestCase):
    """Tests for GET /api/videos"""

    def test_lists_completed_downloads(self):
        DownloadRecord.objects.create(
            requester_tag='10.0.0.1',
            source_url='https://www.youtube.com/watch?v=abc123',
            resolution='720p',
            container='mp4',
            filename='clip-J-1.mp4',
            file_size=6,
            storage_key='merged/clip-J-1.mp4',
            artifact_location='https://cdn/clip-J-1.mp4',
            job_id='J',
        )

        data = Client().get('/api/videos').json()

        self.assertTrue(data['status'])
        self.assertEqual(len(data['data']), 1)
        self.assertEqual(data['data'][0]['filename'], 'clip-J-1.mp4')
        self.assertEqual(data['data'][0]['downloadUrl'], 'https://cdn/clip-J-1.mp4')
