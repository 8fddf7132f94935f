"""
Management command to queue a fetch+merge job from the command line.

Submits through the same queue as the web API. With --wait it polls the
job until it completes or fails (a huey consumer must be running unless
HUEY_IMMEDIATE is set).
"""

import json

from django.core.management.base import BaseCommand, CommandError

from downloads.operations import InvalidRequest, submit_download, wait_for_job
from downloads.service.constants import OUTPUT_CONTAINERS


class Command(BaseCommand):
    help = 'Queue a fetch+merge job for one stream of a URL'

    def add_arguments(self, parser):
        parser.add_argument('url', type=str, help='Source page URL')
        parser.add_argument('--stream', required=True, help='Stream id (itag) to fetch')
        parser.add_argument(
            '--output',
            default='mp4',
            choices=OUTPUT_CONTAINERS,
            help='Output container (default: mp4)',
        )
        parser.add_argument('--filename', default='', help='Filename hint for the artifact')
        parser.add_argument(
            '--resolution', default=None, help='Target resolution for video selection, e.g. 720p'
        )
        parser.add_argument('--wait', action='store_true', help='Wait for the job to finish')
        parser.add_argument(
            '--timeout', type=float, default=None, help='Seconds to wait with --wait (default: none)'
        )
        parser.add_argument('--json', action='store_true', help='JSON output')

    def handle(self, *args, **options):
        json_output = options['json']

        def logger(message):
            if not json_output:
                self.stdout.write(message)

        try:
            job_id = submit_download(
                url=options['url'],
                stream_id=options['stream'],
                output=options['output'],
                filename=options['filename'],
                resolution=options['resolution'],
                requester_tag='cli',
                logger=logger,
            )
        except InvalidRequest as e:
            raise CommandError(str(e))

        if not options['wait']:
            if json_output:
                self.stdout.write(json.dumps({'jobId': job_id, 'state': 'queued'}))
            return

        status = wait_for_job(job_id, timeout=options['timeout'], logger=logger)

        if json_output:
            self.stdout.write(json.dumps(status.to_dict(), indent=2))
        elif status.state == 'completed':
            self.stdout.write(self.style.SUCCESS(f'✓ Job {job_id} completed'))
            if status.result:
                self.stdout.write(f'  Download URL: {status.result.artifact_location}')
        elif status.state == 'failed':
            self.stdout.write(self.style.ERROR(f'✗ Job {job_id} failed'))
        else:
            self.stdout.write(
                self.style.WARNING(f'Job {job_id} still {status.state} ({status.progress}%)')
            )

        if status.state == 'failed':
            raise CommandError(f'Job {job_id} failed')
