import json

from django.core.management.base import BaseCommand, CommandError

from downloads.operations import get_job_status
from downloads.runtime import get_job_queue


class Command(BaseCommand):
    help = 'Show the state, progress and result of a merge job'

    def add_arguments(self, parser):
        parser.add_argument('job_id', type=str, help='Job id')
        parser.add_argument('--json', action='store_true', help='JSON output')

    def handle(self, *args, **options):
        job_id = options['job_id']
        status = get_job_status(job_id)

        if options['json']:
            self.stdout.write(json.dumps(status.to_dict(), indent=2))
            if status.state == 'not_found':
                raise CommandError(f'Job not found: {job_id}')
            return

        if status.state == 'not_found':
            raise CommandError(f'Job not found: {job_id}')

        self.stdout.write(f'Job:      {status.id}')
        self.stdout.write(f'State:    {status.state}')
        self.stdout.write(f'Progress: {status.progress}%')

        record = get_job_queue().get_record(job_id)
        if record is not None:
            self.stdout.write(f'Attempts: {record.attempts_made}/{record.attempts_allowed}')
            if record.error_message:
                self.stdout.write(self.style.ERROR(f'Error:    {record.error_message}'))
            if record.log_path:
                self.stdout.write(f'Log:      {record.log_path}')

        if status.result:
            self.stdout.write(self.style.SUCCESS(f'URL:      {status.result.artifact_location}'))
            self.stdout.write(f'Key:      {status.result.storage_key}')
