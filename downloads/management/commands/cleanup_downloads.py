"""
Management command to clean up stale downloads.

Deletes published artifacts and leftover job temp files older than a
cutoff, and optionally prunes old finished job records. Meant to run from
cron every few hours.
"""

from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

from django.core.management.base import BaseCommand
from django.utils import timezone

from downloads.runtime import get_job_queue
from downloads.service.config import get_public_dir, get_temp_dir


class Command(BaseCommand):
    help = 'Delete downloaded and temporary files older than a cutoff'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without actually deleting',
        )
        parser.add_argument(
            '--max-age',
            type=int,
            default=180,
            help='Maximum file age in minutes (default: 180)',
        )
        parser.add_argument(
            '--prune-jobs',
            type=int,
            default=None,
            metavar='DAYS',
            help='Also delete finished job records older than DAYS days',
        )

    def find_stale_files(self, directory, cutoff):
        stale = []
        for path in directory.iterdir():
            if not path.is_file():
                continue
            modified = datetime.fromtimestamp(path.stat().st_mtime, tz=dt_timezone.utc)
            if modified < cutoff:
                stale.append(path)
        return sorted(stale)

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        max_age_minutes = options['max_age']
        cutoff = timezone.now() - timedelta(minutes=max_age_minutes)

        stale_files = []
        for directory in (get_public_dir(), get_temp_dir()):
            stale_files.extend(self.find_stale_files(directory, cutoff))

        if not stale_files:
            self.stdout.write(
                self.style.SUCCESS(f'No files older than {max_age_minutes} minutes')
            )
        elif dry_run:
            for path in stale_files:
                self.stdout.write(f'  {path}')
            self.stdout.write(
                self.style.WARNING(f'DRY RUN: Would delete {len(stale_files)} file(s)')
            )
        else:
            deleted_count = 0
            for path in stale_files:
                try:
                    path.unlink()
                    deleted_count += 1
                except OSError as e:
                    self.stdout.write(self.style.ERROR(f'✗ Failed to delete {path.name}: {e}'))
            self.stdout.write(
                self.style.SUCCESS(f'✓ Deleted {deleted_count} of {len(stale_files)} file(s)')
            )

        if options['prune_jobs'] is not None:
            job_cutoff = timezone.now() - timedelta(days=options['prune_jobs'])
            if dry_run:
                self.stdout.write(f'DRY RUN: Would prune finished jobs older than {job_cutoff}')
            else:
                pruned = get_job_queue().prune(job_cutoff)
                self.stdout.write(self.style.SUCCESS(f'✓ Pruned {pruned} job record(s)'))
