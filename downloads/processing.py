"""
Django-side merge job processing.

Bridges the service layer and the DownloadJob/DownloadRecord models. Used by
the huey task in downloads/tasks.py; collaborators are injected so tests can
replace any of them.

Each attempt runs:
- catalog lookup
- stream selection
- fetch (and merge when needed)
- publish, completed-download record and result caching
"""

from pathlib import Path

from downloads.models import DownloadRecord
from downloads.progress import JobProgress
from downloads.results import JobResult
from downloads.service.config import get_log_dir
from downloads.service.errors import CatalogUnavailable, JobNotFound
from downloads.service.merge import build_output_stem, execute_plan, remove_temp_files
from downloads.service.selection import describe_plan, select_plan
from downloads.utils import format_resolution, write_log


def record_completed_download(job, result, filename, file_size):
    """Append a completed download to the persistent log"""
    return DownloadRecord.objects.create(
        requester_tag=job.requester_tag,
        source_url=job.source_url,
        resolution=format_resolution(job.target_height),
        container=job.container,
        filename=filename,
        file_size=file_size,
        storage_key=result.storage_key,
        artifact_location=result.artifact_location,
        job_id=job.id,
    )


def get_job_log_path(job_id):
    return get_log_dir() / f'{job_id}.log'


class JobPipeline:
    def __init__(
        self,
        queue,
        results,
        catalog_client,
        publisher,
        fetcher,
        temp_dir,
        record_completed=record_completed_download,
    ):
        self.queue = queue
        self.results = results
        self.catalog_client = catalog_client
        self.publisher = publisher
        self.fetcher = fetcher
        self.temp_dir = Path(temp_dir)
        self.record_completed = record_completed

    def run(self, job_id):
        """
        Run one attempt of a job.

        Returns:
            dict: ``{"downloadUrl": ..., "key": ...}``

        Raises:
            JobNotFound: When the queue has no record for the id
            Any error of the attempt, unchanged, so huey can retry it
        """
        job = self.queue.get_record(job_id)
        if job is None:
            raise JobNotFound(f'No queue record for job {job_id}')

        log_path = get_job_log_path(job_id)
        self.queue.set_log_path(job_id, log_path)

        def log(message):
            write_log(log_path, message)

        progress = JobProgress(self.queue, job_id, logger=log)

        log(f'=== ATTEMPT {job.attempts_made} OF {job.attempts_allowed} ===')
        log(f'URL: {job.source_url}')
        log(f'Stream: {job.stream_id}, output: {job.container}')
        if job.target_height:
            log(f'Target height: {job.target_height}')

        try:
            progress(5)
            log('=== CATALOG ===')
            try:
                catalog = self.catalog_client(job.source_url, logger=log)
            except CatalogUnavailable:
                raise
            except Exception as e:
                raise CatalogUnavailable(f'Metadata lookup failed for {job.source_url}: {e}') from e
            progress(10)

            log('=== SELECTING ===')
            plan = select_plan(catalog.streams, job.stream_id, job.container, job.target_height)
            log(f'Plan: {describe_plan(plan)}')
            progress(20)

            log('=== FETCHING ===')
            output_stem = build_output_stem(job.filename_hint or catalog.title, job_id)
            artifact = execute_plan(
                plan,
                job.source_url,
                output_stem,
                self.temp_dir,
                progress=progress,
                logger=log,
                fetcher=self.fetcher,
            )
            progress(85)

            log('=== PUBLISHING ===')
            filename = artifact.name
            file_size = artifact.stat().st_size
            storage_key = f'merged/{filename}'
            location = self.publisher(artifact, storage_key, logger=log)
            progress(100)

            result = JobResult(artifact_location=location, storage_key=storage_key)
            self.record_completed(job=job, result=result, filename=filename, file_size=file_size)
            self.results.store(job_id, result)
            remove_temp_files([artifact], logger=log)

            log('=== COMPLETED ===')
            log(f'Download URL: {location}')
            return result.to_dict()

        except Exception as e:
            log('=== ERROR ===')
            log(f'Error: {e}')
            raise
