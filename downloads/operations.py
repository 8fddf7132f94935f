"""
High-level operations that can be used by views and management commands.

This module provides testable functions that encapsulate business logic,
making it easy to test operations without going through Django views or
management commands.
"""

import time

from downloads.runtime import get_job_queue, get_status_resolver
from downloads.service.config import is_supported_container, parse_target_height


class InvalidRequest(ValueError):
    """A download request is missing fields or asks for an unsupported output"""

    pass


def submit_download(
    url, stream_id, output='mp4', filename=None, resolution=None, requester_tag='', logger=None
):
    """
    Validate and enqueue a download.

    This is the core operation used by:
    - POST /api/download
    - Management command: ./manage.py merge

    Args:
        url: Source page URL
        stream_id: Requested stream id (itag)
        output: Desired output container
        filename: Optional filename hint
        resolution: Optional resolution such as '720p'
        requester_tag: Opaque tag forwarded to the completed-download log
        logger: Optional callable(message) for logging

    Returns:
        str: Job id

    Raises:
        InvalidRequest
    """

    def log(message):
        if logger:
            logger(message)

    if not url or stream_id in (None, ''):
        raise InvalidRequest('URL and itag are required')

    output = (output or 'mp4').lower()
    if not is_supported_container(output):
        raise InvalidRequest(f'Unsupported output format: {output}')

    job_id = get_job_queue().submit(
        source_url=url,
        stream_id=str(stream_id),
        container=output,
        filename_hint=filename or '',
        target_height=parse_target_height(resolution),
        requester_tag=requester_tag,
    )
    log(f'Job queued: {job_id}')
    return job_id


def get_job_status(job_id):
    """JobStatus for a job id (state not_found when unknown)"""
    return get_status_resolver().get_status(job_id)


def wait_for_job(job_id, timeout=None, interval=1.0, logger=None):
    """
    Poll a job until it reaches a terminal state.

    Args:
        job_id: Job id
        timeout: Seconds to wait, None for no limit
        interval: Seconds between polls
        logger: Optional callable(message) receiving progress changes

    Returns:
        JobStatus: The last status seen (may be non-terminal on timeout)
    """
    deadline = time.monotonic() + timeout if timeout else None
    last_progress = None

    while True:
        status = get_job_status(job_id)
        if logger and status.progress != last_progress:
            logger(f'{status.state} {status.progress}%')
            last_progress = status.progress
        if status.is_terminal or status.state == 'not_found':
            return status
        if deadline is not None and time.monotonic() >= deadline:
            return status
        time.sleep(interval)
