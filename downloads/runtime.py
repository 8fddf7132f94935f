"""
Process-wide queue, result cache and status resolver.

Created on first use and dropped by shutdown(); the web process, management
commands and the huey consumer each get their own set.
"""

from downloads.processing import JobPipeline, record_completed_download
from downloads.queue import JobQueue
from downloads.results import ResultCache
from downloads.service.catalog import get_catalog
from downloads.service.config import get_temp_dir
from downloads.service.runner import fetch_stream
from downloads.service.storage import publish
from downloads.status import StatusResolver

_job_queue = None
_result_cache = None
_status_resolver = None


def get_job_queue():
    global _job_queue
    if _job_queue is None:
        _job_queue = JobQueue()
    return _job_queue


def get_result_cache():
    global _result_cache
    if _result_cache is None:
        _result_cache = ResultCache()
    return _result_cache


def get_status_resolver():
    global _status_resolver
    if _status_resolver is None:
        _status_resolver = StatusResolver(get_job_queue(), get_result_cache())
    return _status_resolver


def build_pipeline():
    """Pipeline wired to the real catalog, fetchers and publisher"""
    return JobPipeline(
        queue=get_job_queue(),
        results=get_result_cache(),
        catalog_client=get_catalog,
        publisher=publish,
        fetcher=fetch_stream,
        temp_dir=get_temp_dir(),
        record_completed=record_completed_download,
    )


def shutdown():
    """Drop the shared instances; the next get_* call rebuilds them"""
    global _job_queue, _result_cache, _status_resolver
    _job_queue = None
    _result_cache = None
    _status_resolver = None
