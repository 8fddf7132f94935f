"""
Huey task and queue signal handlers.

The huey consumer is the worker pool: its worker count is the concurrency
ceiling and its retry counter the attempt budget. The signal handlers keep
the DownloadJob record in step with what huey does to the task.
"""

from huey import signals
from huey.contrib.djhuey import db_task, signal

from downloads.runtime import build_pipeline, get_job_queue


@db_task()
def run_merge_job(job_id):
    """
    Run one attempt of a merge job.

    Retries are set per task at submission time from the job's
    attempts_allowed.
    """
    return build_pipeline().run(job_id)


def is_merge_task(task):
    return isinstance(task, run_merge_job.task_class)


@signal(signals.SIGNAL_EXECUTING)
def on_job_executing(signal_name, task):
    if is_merge_task(task):
        get_job_queue().mark_active(task.id)


@signal(signals.SIGNAL_ERROR)
def on_job_error(signal_name, task, exc=None):
    # Emitted before huey decides to retry; retries still counts this attempt
    if is_merge_task(task):
        get_job_queue().mark_error(task.id, str(exc) if exc else '', final=not task.retries)


@signal(signals.SIGNAL_RETRYING)
def on_job_retrying(signal_name, task):
    if is_merge_task(task):
        get_job_queue().mark_retrying(task.id)


@signal(signals.SIGNAL_COMPLETE)
def on_job_complete(signal_name, task):
    if is_merge_task(task):
        get_job_queue().mark_completed(task.id)
