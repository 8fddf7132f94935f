from django.contrib import admin

from downloads.models import DownloadJob, DownloadRecord


@admin.register(DownloadJob)
class DownloadJobAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'source_url',
        'stream_id',
        'container',
        'state',
        'progress',
        'attempts_made',
        'attempts_allowed',
        'created_at',
    ]
    list_filter = ['state', 'container']
    search_fields = ['id', 'source_url', 'error_message']
    readonly_fields = [
        'id',
        'attempts_made',
        'state',
        'progress',
        'log_path',
        'error_message',
        'created_at',
        'updated_at',
        'started_at',
        'finished_at',
    ]

    def has_add_permission(self, request):
        # Jobs are created through the queue so a task is always enqueued
        return False


@admin.register(DownloadRecord)
class DownloadRecordAdmin(admin.ModelAdmin):
    list_display = ['filename', 'container', 'resolution', 'file_size', 'requester_tag', 'created_at']
    list_filter = ['container']
    search_fields = ['filename', 'source_url', 'job_id']
    readonly_fields = ['job_id', 'storage_key', 'artifact_location', 'created_at']
