from django.db import models
from nanoid import generate


def generate_nanoid():
    """Generate NanoID with A-Z a-z 0-9 alphabet"""
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
    return generate(alphabet, size=21)


class DownloadJob(models.Model):
    """Queue record of one fetch+merge job"""

    STATE_QUEUED = "queued"
    STATE_ACTIVE = "active"
    STATE_COMPLETED = "completed"
    STATE_FAILED = "failed"

    STATE_CHOICES = [
        (STATE_QUEUED, "Queued"),
        (STATE_ACTIVE, "Active"),
        (STATE_COMPLETED, "Completed"),
        (STATE_FAILED, "Failed"),
    ]

    TERMINAL_STATES = (STATE_COMPLETED, STATE_FAILED)

    # Primary key, also used as the huey task id
    id = models.CharField(max_length=21, primary_key=True, default=generate_nanoid, editable=False)

    # Job fields
    source_url = models.URLField(max_length=2048)
    stream_id = models.CharField(max_length=50)
    container = models.CharField(max_length=10, default="mp4")
    filename_hint = models.CharField(max_length=500, blank=True)
    target_height = models.PositiveIntegerField(null=True, blank=True)
    requester_tag = models.CharField(max_length=200, blank=True)

    # Queue bookkeeping
    attempts_allowed = models.PositiveSmallIntegerField(default=2)
    attempts_made = models.PositiveSmallIntegerField(default=0)
    state = models.CharField(
        max_length=20, choices=STATE_CHOICES, default=STATE_QUEUED, db_index=True
    )
    progress = models.PositiveSmallIntegerField(default=0)

    # Logging
    log_path = models.CharField(max_length=500, blank=True)
    error_message = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["state"], name="downloads_d_state_5b1c0e_idx"),
            models.Index(fields=["created_at"], name="downloads_d_created_9a3f21_idx"),
        ]

    def __str__(self):
        return f"{self.source_url} [{self.stream_id}] ({self.id})"


class DownloadRecord(models.Model):
    """Persistent log entry of a completed download"""

    requester_tag = models.CharField(max_length=200, blank=True)
    source_url = models.URLField(max_length=2048)
    resolution = models.CharField(max_length=50, blank=True)
    container = models.CharField(max_length=10)
    filename = models.CharField(max_length=500)
    file_size = models.BigIntegerField(null=True, blank=True)
    storage_key = models.CharField(max_length=1024)
    artifact_location = models.TextField()
    job_id = models.CharField(max_length=21, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.filename} ({self.job_id})"
