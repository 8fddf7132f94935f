"""
Result cache for finished jobs.

Results live in their own Django cache alias so they outlive the queue
record, which is pruned on completion.
"""

import json
from dataclasses import dataclass

from django.core.cache import caches

from downloads.service.config import get_result_ttl

RESULT_CACHE_ALIAS = 'results'


@dataclass(frozen=True)
class JobResult:
    artifact_location: str
    storage_key: str

    def to_dict(self):
        return {'downloadUrl': self.artifact_location, 'key': self.storage_key}

    @classmethod
    def from_dict(cls, data):
        return cls(artifact_location=data['downloadUrl'], storage_key=data['key'])


class ResultCache:
    KEY_PREFIX = 'jobResult:'

    def __init__(self, cache=None, ttl=None):
        self.cache = cache if cache is not None else caches[RESULT_CACHE_ALIAS]
        self.ttl = ttl if ttl is not None else get_result_ttl()

    def key_for(self, job_id):
        return f'{self.KEY_PREFIX}{job_id}'

    def store(self, job_id, result, ttl=None):
        """Write (or overwrite) the result for a job, expiring after ``ttl`` seconds"""
        payload = json.dumps(result.to_dict())
        self.cache.set(self.key_for(job_id), payload, timeout=ttl or self.ttl)

    def get(self, job_id):
        """JobResult for the id, or None when absent or expired"""
        payload = self.cache.get(self.key_for(job_id))
        if payload is None:
            return None
        return JobResult.from_dict(json.loads(payload))
