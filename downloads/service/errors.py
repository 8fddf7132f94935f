"""
Error taxonomy for merge jobs.

Any of these raised inside a job attempt fails that attempt; huey's retry
counter decides whether another attempt runs. ``retryable`` tells callers
whether a second attempt can possibly behave differently.
"""


class MergeJobError(Exception):
    """Base class for every failure raised by the merge pipeline"""

    retryable = True


class SelectionError(MergeJobError):
    """Deterministic failure of the stream selection policy"""

    retryable = False


class FormatNotFound(SelectionError):
    """The requested stream id is not in the source's catalog"""

    def __init__(self, stream_id):
        self.stream_id = stream_id
        super().__init__(f'Format not found in metadata: {stream_id}')


class VideoUnavailableForAudioOnlyRequest(SelectionError):
    """Video output was requested from an audio-only stream and no video track fits"""

    def __init__(self, stream_id, container):
        self.stream_id = stream_id
        self.container = container
        super().__init__(
            f'No {container} video stream available to pair with audio stream {stream_id}'
        )


class NoAudioAvailable(SelectionError):
    """A video-only stream was requested but the catalog has no audio track"""

    def __init__(self, stream_id):
        self.stream_id = stream_id
        super().__init__(f'No audio stream available to merge with {stream_id}')


class UnsupportedStreamType(SelectionError):
    """The requested stream carries neither audio nor video"""

    def __init__(self, stream_id):
        self.stream_id = stream_id
        super().__init__(f'Stream {stream_id} has neither audio nor video')


class CatalogUnavailable(MergeJobError):
    """The metadata lookup for a source URL failed"""

    pass


class CommandFailed(MergeJobError):
    """An external process could not be spawned or exited non-zero"""

    def __init__(self, cmd, returncode=None, stderr=''):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr or ''
        if returncode is None:
            message = f'{cmd} could not be started - {self.stderr}'
        else:
            message = f'{cmd} exited {returncode} - {self.stderr.strip()}'
        super().__init__(message)


class FetchFailed(MergeJobError):
    """Every fetch strategy failed for one stream"""

    def __init__(self, stream_id, failures):
        self.stream_id = stream_id
        self.failures = failures
        details = '; '.join(f'{name}: {error}' for name, error in failures) or 'no fetcher available'
        super().__init__(f'Fetching format {stream_id} failed ({details})')


class MergeFailed(MergeJobError):
    """The local mux step failed"""

    pass


class PublishFailed(MergeJobError):
    """The upload/publish collaborator failed"""

    pass


class JobNotFound(MergeJobError):
    """The worker was handed a job id with no queue record"""

    pass
