"""
Stream selection and fallback policy.

Maps a requested stream id and desired output container onto a concrete
fetch plan. Pure decision logic: no I/O, same inputs always give the same
plan or the same error.
"""

from dataclasses import dataclass
from typing import Optional

from downloads.service.config import is_audio_container
from downloads.service.constants import (
    DEFAULT_AUDIO_TEMP_CONTAINER,
    DEFAULT_VIDEO_TEMP_CONTAINER,
    PREFERRED_VIDEO_SOURCE,
)
from downloads.service.errors import (
    FormatNotFound,
    NoAudioAvailable,
    UnsupportedStreamType,
    VideoUnavailableForAudioOnlyRequest,
)


@dataclass(frozen=True)
class DirectFetch:
    """Single fetch of a muxed stream, no merge"""

    stream_id: str
    container: Optional[str] = None
    direct_url: Optional[str] = None


@dataclass(frozen=True)
class AudioExtract:
    """Single fetch with audio extraction/transcode to the target container"""

    stream_id: str
    target_audio_container: str


@dataclass(frozen=True)
class VideoPlusAudioMerge:
    """Two fetches plus a local mux step"""

    video_stream_id: str
    audio_stream_id: str
    output_container: str = 'mp4'
    video_container: str = DEFAULT_VIDEO_TEMP_CONTAINER
    audio_container: str = DEFAULT_AUDIO_TEMP_CONTAINER


def find_stream(streams, stream_id):
    """Return the descriptor with the given id, or None"""
    wanted = str(stream_id)
    for stream in streams:
        if stream.stream_id == wanted:
            return stream
    return None


def pick_best_audio(streams):
    """
    Pick the audio-bearing descriptor with the highest bitrate.

    Missing bitrates count as zero; ties resolve to the first encountered.

    Returns:
        StreamDescriptor or None
    """
    best = None
    for stream in streams:
        if not stream.has_audio:
            continue
        if best is None or (stream.audio_bitrate or 0) > (best.audio_bitrate or 0):
            best = stream
    return best


def pick_video_for_audio(streams, container, target_height=None):
    """
    Pick a video-capable descriptor in the given container.

    With a target height: the lowest height at or above it. Without one, or
    when nothing reaches it: the single highest available height. Ties
    resolve to the first encountered.

    Returns:
        StreamDescriptor or None
    """
    candidates = [s for s in streams if s.has_video and s.container == container]
    if not candidates:
        return None

    if target_height:
        at_or_above = [s for s in candidates if (s.height or 0) >= target_height]
        if at_or_above:
            best = at_or_above[0]
            for stream in at_or_above[1:]:
                if (stream.height or 0) < (best.height or 0):
                    best = stream
            return best

    best = candidates[0]
    for stream in candidates[1:]:
        if (stream.height or 0) > (best.height or 0):
            best = stream
    return best


def select_plan(streams, requested_stream_id, desired_container, target_height=None):
    """
    Decide how a requested stream maps onto downloadable tracks.

    Args:
        streams: List of StreamDescriptor for the source
        requested_stream_id: Stream id the client asked for
        desired_container: Output container tag (e.g. 'mp4', 'mp3')
        target_height: Optional implied height for video selection

    Returns:
        DirectFetch, AudioExtract or VideoPlusAudioMerge

    Raises:
        FormatNotFound, VideoUnavailableForAudioOnlyRequest,
        NoAudioAvailable, UnsupportedStreamType
    """
    container = (desired_container or '').lower()

    requested = find_stream(streams, requested_stream_id)
    if requested is None:
        raise FormatNotFound(requested_stream_id)

    if requested.has_audio and requested.has_video and requested.direct_url:
        return DirectFetch(
            stream_id=requested.stream_id,
            container=requested.container,
            direct_url=requested.direct_url,
        )

    if requested.has_audio and not requested.has_video:
        if is_audio_container(container):
            return AudioExtract(stream_id=requested.stream_id, target_audio_container=container)

        source_container = PREFERRED_VIDEO_SOURCE.get(container, container)
        video = pick_video_for_audio(streams, source_container, target_height)
        if video is None:
            raise VideoUnavailableForAudioOnlyRequest(requested.stream_id, source_container)
        return VideoPlusAudioMerge(
            video_stream_id=video.stream_id,
            audio_stream_id=requested.stream_id,
            output_container=container,
            video_container=video.container or DEFAULT_VIDEO_TEMP_CONTAINER,
            audio_container=requested.container or DEFAULT_AUDIO_TEMP_CONTAINER,
        )

    if requested.has_video:
        # Video-only, or muxed without a direct URL: keep this video track and
        # merge in the best audio track of the whole catalog
        audio = pick_best_audio(streams)
        if audio is None:
            raise NoAudioAvailable(requested.stream_id)
        return VideoPlusAudioMerge(
            video_stream_id=requested.stream_id,
            audio_stream_id=audio.stream_id,
            output_container=container,
            video_container=requested.container or DEFAULT_VIDEO_TEMP_CONTAINER,
            audio_container=audio.container or DEFAULT_AUDIO_TEMP_CONTAINER,
        )

    raise UnsupportedStreamType(requested.stream_id)


def describe_plan(plan):
    """One-line human description of a plan, for job logs"""
    if isinstance(plan, DirectFetch):
        return f'direct fetch of {plan.stream_id}'
    if isinstance(plan, AudioExtract):
        return f'audio extract of {plan.stream_id} to {plan.target_audio_container}'
    if isinstance(plan, VideoPlusAudioMerge):
        return (
            f'merge video {plan.video_stream_id} + audio {plan.audio_stream_id} '
            f'into {plan.output_container}'
        )
    raise TypeError(f'Unknown fetch plan: {plan!r}')
