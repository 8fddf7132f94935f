"""
Merge pipeline.

Executes a fetch plan: one fetch for direct and audio-extract plans, two
fetches plus an ffmpeg mux for video+audio plans.
"""

import re
from datetime import datetime, timezone
from pathlib import Path

from downloads.service.config import get_audio_profile, get_ffmpeg_path, get_filename_max_chars
from downloads.service.constants import DEFAULT_VIDEO_TEMP_CONTAINER, FFMPEG_MUXERS
from downloads.service.errors import CommandFailed, MergeFailed
from downloads.service.runner import FetchRequest, fetch_stream, run_command
from downloads.service.selection import AudioExtract, DirectFetch, VideoPlusAudioMerge


def sanitize_filename(hint, max_chars=None):
    """
    Reduce a user-supplied name to ``[A-Za-z0-9_-]``.

    Args:
        hint: Filename hint or title (may be None)
        max_chars: Truncation length (defaults to MERGE_FILENAME_MAX_CHARS)

    Returns:
        str: Never empty, never contains a path separator
    """
    if max_chars is None:
        max_chars = get_filename_max_chars()

    safe = re.sub(r'[^A-Za-z0-9_-]', '_', hint or '')
    safe = re.sub(r'_+', '_', safe).strip('_')
    safe = safe[:max_chars].strip('_')
    return safe or 'media'


def build_output_stem(hint, job_id, now=None):
    """
    Build the unique output stem ``<safe-name>-<job_id>-<epoch_ms>``.

    Args:
        hint: Filename hint or title
        job_id: Job id
        now: Optional datetime, defaults to the current time
    """
    if now is None:
        now = datetime.now(timezone.utc)
    epoch_ms = int(now.timestamp() * 1000)
    return f'{sanitize_filename(hint)}-{job_id}-{epoch_ms}'


def build_mux_args(video_path, audio_path, out_path, container):
    """ffmpeg arguments copying the video track and re-encoding audio to the fixed profile"""
    codec, bitrate = get_audio_profile()
    return [
        '-y',
        '-hide_banner',
        '-loglevel', 'error',
        '-i', str(video_path),
        '-i', str(audio_path),
        '-map', '0:v:0',
        '-map', '1:a:0',
        '-c:v', 'copy',
        '-c:a', codec,
        '-b:a', bitrate,
        '-movflags', '+faststart',
        '-f', FFMPEG_MUXERS.get(container, container),
        str(out_path),
    ]


def mux_tracks(video_path, audio_path, out_path, container, logger=None):
    """
    Mux a video track and an audio track into one file.

    Raises:
        MergeFailed: If ffmpeg cannot be started or exits non-zero
    """
    args = build_mux_args(video_path, audio_path, out_path, container)
    try:
        run_command(get_ffmpeg_path(), args, logger=logger)
    except CommandFailed as e:
        raise MergeFailed(f'Merging tracks into {Path(out_path).name} failed: {e}') from e
    return Path(out_path)


def remove_temp_files(paths, logger=None):
    """Delete temporary files; failures are logged, never raised"""
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            if logger:
                logger(f'Could not remove temp file {path}: {e}')


def remove_partial_outputs(work_dir, output_stem, logger=None):
    """Delete whatever a failed fetch left under the output name"""
    remove_temp_files(sorted(Path(work_dir).glob(f'{output_stem}.*')), logger=logger)


def execute_plan(
    plan, source_url, output_stem, work_dir, progress=None, logger=None, fetcher=fetch_stream
):
    """
    Produce the final artifact for a fetch plan.

    Args:
        plan: DirectFetch, AudioExtract or VideoPlusAudioMerge
        source_url: Hosted media page URL
        output_stem: Output file name without extension
        work_dir: Directory for temporary and final files
        progress: Optional callable(int) receiving percent milestones
        logger: Optional callable(str) for logging
        fetcher: Callable(FetchRequest, logger=...) returning the fetched Path

    Returns:
        Path: The final artifact in work_dir

    Raises:
        FetchFailed, MergeFailed, TypeError (unknown plan)
    """

    def log(message):
        if logger:
            logger(message)

    def report(percent):
        if progress:
            progress(percent)

    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)

    if isinstance(plan, (DirectFetch, AudioExtract)):
        if isinstance(plan, DirectFetch):
            ext = plan.container or DEFAULT_VIDEO_TEMP_CONTAINER
            request = FetchRequest(
                url=source_url,
                format_id=plan.stream_id,
                out_path=work_dir / f'{output_stem}.{ext}',
                direct_url=plan.direct_url,
            )
        else:
            request = FetchRequest(
                url=source_url,
                format_id=plan.stream_id,
                out_path=work_dir / f'{output_stem}.{plan.target_audio_container}',
                extract_audio=plan.target_audio_container,
            )
        report(20)
        try:
            path = fetcher(request, logger=logger)
        except Exception:
            remove_partial_outputs(work_dir, output_stem, logger=logger)
            raise
        report(60)
        return Path(path)

    if isinstance(plan, VideoPlusAudioMerge):
        video_path = work_dir / f'{output_stem}.video.{plan.video_container}'
        audio_path = work_dir / f'{output_stem}.audio.{plan.audio_container}'
        out_path = work_dir / f'{output_stem}.{plan.output_container}'

        report(20)
        try:
            log(f'Fetching video track {plan.video_stream_id}')
            fetcher(
                FetchRequest(url=source_url, format_id=plan.video_stream_id, out_path=video_path),
                logger=logger,
            )
            log(f'Fetching audio track {plan.audio_stream_id}')
            fetcher(
                FetchRequest(url=source_url, format_id=plan.audio_stream_id, out_path=audio_path),
                logger=logger,
            )
            report(50)

            mux_tracks(video_path, audio_path, out_path, plan.output_container, logger=logger)
            report(80)
        finally:
            remove_temp_files([video_path, audio_path], logger=logger)

        return out_path

    raise TypeError(f'Unknown fetch plan: {plan!r}')
