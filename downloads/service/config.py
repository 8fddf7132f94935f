"""
Configuration adapter for merge job settings.

Centralizes access to Django settings and environment variables,
ensuring consistent configuration across the CLI, the web app and the
huey consumer.
"""

import re
import shlex
from pathlib import Path

from django.conf import settings

from downloads.service.constants import AUDIO_CONTAINERS, OUTPUT_CONTAINERS


def get_temp_dir():
    """Get the shared working directory for job attempts"""
    path = Path(settings.MERGE_TEMP_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_public_dir():
    """Get the directory the local publisher serves downloads from"""
    path = Path(settings.MERGE_PUBLIC_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_dir():
    """Get the directory holding per-job log files"""
    return Path(settings.MERGE_LOG_DIR)


def get_ytdlp_path():
    """Explicit yt-dlp executable override (empty when unset)"""
    return settings.MERGE_YTDLP_PATH


def get_project_bin_dir():
    """Project-local directory searched for bundled executables"""
    return Path(settings.BASE_DIR) / 'bin'


def get_ffmpeg_path():
    return settings.MERGE_FFMPEG_PATH


def get_audio_profile():
    """
    Get the fixed audio profile used when merging separate tracks.

    Returns:
        tuple: (codec, bitrate) e.g. ('aac', '192k')
    """
    return settings.MERGE_AUDIO_CODEC, settings.MERGE_AUDIO_BITRATE


def get_attempts_allowed():
    return settings.MERGE_JOB_ATTEMPTS


def get_result_ttl():
    """Seconds a job result stays readable in the result cache"""
    return settings.MERGE_RESULT_TTL


def get_filename_max_chars():
    return settings.MERGE_FILENAME_MAX_CHARS


def remove_on_complete():
    """Whether completed job records are pruned from the queue store"""
    return settings.MERGE_QUEUE_REMOVE_ON_COMPLETE


def get_s3_config():
    """
    Get object storage settings.

    Returns:
        dict or None: None when bucket or credentials are missing
    """
    if not (
        settings.MERGE_S3_BUCKET
        and settings.MERGE_S3_ACCESS_KEY_ID
        and settings.MERGE_S3_SECRET_ACCESS_KEY
    ):
        return None
    return {
        'bucket': settings.MERGE_S3_BUCKET,
        'region': settings.MERGE_S3_REGION,
        'endpoint': settings.MERGE_S3_ENDPOINT,
        'access_key_id': settings.MERGE_S3_ACCESS_KEY_ID,
        'secret_access_key': settings.MERGE_S3_SECRET_ACCESS_KEY,
        'expires': settings.MERGE_S3_PRESIGNED_EXPIRES,
    }


def get_public_base_url():
    return settings.MERGE_PUBLIC_BASE_URL.rstrip('/')


def is_audio_container(container):
    """True when the container tag asks for an audio-only artifact"""
    return (container or '').lower() in AUDIO_CONTAINERS


def is_supported_container(container):
    return (container or '').lower() in OUTPUT_CONTAINERS


def parse_target_height(resolution):
    """
    Parse an implied target height from a resolution string.

    Args:
        resolution: e.g. '720p', '1080', 'highest' or None

    Returns:
        int or None: None for 'highest'/'best'/'auto' or unparseable values
    """
    if resolution is None:
        return None
    value = str(resolution).strip().lower()
    if not value or value in ('highest', 'best', 'auto'):
        return None
    match = re.search(r'(\d{3,4})', value)
    if not match:
        return None
    return int(match.group(1))


def get_ytdlp_extra_args():
    """Extra yt-dlp CLI arguments from settings, split shell-style"""
    if not settings.MERGE_YTDLP_EXTRA_ARGS:
        return []
    return shlex.split(settings.MERGE_YTDLP_EXTRA_ARGS)


def apply_ytdlp_extra_args(base_opts):
    """Apply the extra yt-dlp arguments from settings to an in-process options dict"""
    return parse_ytdlp_extra_args(settings.MERGE_YTDLP_EXTRA_ARGS, base_opts)


def parse_ytdlp_extra_args(args_string, base_opts):
    """
    Parse yt-dlp extra arguments string and apply to base options dict.

    Only network and pacing options are honoured; format selection and
    output options belong to the fetcher.

    Args:
        args_string: String of yt-dlp arguments (e.g., '--proxy socks5://127.0.0.1:9050')
        base_opts: Base yt-dlp options dict to update

    Returns:
        dict: Updated yt-dlp options dict

    Example:
        >>> opts = {'format': '137', 'quiet': True}
        >>> parse_ytdlp_extra_args('--proxy http://proxy:3128 --sleep-interval 2', opts)
        {'format': '137', 'quiet': True, 'proxy': 'http://proxy:3128', 'sleep_interval': 2}
    """
    if not args_string:
        return base_opts

    args_list = shlex.split(args_string)

    i = 0
    while i < len(args_list):
        arg = args_list[i]

        if arg == '--proxy':
            if i + 1 < len(args_list):
                base_opts['proxy'] = args_list[i + 1]
                i += 2
            else:
                i += 1
        elif arg == '--cookies':
            if i + 1 < len(args_list):
                base_opts['cookiefile'] = args_list[i + 1]
                i += 2
            else:
                i += 1
        elif arg == '--socket-timeout':
            if i + 1 < len(args_list):
                base_opts['socket_timeout'] = float(args_list[i + 1])
                i += 2
            else:
                i += 1
        elif arg == '--sleep-interval':
            if i + 1 < len(args_list):
                base_opts['sleep_interval'] = int(args_list[i + 1])
                i += 2
            else:
                i += 1
        elif arg == '--max-sleep-interval':
            if i + 1 < len(args_list):
                base_opts['max_sleep_interval'] = int(args_list[i + 1])
                i += 2
            else:
                i += 1
        elif arg == '--no-check-certificates':
            base_opts['nocheckcertificate'] = True
            i += 1
        elif arg == '--force-ipv4':
            base_opts['source_address'] = '0.0.0.0'
            i += 1
        else:
            # Skip unknown args
            i += 1

    return base_opts
