"""
External process runner and stream fetchers.

A stream is fetched by trying an ordered list of strategies: the yt-dlp
executable when one can be located, the in-process yt_dlp library, and a
plain HTTP download for muxed streams with a direct URL. The first strategy
that leaves a file at the requested path wins.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
import yt_dlp

from downloads.service.config import (
    apply_ytdlp_extra_args,
    get_project_bin_dir,
    get_ytdlp_extra_args,
    get_ytdlp_path,
)
from downloads.service.errors import CommandFailed, FetchFailed

PARTIAL_SUFFIXES = ('.part', '.ytdl', '.temp')


def run_command(cmd, args, logger=None):
    """
    Run an external program to completion.

    Args:
        cmd: Executable name or path
        args: List of arguments
        logger: Optional callable(str) for logging

    Returns:
        subprocess.CompletedProcess

    Raises:
        CommandFailed: If the process cannot be spawned or exits non-zero
    """

    def log(message):
        if logger:
            logger(message)

    full_cmd = [str(cmd)] + [str(arg) for arg in args]
    log(f"Running: {' '.join(full_cmd)}")

    try:
        result = subprocess.run(full_cmd, capture_output=True, text=True)
    except OSError as e:
        raise CommandFailed(cmd, stderr=str(e)) from e

    if result.returncode != 0:
        raise CommandFailed(cmd, result.returncode, result.stderr)

    return result


def locate_ytdlp_executable():
    """
    Find a yt-dlp executable.

    Checks the configured override, then the project's bin/ directory, then
    the PATH.

    Returns:
        str or None
    """
    override = get_ytdlp_path()
    if override and Path(override).exists():
        return str(override)

    name = 'yt-dlp.exe' if os.name == 'nt' else 'yt-dlp'
    bundled = get_project_bin_dir() / name
    if bundled.exists():
        return str(bundled)

    return shutil.which('yt-dlp')


@dataclass
class FetchRequest:
    """One stream to be written to ``out_path``"""

    url: str
    format_id: str
    out_path: Path
    extract_audio: Optional[str] = None
    direct_url: Optional[str] = None


def output_template(request):
    """yt-dlp output template; extraction lets yt-dlp pick the extension"""
    out_path = Path(request.out_path)
    if request.extract_audio:
        return str(out_path.parent / f'{out_path.stem}.%(ext)s')
    return str(out_path)


def settle_output(request):
    """
    Make sure the fetched file sits at exactly ``request.out_path``.

    yt-dlp may write a different extension than requested (e.g. ``aac``
    extraction lands in ``.m4a``), so siblings sharing the stem are renamed.

    Raises:
        FileNotFoundError: When nothing was written
    """
    out_path = Path(request.out_path)
    if out_path.exists():
        return out_path

    candidates = [
        p
        for p in out_path.parent.glob(f'{out_path.stem}.*')
        if p.is_file() and p.suffix not in PARTIAL_SUFFIXES
    ]
    if not candidates:
        raise FileNotFoundError(f'No output file found for {out_path.name}')

    produced = max(candidates, key=lambda p: p.stat().st_size)
    produced.rename(out_path)
    return out_path


class YtdlpExecutableFetcher:
    """Fetch through an external yt-dlp binary"""

    name = 'yt-dlp executable'

    def __init__(self, executable=None):
        self.executable = executable

    def get_executable(self):
        return self.executable or locate_ytdlp_executable()

    def applies(self, request):
        return bool(self.get_executable())

    def build_args(self, request):
        args = list(get_ytdlp_extra_args())
        args += ['--no-playlist', '-f', request.format_id]
        if request.extract_audio:
            args += ['-x', '--audio-format', request.extract_audio]
        args += ['-o', output_template(request), request.url]
        return args

    def fetch(self, request, logger=None):
        Path(request.out_path).parent.mkdir(parents=True, exist_ok=True)
        run_command(self.get_executable(), self.build_args(request), logger=logger)
        return settle_output(request)


class YtdlpLibraryFetcher:
    """Fetch in-process through the yt_dlp package"""

    name = 'yt-dlp library'

    def applies(self, request):
        return True

    def build_options(self, request):
        ydl_opts = {
            'format': request.format_id,
            'outtmpl': output_template(request),
            'quiet': True,
            'no_warnings': True,
            'noplaylist': True,
        }
        if request.extract_audio:
            ydl_opts['postprocessors'] = [
                {
                    'key': 'FFmpegExtractAudio',
                    'preferredcodec': request.extract_audio,
                }
            ]
        return apply_ytdlp_extra_args(ydl_opts)

    def fetch(self, request, logger=None):
        Path(request.out_path).parent.mkdir(parents=True, exist_ok=True)
        if logger:
            logger(f'Downloading format {request.format_id} with yt-dlp library')
        with yt_dlp.YoutubeDL(self.build_options(request)) as ydl:
            ydl.download([request.url])
        return settle_output(request)


class DirectHttpFetcher:
    """Stream a muxed format straight from its direct URL"""

    name = 'direct http'

    def applies(self, request):
        return bool(request.direct_url) and not request.extract_audio

    def fetch(self, request, logger=None):
        out_path = Path(request.out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        if logger:
            logger(f'Downloading from: {request.direct_url}')

        response = requests.get(request.direct_url, stream=True, timeout=30)
        response.raise_for_status()

        with open(out_path, 'wb') as f:
            for chunk in response.iter_content(chunk_size=8192):
                f.write(chunk)

        return out_path


def default_strategies():
    return [YtdlpExecutableFetcher(), YtdlpLibraryFetcher(), DirectHttpFetcher()]


def fetch_stream(request, strategies=None, logger=None):
    """
    Fetch one stream, falling back through the strategies in order.

    Args:
        request: FetchRequest
        strategies: Optional list of fetchers (defaults to default_strategies())
        logger: Optional callable(str) for logging

    Returns:
        Path: The file at request.out_path

    Raises:
        FetchFailed: When every applicable strategy failed
    """

    def log(message):
        if logger:
            logger(message)

    if strategies is None:
        strategies = default_strategies()

    failures = []
    for strategy in strategies:
        if not strategy.applies(request):
            log(f'Skipping {strategy.name} for format {request.format_id}')
            continue

        log(f'Fetching format {request.format_id} via {strategy.name}')
        try:
            path = strategy.fetch(request, logger=logger)
        except Exception as e:
            log(f'{strategy.name} failed: {e}')
            failures.append((strategy.name, str(e)))
            continue

        log(f'Fetched {Path(path).name} ({Path(path).stat().st_size} bytes)')
        return Path(path)

    raise FetchFailed(request.format_id, failures)
