"""
Stream catalog lookup.

Enumerates the downloadable streams of a source URL with yt-dlp, without
downloading anything.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import yt_dlp

from downloads.service.config import apply_ytdlp_extra_args
from downloads.service.errors import CatalogUnavailable


@dataclass(frozen=True)
class StreamDescriptor:
    """One downloadable track of a source"""

    stream_id: str
    container: Optional[str] = None
    has_video: bool = False
    has_audio: bool = False
    height: Optional[int] = None
    audio_bitrate: Optional[float] = None
    direct_url: Optional[str] = None
    filesize: Optional[int] = None
    note: Optional[str] = None

    @property
    def is_muxed(self):
        return self.has_video and self.has_audio


@dataclass
class Catalog:
    """Streams available for one source URL"""

    title: Optional[str] = None
    duration_seconds: Optional[int] = None
    thumbnail_url: Optional[str] = None
    streams: List[StreamDescriptor] = field(default_factory=list)


def _has_codec(value):
    return bool(value) and str(value) != 'none'


def descriptor_from_format(fmt):
    """
    Build a StreamDescriptor from one yt-dlp format dict.

    Returns:
        StreamDescriptor or None when the format has no id
    """
    stream_id = fmt.get('format_id') or fmt.get('itag')
    if stream_id is None:
        return None

    has_video = _has_codec(fmt.get('vcodec'))
    has_audio = _has_codec(fmt.get('acodec'))

    return StreamDescriptor(
        stream_id=str(stream_id),
        container=fmt.get('ext') or fmt.get('container'),
        has_video=has_video,
        has_audio=has_audio,
        height=fmt.get('height'),
        audio_bitrate=fmt.get('abr') or fmt.get('audioBitrate'),
        # Only muxed streams can be fetched without post-processing
        direct_url=fmt.get('url') if has_video and has_audio else None,
        filesize=fmt.get('filesize') or fmt.get('filesize_approx'),
        note=fmt.get('format_note'),
    )


def catalog_from_info(info):
    """Build a Catalog from a yt-dlp info dict"""
    streams = []
    for fmt in info.get('formats') or []:
        descriptor = descriptor_from_format(fmt)
        if descriptor is not None:
            streams.append(descriptor)

    return Catalog(
        title=info.get('title'),
        duration_seconds=info.get('duration'),
        thumbnail_url=info.get('thumbnail'),
        streams=streams,
    )


def get_catalog(source_url, logger=None):
    """
    Fetch the stream catalog for a source URL.

    Args:
        source_url: Hosted media page URL
        logger: Optional callable(str) for logging

    Returns:
        Catalog

    Raises:
        CatalogUnavailable: On any extraction failure or for playlists
    """

    def log(message):
        if logger:
            logger(message)

    ydl_opts = {
        'quiet': True,
        'no_warnings': True,
        'nocheckcertificate': True,
        'noplaylist': True,
    }
    ydl_opts = apply_ytdlp_extra_args(ydl_opts)

    log(f'Fetching metadata: {source_url}')

    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(source_url, download=False)
    except Exception as e:
        raise CatalogUnavailable(f'Metadata lookup failed for {source_url}: {e}') from e

    if not info:
        raise CatalogUnavailable(f'No metadata returned for {source_url}')
    if 'entries' in info:
        raise CatalogUnavailable('Playlists are not supported')

    catalog = catalog_from_info(info)
    log(f'Found {len(catalog.streams)} streams for: {catalog.title}')
    return catalog


def describe_formats(catalog):
    """
    Summarize a catalog for API clients.

    Returns:
        list of dicts with itag, ext, qualityLabel, hasVideo, hasAudio, filesize
    """
    formats = []
    for stream in catalog.streams:
        formats.append(
            {
                'itag': stream.stream_id,
                'ext': stream.container,
                'qualityLabel': stream.note or (f'{stream.height}p' if stream.height else None),
                'hasVideo': stream.has_video,
                'hasAudio': stream.has_audio,
                'audioBitrate': stream.audio_bitrate,
                'filesize': stream.filesize,
            }
        )
    return formats
