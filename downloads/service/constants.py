"""
Container constants.

Centralized definitions of the container tags accepted as output and the
ffmpeg muxer used for each.
"""

# Containers that request an audio-only artifact
AUDIO_CONTAINERS = ['mp3', 'm4a', 'aac', 'ogg', 'opus', 'wav', 'flac']

# Containers that request an audio+video artifact
VIDEO_CONTAINERS = ['mp4', 'mkv', 'mov']

OUTPUT_CONTAINERS = AUDIO_CONTAINERS + VIDEO_CONTAINERS

# Source container searched when a video track has to be found for an
# audio-only stream; the merge copies the video track so it must fit the output
PREFERRED_VIDEO_SOURCE = {
    'mp4': 'mp4',
    'mkv': 'mp4',
    'mov': 'mp4',
}

# ffmpeg -f muxer name per output container
FFMPEG_MUXERS = {
    'mp4': 'mp4',
    'mkv': 'matroska',
    'mov': 'mov',
}

DEFAULT_AUDIO_TEMP_CONTAINER = 'm4a'
DEFAULT_VIDEO_TEMP_CONTAINER = 'mp4'
