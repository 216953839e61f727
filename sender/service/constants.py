"""
Container format constants.

Centralized definitions of target containers and their media types.
"""

# Extension used when no usable extension can be derived
PLACEHOLDER_EXTENSION = '.tmp'

# Longest extension (including the dot) accepted from a URL or hint
MAX_EXTENSION_LENGTH = 10

DEFAULT_TARGET_FORMAT = 'mkv'

# Media type declared for each container the remux step can produce
CONTAINER_MEDIA_TYPES = {
    'mkv': 'video/x-matroska',
    'mka': 'audio/x-matroska',
    'mp4': 'video/mp4',
    'm4a': 'audio/mp4',
    'mov': 'video/quicktime',
    'webm': 'video/webm',
    'ogg': 'video/ogg',
    'mp3': 'audio/mpeg',
    'avi': 'video/x-msvideo',
    'ts': 'video/mp2t',
    'flv': 'video/x-flv',
}

FALLBACK_MEDIA_TYPE = 'application/octet-stream'
