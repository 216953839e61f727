"""
Configuration adapter for the video sender.

Centralizes access to Django settings, ensuring consistent configuration
across the CLI and background tasks.
"""

from pathlib import Path

from django.conf import settings

from sender.service.constants import (
    CONTAINER_MEDIA_TYPES,
    DEFAULT_TARGET_FORMAT,
    FALLBACK_MEDIA_TYPE,
)


def get_temp_dir():
    """Get the workspace base directory for transient files"""
    return Path(settings.VIDEOSENDER_TEMP_DIR)


def get_ffmpeg_path():
    """
    Get the configured ffmpeg executable path.

    Returns:
        str: Absolute path to ffmpeg, or '' when none is configured
    """
    return getattr(settings, 'VIDEOSENDER_FFMPEG_PATH', '') or ''


def resolve_ffmpeg_executable():
    """
    Resolve the ffmpeg executable for a pipeline run.

    This is the default executable provider handed to MediaPipeline. It is
    evaluated per request so settings changes are picked up.

    Returns:
        str or None: Executable path, or None when unavailable
    """
    return get_ffmpeg_path() or None


def get_target_format():
    """Get the target container format (extension without the dot)"""
    target = getattr(settings, 'VIDEOSENDER_TARGET_FORMAT', '') or DEFAULT_TARGET_FORMAT
    return target.lstrip('.').lower()


def get_media_type_for_format(target_format):
    """
    Get the media type declared for a container format.

    Args:
        target_format: Container extension, with or without the leading dot

    Returns:
        str: Media type, e.g. 'video/x-matroska'
    """
    return CONTAINER_MEDIA_TYPES.get(target_format.lstrip('.').lower(), FALLBACK_MEDIA_TYPE)


def get_fetch_timeout():
    """Get the HTTP timeout in seconds for the fetch step"""
    return settings.VIDEOSENDER_FETCH_TIMEOUT


def get_fetch_max_duration():
    """Get the overall download limit in seconds, or None for no limit"""
    return getattr(settings, 'VIDEOSENDER_FETCH_MAX_DURATION', None)


def get_remux_timeout():
    """Get the ffmpeg timeout in seconds, or None for no limit"""
    return getattr(settings, 'VIDEOSENDER_REMUX_TIMEOUT', None)


def get_tmp_max_age_minutes():
    """Get the age after which leftover workspace files are abandoned"""
    return settings.VIDEOSENDER_TMP_MAX_AGE_MINUTES
