"""
Download service for remote media.

Fetches a URL with a single HTTP GET into a workspace file.
"""

import time
from pathlib import Path
from urllib.parse import urlparse

import requests

from sender.service.constants import PLACEHOLDER_EXTENSION
from sender.service.outcomes import FetchResult, PipelineCancelled
from sender.service.workspace import normalize_extension

CHUNK_SIZE = 8192


def extension_from_url(url):
    """
    Derive a file extension from a URL's path component.

    Query strings and fragments are ignored. Anything that does not parse
    as a URL, or has no extension, gets the placeholder extension.

    Args:
        url: Source URL (not necessarily well-formed)

    Returns:
        str: Extension with leading dot, e.g. '.mp4'
    """
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return PLACEHOLDER_EXTENSION

    if not parsed.scheme or not parsed.netloc:
        return PLACEHOLDER_EXTENSION

    return normalize_extension(Path(parsed.path).suffix)


def fetch_to_workspace(url, scope, timeout=30, cancel_flag=None, max_duration=None, logger=None):
    """
    Download a URL into a newly allocated workspace file.

    The path is allocated from `scope` before any network I/O, so the caller
    owning the scope cleans it up whatever happens here. No retries.

    Args:
        url: Source URL
        scope: WorkspaceScope to allocate the download path from
        timeout: requests timeout in seconds, applied to each socket read
        cancel_flag: Optional threading.Event; set to abandon the download
        max_duration: Optional limit in seconds for the whole download
        logger: Optional callable(str) for logging

    Returns:
        FetchResult

    Raises:
        PipelineCancelled: If cancel_flag is set mid-download
    """

    def log(message):
        if logger:
            logger(message)

    out_path = scope.allocate(extension_from_url(url))

    log(f'Downloading from: {url}')
    log(f'Saving to: {out_path}')

    deadline = None if max_duration is None else time.monotonic() + max_duration

    try:
        response = requests.get(url, stream=True, timeout=timeout)
        try:
            response.raise_for_status()

            with open(out_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if cancel_flag is not None and cancel_flag.is_set():
                        raise PipelineCancelled(f'Download cancelled: {url}')
                    if deadline is not None and time.monotonic() >= deadline:
                        log(f'Download took longer than {max_duration} seconds')
                        return FetchResult.failed(
                            f'Download took longer than {max_duration} seconds'
                        )
                    if chunk:
                        f.write(chunk)
        finally:
            response.close()
    except requests.exceptions.RequestException as e:
        log(f'Download failed: {e}')
        return FetchResult.failed(str(e))
    except OSError as e:
        log(f'Writing download failed: {e}')
        return FetchResult.failed(str(e))

    file_size = out_path.stat().st_size
    mime_type = response.headers.get('content-type', 'application/octet-stream')

    log(f'Downloaded {file_size} bytes')

    return FetchResult.succeeded(out_path, file_size, mime_type)
