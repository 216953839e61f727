"""
Result types for the fetch / remux / deliver pipeline.

Stage results (FetchResult, RemuxResult) are either a path or an error,
never both. PipelineOutcome is what the caller of MediaPipeline.process()
receives: a Delivered payload or exactly one Failure.
"""
import base64
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


class WorkspaceInitError(Exception):
    """Raised when the workspace base directory cannot be created"""

    pass


class ToolUnavailableError(Exception):
    """Raised when no ffmpeg executable is available"""

    pass


class PipelineCancelled(Exception):
    """Raised inside a stage when the request's cancel flag is set"""

    pass


@dataclass
class FetchResult:
    """Outcome of downloading a URL into the workspace"""

    path: Optional[Path] = None
    error: Optional[str] = None
    file_size: int = 0
    mime_type: Optional[str] = None

    @property
    def ok(self):
        return self.error is None and self.path is not None

    @classmethod
    def succeeded(cls, path, file_size, mime_type=None):
        return cls(path=Path(path), file_size=file_size, mime_type=mime_type)

    @classmethod
    def failed(cls, error):
        return cls(error=error or 'Unknown download error')


@dataclass
class RemuxResult:
    """Outcome of remuxing a workspace file into the target container"""

    path: Optional[Path] = None
    error: Optional[str] = None
    returncode: Optional[int] = None

    @property
    def ok(self):
        return self.error is None and self.path is not None

    @classmethod
    def succeeded(cls, path, returncode=0):
        return cls(path=Path(path), returncode=returncode)

    @classmethod
    def failed(cls, error, returncode=None):
        return cls(error=error or 'Unknown remux error', returncode=returncode)


@dataclass
class MediaPayload:
    """Final media bytes handed to the delivery sink"""

    data: bytes
    media_type: str
    extension: str

    @property
    def size(self):
        return len(self.data)

    def to_data_uri(self):
        """Encode the payload as a single embeddable base64 data URI"""
        encoded = base64.b64encode(self.data).decode('ascii')
        return f"data:{self.media_type};base64,{encoded}"


@dataclass
class PipelineOutcome:
    """Base class for everything MediaPipeline.process() returns"""

    stages: List[str] = field(default_factory=list, kw_only=True)

    ok = False
    kind = 'outcome'

    def user_message(self):
        raise NotImplementedError


@dataclass
class Delivered(PipelineOutcome):
    """The payload was produced and accepted by the delivery sink"""

    payload: MediaPayload

    ok = True
    kind = 'delivered'

    def user_message(self):
        return f"Delivered {self.payload.size:,} bytes ({self.payload.media_type})"


@dataclass
class Failure(PipelineOutcome):
    """A request that ended without delivering media"""

    message: str = ''

    summary = 'Video processing failed'

    def user_message(self):
        if self.message:
            return f"{self.summary}: {self.message}"
        return f"{self.summary}."


@dataclass
class InvalidRequest(Failure):
    kind = 'invalid_request'
    summary = 'Please provide a video URL'


@dataclass
class ToolUnavailable(Failure):
    kind = 'tool_unavailable'
    summary = 'ffmpeg executable not found, check the ffmpeg configuration'


@dataclass
class WorkspaceInitFailed(Failure):
    kind = 'workspace_init_failed'
    summary = 'Temporary directory could not be created'


@dataclass
class DownloadFailed(Failure):
    kind = 'download_failed'
    summary = 'Video download failed'


@dataclass
class RemuxFailed(Failure):
    kind = 'remux_failed'
    summary = 'Video remux failed'


@dataclass
class DeliveryFailed(Failure):
    kind = 'delivery_failed'
    summary = 'Sending the video failed'


@dataclass
class Cancelled(Failure):
    kind = 'cancelled'
    summary = 'Video processing was cancelled'


@dataclass
class InternalError(Failure):
    kind = 'internal_error'
    summary = 'An unknown error occurred while processing the video'

    def user_message(self):
        # Internal details stay in the logs
        return f"{self.summary}."


def outcome_to_dict(outcome):
    """
    Serialize an outcome for JSON output or task results.

    The payload bytes are never included; only their size and media type.
    """
    result = {
        'success': outcome.ok,
        'kind': outcome.kind,
        'stages': list(outcome.stages),
        'message': outcome.user_message(),
    }
    if outcome.ok:
        result['media_type'] = outcome.payload.media_type
        result['extension'] = outcome.payload.extension
        result['size'] = outcome.payload.size
    else:
        result['error'] = outcome.message
    return result
