"""
Main video sender entrypoint.

MediaPipeline sequences fetch -> remux -> deliver for one URL and converts
every failure into a typed outcome. Intermediate files are released before
process() returns, on every path.
"""
from sender.service.config import (
    get_fetch_max_duration,
    get_fetch_timeout,
    get_media_type_for_format,
    get_remux_timeout,
    get_target_format,
    get_temp_dir,
    resolve_ffmpeg_executable,
)
from sender.service.constants import PLACEHOLDER_EXTENSION
from sender.service.download import fetch_to_workspace
from sender.service.outcomes import (
    Cancelled,
    Delivered,
    DeliveryFailed,
    DownloadFailed,
    InternalError,
    InvalidRequest,
    MediaPayload,
    PipelineCancelled,
    RemuxFailed,
    ToolUnavailable,
    ToolUnavailableError,
    WorkspaceInitError,
    WorkspaceInitFailed,
)
from sender.service.process import remux
from sender.service.workspace import Workspace, normalize_extension

ACKNOWLEDGEMENT = 'Processing video, please wait...'

STAGE_START = 'start'
STAGE_FETCHING = 'fetching'
STAGE_TRANSCODING = 'transcoding'
STAGE_DELIVERING = 'delivering'
STAGE_FAILED = 'failed'
STAGE_CLEANUP = 'cleanup'
STAGE_DONE = 'done'


class MediaPipeline:
    """
    Fetch a remote video, remux it into the target container, deliver it.

    Args:
        workspace: Workspace holding the intermediate files
        resolve_executable: Callable returning the ffmpeg path or None
        target_format: Container extension to remux into (default 'mkv')
        notify: Optional callable(str), called once per request before the
            download starts ("processing..." acknowledgement)
        fetch_timeout: HTTP read timeout in seconds
        fetch_max_duration: Overall download limit in seconds, or None
        remux_timeout: ffmpeg timeout in seconds, or None
        logger: Optional callable(str) for logging
    """

    def __init__(self, workspace, resolve_executable, target_format='mkv', notify=None,
                 fetch_timeout=30, fetch_max_duration=None, remux_timeout=None,
                 logger=None):
        self.workspace = workspace
        self.resolve_executable = resolve_executable
        extension = normalize_extension(target_format)
        if extension == PLACEHOLDER_EXTENSION:
            raise ValueError(f"Unsupported target format: {target_format!r}")
        self.target_format = extension.lstrip('.')
        self.media_type = get_media_type_for_format(self.target_format)
        self.notify = notify
        self.fetch_timeout = fetch_timeout
        self.fetch_max_duration = fetch_max_duration
        self.remux_timeout = remux_timeout
        self.logger = logger

    @classmethod
    def from_settings(cls, notify=None, logger=None, **overrides):
        """Build a pipeline from Django settings"""
        options = {
            'workspace': Workspace(get_temp_dir()),
            'resolve_executable': resolve_ffmpeg_executable,
            'target_format': get_target_format(),
            'fetch_timeout': get_fetch_timeout(),
            'fetch_max_duration': get_fetch_max_duration(),
            'remux_timeout': get_remux_timeout(),
        }
        options.update(overrides)
        return cls(notify=notify, logger=logger, **options)

    def log(self, message):
        if self.logger:
            self.logger(message)

    def _acknowledge(self):
        if not self.notify:
            return
        try:
            self.notify(ACKNOWLEDGEMENT)
        except Exception as e:
            self.log(f"Acknowledgement could not be sent: {e}")

    def process(self, url, deliver, cancel_flag=None):
        """
        Run one request through the pipeline.

        Never raises for ordinary exceptions: every failure is returned as a
        Failure outcome. All workspace files allocated for the request are
        gone by the time this returns.

        Args:
            url: Source URL
            deliver: Callable(MediaPayload) receiving the final media
            cancel_flag: Optional threading.Event to abandon the request

        Returns:
            PipelineOutcome (Delivered or a Failure subclass)
        """
        stages = [STAGE_START]

        if not url or not url.strip():
            return InvalidRequest(stages=stages + [STAGE_FAILED, STAGE_DONE])
        url = url.strip()

        # Checked before anything touches the network or the filesystem
        try:
            executable = self.resolve_executable()
        except Exception as e:
            self.log(f"ffmpeg executable could not be resolved: {e}")
            return ToolUnavailable(str(e), stages=stages + [STAGE_FAILED, STAGE_DONE])
        if not executable:
            self.log("ffmpeg executable is not available")
            return ToolUnavailable(stages=stages + [STAGE_FAILED, STAGE_DONE])

        try:
            self.workspace.ensure_base()
        except WorkspaceInitError as e:
            self.log(f"Workspace unavailable: {e}")
            return WorkspaceInitFailed(str(e), stages=stages + [STAGE_FAILED, STAGE_DONE])

        self._acknowledge()

        scope = None
        try:
            with self.workspace.scope(logger=self.logger) as scope:
                try:
                    outcome = self._run_stages(url, executable, scope, deliver, cancel_flag, stages)
                finally:
                    stages.append(STAGE_CLEANUP)
        except PipelineCancelled as e:
            self.log(f"Request cancelled: {e}")
            outcome = Cancelled(str(e))
        except ToolUnavailableError as e:
            outcome = ToolUnavailable(str(e))
        except Exception as e:
            self.log(f"Unknown error while processing video: {e!r}")
            outcome = InternalError(str(e))

        if not outcome.ok:
            stages.insert(-1, STAGE_FAILED)
        stages.append(STAGE_DONE)
        outcome.stages = stages

        if scope is not None and scope.failed_releases:
            self.log(f"{len(scope.failed_releases)} workspace file(s) could not be removed")

        return outcome

    def _run_stages(self, url, executable, scope, deliver, cancel_flag, stages):
        stages.append(STAGE_FETCHING)
        fetched = fetch_to_workspace(
            url,
            scope,
            timeout=self.fetch_timeout,
            cancel_flag=cancel_flag,
            max_duration=self.fetch_max_duration,
            logger=self.logger,
        )
        if not fetched.ok:
            return DownloadFailed(fetched.error)

        self._check_cancel(cancel_flag)

        stages.append(STAGE_TRANSCODING)
        self.log(f"Remuxing {fetched.path} to {self.target_format}...")
        remuxed = remux(
            fetched.path,
            scope,
            executable,
            target_format=self.target_format,
            cancel_flag=cancel_flag,
            timeout=self.remux_timeout,
            logger=self.logger,
        )
        if not remuxed.ok:
            return RemuxFailed(remuxed.error)

        self._check_cancel(cancel_flag)

        stages.append(STAGE_DELIVERING)
        payload = MediaPayload(
            data=remuxed.path.read_bytes(),
            media_type=self.media_type,
            extension=f".{self.target_format}",
        )
        try:
            deliver(payload)
        except Exception as e:
            self.log(f"Delivery failed: {e}")
            return DeliveryFailed(str(e))

        self.log(f"Delivered {payload.size} bytes")
        return Delivered(payload)

    @staticmethod
    def _check_cancel(cancel_flag):
        if cancel_flag is not None and cancel_flag.is_set():
            raise PipelineCancelled('Request cancelled between stages')
