"""
Remux service.

Repackages a downloaded file into the target container with ffmpeg stream
copy (no re-encoding). ffmpeg runs as a child process that is always reaped
before remux() returns, including on cancellation and timeout.
"""
import subprocess
import time

from sender.service.outcomes import PipelineCancelled, RemuxResult, ToolUnavailableError

# How often the wait loop checks the cancel flag
POLL_INTERVAL = 0.25

# Seconds to wait after terminate() before kill()
TERMINATE_GRACE = 5

# Lines of ffmpeg stderr kept for the error message
STDERR_TAIL_LINES = 5


def build_remux_command(executable, input_path, output_path):
    """
    Build the ffmpeg argument list for a stream-copy remux.

    The list is passed to Popen without a shell, so paths containing
    spaces or quotes stay single arguments.
    """
    return [
        str(executable),
        '-y',  # Overwrite output file
        '-i', str(input_path),
        '-c', 'copy',  # Copy all streams without re-encoding
        str(output_path),
    ]


def summarize_stderr(stderr, returncode):
    """Reduce ffmpeg's stderr to the last few meaningful lines"""
    lines = [line.strip() for line in (stderr or '').splitlines() if line.strip()]
    if not lines:
        return f"ffmpeg failed with code {returncode}"
    tail = ' | '.join(lines[-STDERR_TAIL_LINES:])
    return f"ffmpeg failed with code {returncode}: {tail}"


def _stop_process(proc, log):
    """Terminate a running child, escalating to kill, and reap it"""
    if proc.poll() is not None:
        return

    log(f"Terminating ffmpeg (pid {proc.pid})")
    proc.terminate()
    try:
        proc.communicate(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        log(f"ffmpeg did not exit, killing (pid {proc.pid})")
        proc.kill()
        proc.communicate()


def run_tool(cmd, cancel_flag=None, timeout=None, logger=None):
    """
    Run a command to completion, honoring cancellation and timeout.

    Args:
        cmd: Argument list
        cancel_flag: Optional threading.Event
        timeout: Optional overall limit in seconds
        logger: Optional callable(str) for logging

    Returns:
        (returncode, stderr)

    Raises:
        OSError: If the executable cannot be launched
        PipelineCancelled: If cancel_flag was set while running
        subprocess.TimeoutExpired: If the timeout elapsed
    """

    def log(message):
        if logger:
            logger(message)

    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        text=True,
        errors='replace',
    )

    deadline = None if timeout is None else time.monotonic() + timeout
    try:
        while True:
            if cancel_flag is not None and cancel_flag.is_set():
                raise PipelineCancelled('Remux cancelled')

            wait = POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise subprocess.TimeoutExpired(cmd, timeout)
                wait = min(wait, remaining)

            try:
                _, stderr = proc.communicate(timeout=wait)
            except subprocess.TimeoutExpired:
                continue
            return proc.returncode, stderr
    finally:
        _stop_process(proc, log)


def remux(input_path, scope, executable, target_format='mkv', cancel_flag=None,
          timeout=None, logger=None):
    """
    Remux a media file into the target container.

    A zero exit status is trusted as success; the output is not inspected.

    Args:
        input_path: Path to the downloaded file (read only)
        scope: WorkspaceScope to allocate the output path from
        executable: Path to ffmpeg
        target_format: Container extension, e.g. 'mkv'
        cancel_flag: Optional threading.Event
        timeout: Optional limit in seconds for the ffmpeg run
        logger: Optional callable(str) for logging

    Returns:
        RemuxResult

    Raises:
        ToolUnavailableError: If no executable is given
        PipelineCancelled: If cancel_flag was set while ffmpeg ran
    """

    def log(message):
        if logger:
            logger(message)

    if not executable:
        raise ToolUnavailableError('No ffmpeg executable configured')

    output_path = scope.allocate(target_format)
    cmd = build_remux_command(executable, input_path, output_path)

    log(f"Remuxing {input_path} to {output_path}")
    log(f"Running: {' '.join(cmd)}")

    try:
        returncode, stderr = run_tool(cmd, cancel_flag=cancel_flag, timeout=timeout, logger=logger)
    except subprocess.TimeoutExpired:
        log(f"ffmpeg timed out after {timeout}s")
        return RemuxResult.failed(f"ffmpeg timed out after {timeout} seconds")
    except OSError as e:
        log(f"ffmpeg could not be started: {e}")
        return RemuxResult.failed(f"ffmpeg could not be started: {e}")

    if returncode != 0:
        log(f"ffmpeg stderr: {stderr}")
        return RemuxResult.failed(summarize_stderr(stderr, returncode), returncode=returncode)

    log("Remux complete")
    return RemuxResult.succeeded(output_path, returncode=returncode)
