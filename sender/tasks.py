import os
import sys
from datetime import datetime
from pathlib import Path

from huey.contrib.djhuey import task

from sender.service.outcomes import outcome_to_dict
from sender.service.pipeline import MediaPipeline


def write_log(log_path, message):
    """Append message to log file, or to stderr when no log file is given"""
    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    line = f"[{timestamp}] {message}\n"
    if log_path:
        os.makedirs(os.path.dirname(log_path) or '.', exist_ok=True)
        with open(log_path, 'a') as f:
            f.write(line)
    else:
        sys.stderr.write(line)


def save_payload(payload, output_path):
    """Write delivered media to its final location outside the workspace"""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(payload.data)


@task()
def send_video_task(url, output_path=None, log_path=None):
    """
    Process one video URL in the background.

    Each task invocation owns its own workspace scope, so the consumer can
    run many of these concurrently.

    Args:
        url: Source URL
        output_path: Where to write the remuxed video. When omitted the
            result carries the media as a base64 data URI instead.
        log_path: Optional log file; defaults to stderr

    Returns:
        dict: outcome_to_dict() of the pipeline outcome
    """
    delivered = {}

    def logger(message):
        write_log(log_path, message)

    def deliver(payload):
        if output_path:
            save_payload(payload, output_path)
        else:
            delivered['data_uri'] = payload.to_data_uri()

    pipeline = MediaPipeline.from_settings(notify=logger, logger=logger)
    write_log(log_path, f"=== TASK STARTED: {url} ===")
    outcome = pipeline.process(url, deliver)

    result = outcome_to_dict(outcome)
    if outcome.ok:
        if output_path:
            result['output_path'] = str(output_path)
        else:
            result['data_uri'] = delivered['data_uri']
        write_log(log_path, "=== READY ===")
    else:
        write_log(log_path, "=== ERROR ===")
        write_log(log_path, outcome.user_message())

    return result
