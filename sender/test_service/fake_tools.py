"""
Stand-in ffmpeg executables for tests.

Each fake is a small shell script invoked exactly like ffmpeg would be:
    <tool> -y -i <input> -c copy <output>
"""
import os
import stat
from pathlib import Path

COPY_SCRIPT = '#!/bin/sh\ncp "$3" "$6"\n'

FAIL_SCRIPT = (
    '#!/bin/sh\n'
    'echo "ffmpeg version n6.1" >&2\n'
    'echo "$3: Invalid data found when processing input" >&2\n'
    'exit 1\n'
)

# Writes a partial output before failing
PARTIAL_FAIL_SCRIPT = '#!/bin/sh\necho partial > "$6"\necho "Conversion failed!" >&2\nexit 1\n'

EMPTY_OUTPUT_SCRIPT = '#!/bin/sh\n: > "$6"\n'

SLOW_SCRIPT = '#!/bin/sh\nexec sleep 30\n'


def make_fake_ffmpeg(directory, body=COPY_SCRIPT, name='ffmpeg'):
    """Write an executable script and return its path as a string"""
    path = Path(directory) / name
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


def fake_response(data=b'', content_type='video/mp4', chunk_size=8192):
    """Build a MagicMock shaped like a streaming requests.Response"""
    from unittest.mock import MagicMock

    response = MagicMock()
    response.headers = {'content-type': content_type}
    response.iter_content.return_value = [
        data[i:i + chunk_size] for i in range(0, len(data), chunk_size)
    ]
    return response


def workspace_files(directory):
    """Names of files left in a directory"""
    return sorted(os.listdir(directory))
