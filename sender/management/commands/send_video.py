"""
Django management command for sending a video.

Downloads a video URL, remuxes it into the target container and delivers
the result either to a file or as a base64 data URI on stdout.

This is a thin CLI wrapper around MediaPipeline.
"""
import json
import signal
import sys
import threading
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from sender.service.outcomes import outcome_to_dict
from sender.service.pipeline import MediaPipeline
from sender.service.workspace import Workspace


class Command(BaseCommand):
    help = 'Download a video URL, remux it losslessly and deliver it'

    def add_arguments(self, parser):
        parser.add_argument('url', type=str, help='Video URL')
        parser.add_argument(
            '--format',
            type=str,
            default=None,
            help='Target container (default: VIDEOSENDER_TARGET_FORMAT)',
        )
        parser.add_argument(
            '--output',
            type=str,
            default=None,
            help='Write the video to this file instead of printing a data URI',
        )
        parser.add_argument(
            '--tempdir',
            type=str,
            default=None,
            help='Workspace directory (default: VIDEOSENDER_TEMP_DIR)',
        )
        parser.add_argument('--verbose', action='store_true', help='Enable verbose output')
        parser.add_argument('--json', action='store_true', help='Output result as JSON')

    def handle(self, *args, **options):
        url = options['url']
        output = options['output']
        verbose = options['verbose']
        output_json = options['json']

        def logger(message):
            if verbose:
                self.stdout.write(message)

        def notify(message):
            if not output_json:
                self.stdout.write(self.style.NOTICE(message))

        delivered = {}

        def deliver(payload):
            if output:
                output_path = Path(output)
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_bytes(payload.data)
            elif output_json:
                delivered['data_uri'] = payload.to_data_uri()
            else:
                self.stdout.write(payload.to_data_uri())

        overrides = {}
        if options['format']:
            overrides['target_format'] = options['format']
        if options['tempdir']:
            overrides['workspace'] = Workspace(options['tempdir'])

        try:
            pipeline = MediaPipeline.from_settings(notify=notify, logger=logger, **overrides)
        except ValueError as e:
            raise CommandError(str(e))

        # SIGTERM abandons the request; the pipeline still cleans up.
        # Handlers can only be installed from the main thread.
        cancel_flag = threading.Event()
        in_main_thread = threading.current_thread() is threading.main_thread()
        if in_main_thread:
            previous_handler = signal.signal(
                signal.SIGTERM, lambda signum, frame: cancel_flag.set()
            )
        try:
            outcome = pipeline.process(url, deliver, cancel_flag=cancel_flag)
        except KeyboardInterrupt:
            raise CommandError('Interrupted')
        finally:
            if in_main_thread:
                signal.signal(signal.SIGTERM, previous_handler)

        if output_json:
            result = outcome_to_dict(outcome)
            if outcome.ok and output:
                result['output_path'] = output
            elif outcome.ok:
                result['data_uri'] = delivered['data_uri']
            self.stdout.write(json.dumps(result, indent=2))
            if not outcome.ok:
                sys.exit(1)
            return

        if not outcome.ok:
            raise CommandError(outcome.user_message())

        self.stdout.write(self.style.SUCCESS(f"✓ {outcome.user_message()}"))
        if output:
            self.stdout.write(f"  Output: {output}")
