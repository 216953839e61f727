"""
Management command to clean up abandoned workspace files.

Finds and removes files left in VIDEOSENDER_TEMP_DIR by processes that
were killed before their cleanup ran. The directory itself is kept.
"""
from datetime import timedelta

from django.core.management.base import BaseCommand

from sender.service.config import get_temp_dir, get_tmp_max_age_minutes
from sender.service.workspace import Workspace


class Command(BaseCommand):
    help = 'Clean up abandoned files from the video workspace directory'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without actually deleting'
        )
        parser.add_argument(
            '--force',
            action='store_true',
            help='Delete files without confirmation'
        )
        parser.add_argument(
            '--max-age',
            type=int,
            default=None,
            help='Maximum age in minutes before considering a file abandoned '
                 '(default: VIDEOSENDER_TMP_MAX_AGE_MINUTES)'
        )

    def handle(self, *args, **options):
        """Find and clean up abandoned workspace files"""
        dry_run = options['dry_run']
        force = options['force']
        max_age_minutes = options['max_age']
        if max_age_minutes is None:
            max_age_minutes = get_tmp_max_age_minutes()

        workspace = Workspace(get_temp_dir())

        files = workspace.list_files()
        if not files:
            self.stdout.write(self.style.SUCCESS("No workspace files found"))
            return

        stale = workspace.find_stale(max_age_minutes * 60)
        plural = 's' if len(files) != 1 else ''

        if not stale:
            self.stdout.write(self.style.SUCCESS(
                f"Found {len(files)} workspace file{plural}, "
                f"but none are older than {max_age_minutes} minutes"
            ))
            return

        # Display findings
        plural = 's' if len(stale) != 1 else ''
        self.stdout.write(f"\nFound {len(stale)} abandoned file{plural} in {workspace.base_dir}:")
        self.stdout.write(f"{'=' * 80}")

        total_size = 0
        for path, age_seconds, size in stale:
            total_size += size
            age_str = str(timedelta(seconds=int(age_seconds)))
            size_mb = size / (1024 * 1024)
            self.stdout.write(f"{path.name:40} | Age: {age_str:15} | Size: {size_mb:6.1f} MB")

        self.stdout.write(f"{'=' * 80}")
        self.stdout.write(f"Total size: {total_size / (1024 * 1024):.1f} MB\n")

        if dry_run:
            self.stdout.write(self.style.WARNING(
                f"\nDRY RUN: Would delete {len(stale)} file{plural}"
            ))
            self.stdout.write("Run without --dry-run to actually delete")
            return

        if not force:
            response = input(f"\nDelete these {len(stale)} file{plural}? [y/N]: ")
            if response.lower() != 'y':
                self.stdout.write("Cancelled")
                return

        deleted_count = 0
        for path, _, _ in stale:
            errors = []
            if workspace.release(path, logger=errors.append):
                self.stdout.write(self.style.SUCCESS(f"✓ Deleted: {path.name}"))
                deleted_count += 1
            else:
                self.stdout.write(self.style.ERROR(f"✗ {errors[-1]}"))

        self.stdout.write(self.style.SUCCESS(
            f"\n✓ Deleted {deleted_count} of {len(stale)} file{plural}"
        ))
