from django.apps import AppConfig


class SenderConfig(AppConfig):
    name = 'sender'

    def ready(self):
        """Create the workspace base directory once at startup"""
        from sender.service.config import get_temp_dir
        from sender.service.outcomes import WorkspaceInitError
        from sender.service.workspace import Workspace

        try:
            Workspace(get_temp_dir()).ensure_base()
        except WorkspaceInitError:
            # Reported per request as WorkspaceInitFailed
            pass
