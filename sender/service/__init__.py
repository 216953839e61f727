"""
Service layer for the video sender.

This module contains the fetch / remux / deliver pipeline and its temporary
workspace, independent of any Django models. These functions are used by:
- The send_video management command (management/commands/send_video.py)
- The huey background task (sender/tasks.py)
"""
