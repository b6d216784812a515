"""Client for a remote /tasks to-do API.

The TaskStore keeps a local task list consistent with the server; the
command-line and Tk front ends are built on top of it.
"""
from .models import FilterMode, Task, Theme
from .state import ClientState, apply_filter
from .store import TaskStore

__all__ = ['ClientState', 'FilterMode', 'Task', 'TaskStore', 'Theme', 'apply_filter']
