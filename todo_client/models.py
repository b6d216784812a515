"""Data models shared by the API layer, the store and the front ends."""
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

TaskId = Union[int, str]


class FilterMode(str, Enum):
    ALL = 'all'
    PENDING = 'pending'
    FINISHED = 'finished'

    @classmethod
    def parse(cls, value) -> 'FilterMode':
        """Accept a FilterMode or a case-insensitive label ('All', 'pending', ...)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown filter mode {value!r} (expected all, pending or finished)")

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Theme(str, Enum):
    LIGHT = 'light'
    DARK = 'dark'

    @classmethod
    def parse(cls, value) -> 'Theme':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown theme {value!r} (expected light or dark)")

    def toggled(self) -> 'Theme':
        return Theme.LIGHT if self is Theme.DARK else Theme.DARK


class Task(BaseModel):
    """A task as returned by the server.

    Instances are frozen: any change goes through the server and comes back
    as a new Task.
    """
    model_config = ConfigDict(frozen=True, extra='ignore')

    id: TaskId
    title: str
    description: str = ''
    completed: bool = False

    @field_validator('description', mode='before')
    @classmethod
    def _none_description(cls, v):
        # some server builds return null for an empty description
        return '' if v is None else v

    def to_payload(self) -> dict:
        """Full representation sent on PUT /tasks/{id}."""
        return {
            'title': self.title,
            'description': self.description,
            'completed': self.completed,
        }

    def merged(self, title: Optional[str] = None, description: Optional[str] = None,
               completed: Optional[bool] = None) -> 'Task':
        changes = {}
        if title is not None:
            changes['title'] = title
        if description is not None:
            changes['description'] = description
        if completed is not None:
            changes['completed'] = completed
        return self.model_copy(update=changes)
