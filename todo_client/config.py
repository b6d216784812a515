"""Configuration management for the todo client.

Values live in a small JSON file. Environment variables override whatever
the file holds so a shell session can point the client somewhere else
without touching the file:

    TODO_CLIENT_SERVER_URL     base URL of the /tasks API
    TODO_CLIENT_TIMEOUT        request timeout in seconds
    TODO_CLIENT_VERIFY_SSL     0/1
    TODO_CLIENT_SERVER_FILTER  0/1, send the status filter to the server
    TODO_CLIENT_LOG_LEVEL      DEBUG, INFO, ...
    TODO_CLIENT_CONFIG         path of the JSON file itself
"""

import os
import json
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = 'https://fastapi-app-iscc.onrender.com/api'
DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser('~'), '.config', 'todo_client', 'config.json')

DEFAULTS: Dict[str, Any] = {
    'server_url': DEFAULT_SERVER_URL,
    'timeout': 10.0,
    'verify_ssl': True,
    'theme': 'light',
    'server_side_filter': False,
    'log_level': 'INFO',
}


def _trueish(v: str | None) -> bool:
    if not v:
        return False
    return v.lower() in ('1', 'true', 'yes', 'on')


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    url = os.getenv('TODO_CLIENT_SERVER_URL')
    if url:
        out['server_url'] = url
    timeout = os.getenv('TODO_CLIENT_TIMEOUT')
    if timeout:
        try:
            out['timeout'] = float(timeout)
        except ValueError:
            logger.warning('ignoring TODO_CLIENT_TIMEOUT=%r (not a number)', timeout)
    if os.getenv('TODO_CLIENT_VERIFY_SSL') is not None:
        out['verify_ssl'] = _trueish(os.getenv('TODO_CLIENT_VERIFY_SSL'))
    if os.getenv('TODO_CLIENT_SERVER_FILTER') is not None:
        out['server_side_filter'] = _trueish(os.getenv('TODO_CLIENT_SERVER_FILTER'))
    level = os.getenv('TODO_CLIENT_LOG_LEVEL')
    if level:
        out['log_level'] = level.upper()
    return out


class Config:
    """Configuration manager for the todo client."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or os.getenv('TODO_CLIENT_CONFIG') or DEFAULT_CONFIG_FILE
        self._config: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Load configuration from file, then apply environment overrides."""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    data = json.load(f)
                self._config = data if isinstance(data, dict) else {}
            except (OSError, ValueError):
                # If file is corrupted, start with defaults in memory only
                logger.warning('config file %s unreadable; using defaults', self.config_file)
                self._config = dict(DEFAULTS)
        else:
            self._config = dict(DEFAULTS)
            try:
                self.save()
            except OSError:
                logger.warning('could not write default config to %s', self.config_file)
        self._overrides = _env_overrides()

    def save(self) -> None:
        """Save configuration to file."""
        directory = os.path.dirname(self.config_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_file, 'w') as f:
            json.dump(self._config, f, indent=2)

    def override(self, **values: Any) -> None:
        """Set values for this session only (command-line flags); nothing is saved."""
        for key, value in values.items():
            if key not in DEFAULTS:
                raise KeyError(key)
            if value is not None:
                self._overrides[key] = value

    def _get(self, key: str) -> Any:
        if key in self._overrides:
            return self._overrides[key]
        return self._config.get(key, DEFAULTS[key])

    def _set(self, key: str, value: Any) -> None:
        self._config[key] = value
        # an explicit set wins over the environment for the rest of the session
        self._overrides.pop(key, None)
        self.save()

    @property
    def server_url(self) -> str:
        return str(self._get('server_url')).rstrip('/')

    @server_url.setter
    def server_url(self, value: str):
        self._set('server_url', value)

    @property
    def timeout(self) -> float:
        try:
            return float(self._get('timeout'))
        except (TypeError, ValueError):
            return DEFAULTS['timeout']

    @timeout.setter
    def timeout(self, value: float):
        self._set('timeout', float(value))

    @property
    def verify_ssl(self) -> bool:
        return bool(self._get('verify_ssl'))

    @verify_ssl.setter
    def verify_ssl(self, value: bool):
        self._set('verify_ssl', bool(value))

    @property
    def theme(self) -> str:
        return str(self._get('theme'))

    @theme.setter
    def theme(self, value: str):
        self._set('theme', str(value))

    @property
    def server_side_filter(self) -> bool:
        return bool(self._get('server_side_filter'))

    @server_side_filter.setter
    def server_side_filter(self, value: bool):
        self._set('server_side_filter', bool(value))

    @property
    def log_level(self) -> str:
        return str(self._get('log_level')).upper()

    @log_level.setter
    def log_level(self, value: str):
        self._set('log_level', str(value).upper())
