"""Client-side login state persisted between runs.

Lifecycle: :meth:`ClientSession.load` on start, :meth:`ClientSession.set`
after a successful login or registration, :meth:`ClientSession.clear` on
logout.
"""

import json
import logging
from pathlib import Path

from clinic_backend.core import config

logger = logging.getLogger(__name__)


class ClientSession:
    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or config.CLIENT_SESSION_PATH).expanduser()
        self.token: str | None = None
        self.user: dict | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.user.get('role') == 'ADMIN'

    def load(self) -> 'ClientSession':
        if not self.path.exists():
            return self

        try:
            data = json.loads(self.path.read_text())
            token = data['token']
            user = data['user']
            if not isinstance(token, str) or not isinstance(user, dict):
                raise ValueError('Session file has unexpected shape.')
        except (OSError, ValueError, KeyError, TypeError):
            logger.warning('Discarding unreadable session file %s', self.path)
            self.clear()
            return self

        self.token = token
        self.user = user
        return self

    def set(self, token: str, user: dict) -> None:
        self.token = token
        self.user = user
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({'token': token, 'user': user}))

    def clear(self) -> None:
        self.token = None
        self.user = None
        self.path.unlink(missing_ok=True)
