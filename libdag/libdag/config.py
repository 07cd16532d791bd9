"""Repository configuration: bare flag, remotes and branch upstreams."""

import configparser
import io

from .constants import CONFIG_FILE
from .errors import RemoteNotFoundError, RepositoryError
from .storage import Storage

CORE_SECTION = 'core'


def _remote_section(name: str) -> str:
    return f'remote "{name}"'


def _branch_section(name: str) -> str:
    return f'branch "{name}"'


class Config:
    """INI-style key/value configuration stored under the ``config`` key.

    Every setter writes the whole file back immediately."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def _read(self) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None)
        data = self.storage.get(CONFIG_FILE)
        if data:
            try:
                parser.read_string(data.decode('utf-8'))
            except configparser.Error as e:
                msg = 'Repository config is corrupted'
                raise RepositoryError(msg) from e
        return parser

    def _write(self, parser: configparser.ConfigParser) -> None:
        buffer = io.StringIO()
        parser.write(buffer)
        self.storage.set(CONFIG_FILE, buffer.getvalue().encode('utf-8'))

    def _set(self, section: str, values: dict[str, str]) -> None:
        parser = self._read()
        if not parser.has_section(section):
            parser.add_section(section)
        for key, value in values.items():
            parser.set(section, key, value)
        self._write(parser)

    def get(self, section: str, key: str) -> str | None:
        return self._read().get(section, key, fallback=None)

    def init(self, *, bare: bool) -> None:
        self._set(CORE_SECTION, {'bare': str(bare).lower()})

    def is_bare(self) -> bool:
        try:
            return self._read().getboolean(CORE_SECTION, 'bare', fallback=False)
        except ValueError as e:
            msg = 'Invalid value for core.bare'
            raise RepositoryError(msg) from e

    def add_remote(self, name: str, url: str) -> None:
        """Record a remote.

        :raises ValueError: If the name or url is empty.
        :raises RepositoryError: If the remote already exists."""
        if not name or not url:
            msg = 'Remote name and url are required'
            raise ValueError(msg)
        if self._read().has_section(_remote_section(name)):
            msg = f'Remote {name} already exists'
            raise RepositoryError(msg)
        self._set(_remote_section(name), {'url': url})

    def remove_remote(self, name: str) -> None:
        parser = self._read()
        if not parser.remove_section(_remote_section(name)):
            msg = f'No such remote: {name}'
            raise RemoteNotFoundError(msg)
        self._write(parser)

    def remote_url(self, name: str) -> str:
        url = self.get(_remote_section(name), 'url')
        if url is None:
            msg = f'{name} does not appear to be a repository remote'
            raise RemoteNotFoundError(msg)
        return url

    def remotes(self) -> list[str]:
        return sorted(section.removeprefix('remote "').removesuffix('"')
                      for section in self._read().sections() if section.startswith('remote "'))

    def set_upstream(self, branch: str, remote: str, remote_branch: str) -> None:
        self._set(_branch_section(branch), {'remote': remote, 'merge': remote_branch})

    def upstream(self, branch: str) -> tuple[str, str] | None:
        """Return the (remote, branch) a local branch tracks, if any."""
        parser = self._read()
        section = _branch_section(branch)
        if not parser.has_section(section):
            return None
        remote = parser.get(section, 'remote', fallback=None)
        merge = parser.get(section, 'merge', fallback=None)
        if remote is None or merge is None:
            return None
        return remote, merge
