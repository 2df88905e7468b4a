import logging
import os
import pathlib


def _load_dotenv_if_present() -> None:
    # Optional, no dependency: load simple KEY=VALUE lines
    env_path = pathlib.Path(__file__).parent / ".env"
    if env_path.exists():
        for line in env_path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' in line:
                k, v = line.split('=', 1)
                os.environ.setdefault(k.strip(), v.strip())


_load_dotenv_if_present()

_TRUTHY = ('1', 'true', 'yes', 'on')
_FALSY = ('0', 'false', 'no', 'off', '')


class Config:
    def __init__(self) -> None:
        self.host: str = os.environ.get('HOST', '0.0.0.0')
        self.port: int = self._coerce_port(os.environ.get('PORT', '3000'))
        self.log_responses: bool = self._coerce_flag('GREETING_LOG_RESPONSES', os.environ.get('GREETING_LOG_RESPONSES', 'false'))
        self.log_level: str = self._coerce_log_level(os.environ.get('LOG_LEVEL', 'INFO'))

    @staticmethod
    def _coerce_port(raw: str) -> int:
        try:
            value = int(raw.strip())
        except ValueError as exc:
            raise ValueError(f'Invalid port number: {raw!r}') from exc
        if value < 0 or value > 65535:
            raise ValueError(f'Invalid port number: {value}')
        return value

    @staticmethod
    def _coerce_flag(name: str, raw: str) -> bool:
        value = raw.strip().lower()
        if value in _TRUTHY:
            return True
        if value in _FALSY:
            return False
        raise ValueError(f'{name} must be one of {", ".join(_TRUTHY + _FALSY[:-1])}')

    @staticmethod
    def _coerce_log_level(raw: str) -> str:
        value = raw.strip().upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f'LOG_LEVEL must be a logging level name, got {raw!r}')
        return value
