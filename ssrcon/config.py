# ssrcon/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Mapping, Optional

from .protocol import DEFAULT_PORT, MAX_PACKET_SIZE
from .util import LOG_FILE, PROPERTIES, read_properties

AUTH_ID = 0x12131415

log = logging.getLogger("ssrcon.config")


@dataclass
class ClientSettings:
    default_port: int = DEFAULT_PORT
    poll_interval: float = 0.1      # seconds per protocol tick
    auth_attempts: int = 100        # polls per auth reply before giving up
    close_cooldown: float = 2.0     # seconds between close and reconnect
    connect_timeout: Optional[float] = None  # None keeps the OS default
    max_packet_size: int = MAX_PACKET_SIZE
    auth_id: int = AUTH_ID
    log_file: Path = field(default_factory=lambda: LOG_FILE)


# properties-file key -> (field, converter)
_KEYS = {
    "default.port": ("default_port", int),
    "poll.interval": ("poll_interval", float),
    "auth.attempts": ("auth_attempts", int),
    "close.cooldown": ("close_cooldown", float),
    "connect.timeout": ("connect_timeout", float),
    "max.packet.size": ("max_packet_size", int),
    "log.file": ("log_file", lambda v: Path(v).expanduser()),
}


def load_settings(path: Optional[Path] = None, **overrides) -> ClientSettings:
    """Defaults, then the properties file, then keyword overrides that are not None."""
    settings = ClientSettings()
    props = read_properties(path or PROPERTIES)
    updates = {}
    for key, value in props.items():
        if key not in _KEYS:
            log.debug("Ignoring unknown setting %s", key)
            continue
        name, convert = _KEYS[key]
        try:
            converted = convert(value)
        except (TypeError, ValueError):
            log.warning("Ignoring invalid value %r for %s", value, key)
            continue
        if isinstance(converted, (int, float)) and not isinstance(converted, bool) and converted < 0:
            log.warning("Ignoring negative value %r for %s", value, key)
            continue
        updates[name] = converted
    known = {f.name for f in fields(ClientSettings)}
    updates.update({k: v for k, v in overrides.items() if k in known and v is not None})
    return replace(settings, **updates)


@dataclass
class Credentials:
    address: str = ""
    port: str = ""
    password: str = ""

    @classmethod
    def from_sources(cls, address: Optional[str] = None, port: Optional[str] = None,
                     password: Optional[str] = None, env: Mapping[str, str] = os.environ) -> "Credentials":
        return cls(
            address=address or env.get("SSRCON_SERVER", ""),
            port=str(port) if port else env.get("SSRCON_PORT", ""),
            password=password or env.get("SSRCON_PASSWORD", ""),
        )

    def clear_password(self) -> None:
        self.password = ""

    def clear(self) -> None:
        self.address = ""
        self.port = ""
        self.password = ""
