"""Discovery of IMEX channels."""

from __future__ import annotations

import logging
import os
import posixpath
import stat
from dataclasses import dataclass

from .config import Config

logger = logging.getLogger(__name__)

_CHANNEL_DIR = "/dev/nvidia-caps-imex-channels"


class ImexChannelError(Exception):
    """Raised when a required IMEX channel does not exist."""


@dataclass
class Channel:
    """An IMEX channel and where its device node lives."""

    id: str
    path: str
    host_path: str

    def _probe(self) -> tuple[bool, list[str]]:
        paths = [self.host_path]
        if self.host_path != self.path:
            paths.append(self.path)
        problems: list[str] = []
        for path in paths:
            try:
                mode = os.stat(path).st_mode
            except FileNotFoundError:
                continue
            except OSError as exc:
                problems.append(str(exc))
                continue
            if not stat.S_ISCHR(mode):
                problems.append(f"{path} is not a character device")
                continue
            return True, []
        return False, problems

    def exists(self) -> bool:
        """Return whether the host path or container path is a character device."""
        found, _ = self._probe()
        return found


def _join(root: str, path: str) -> str:
    if not root:
        return posixpath.normpath(path)
    return posixpath.normpath(posixpath.join(root, path.lstrip("/")))


def get_channels(config: Config, dev_root: str) -> list[Channel]:
    """Return the configured IMEX channels that exist.

    Missing channels are skipped, or raise ImexChannelError when required.
    """
    channels: list[Channel] = []
    for channel_id in config.imex.channel_ids:
        ident = str(channel_id)
        name = "channel" + ident
        path = posixpath.join(_CHANNEL_DIR, name)
        channel = Channel(id=ident, path=path, host_path=_join(dev_root, path))
        found, problems = channel._probe()
        if not found:
            detail = "; ".join(problems)
            if config.imex.required:
                message = f"requested IMEX channel {name} does not exist"
                if detail:
                    message = f"{detail}\n{message}"
                raise ImexChannelError(message)
            logger.warning("Ignoring requested IMEX channel %s (%s)", name, detail or None)
            continue
        logger.info("Selecting IMEX channel %s", name)
        channels.append(channel)
    return channels