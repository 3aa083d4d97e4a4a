"""Automatic profile selection from host signals."""

from __future__ import annotations

import logging
import os
import platform
import socket
from typing import Optional

from .config import DEFAULT_PROFILE, Config, HostSignals

logger = logging.getLogger(__name__)


def current_signals() -> HostSignals:
    """Collect the hostname, OS identifier and environment of this machine."""
    return HostSignals(
        hostname=socket.gethostname(),
        os=platform.system().lower(),
        env=dict(os.environ),
    )


class ProfileDetector:
    """Chooses the active profile when the caller does not name one.

    Rules are evaluated in configured order; the first rule whose conditions
    all match wins. With no match, or no rules, the ``default`` profile is
    used.
    """

    def __init__(self, config: Config, signals: Optional[HostSignals] = None) -> None:
        self.config = config
        self.signals = signals if signals is not None else current_signals()

    def detect(self) -> str:
        for rule in self.config.detection_rules or []:
            if rule.matches(self.signals):
                logger.debug("Detected profile %s", rule.profile)
                return rule.profile
        return DEFAULT_PROFILE
