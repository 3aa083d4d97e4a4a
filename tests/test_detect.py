"""Tests for profile detection."""

from typing import Dict, Optional

from dotty.core.config import (
    Config,
    DetectionRule,
    EnvVarCondition,
    HostnameCondition,
    HostSignals,
    OSCondition,
)
from dotty.core.detect import ProfileDetector, current_signals


def signals(
    hostname: str = "box", os: str = "linux", env: Optional[Dict[str, str]] = None
) -> HostSignals:
    return HostSignals(hostname=hostname, os=os, env=env or {})


def test_no_rules_uses_default() -> None:
    """Test that no detection config yields the default profile."""
    assert ProfileDetector(Config.default(), signals()).detect() == "default"


def test_os_rule() -> None:
    """Test the linux/darwin detection scenario."""
    config = Config(detection_rules=[DetectionRule("work", [OSCondition("linux")])])
    assert ProfileDetector(config, signals(os="linux")).detect() == "work"
    assert ProfileDetector(config, signals(os="darwin")).detect() == "default"


def test_all_conditions_must_match() -> None:
    """Test that a rule is a logical AND of its conditions."""
    config = Config(
        detection_rules=[
            DetectionRule("work", [OSCondition("linux"), HostnameCondition("work-laptop")])
        ]
    )
    assert ProfileDetector(config, signals(hostname="home-pc")).detect() == "default"
    assert ProfileDetector(config, signals(hostname="work-laptop")).detect() == "work"


def test_first_matching_rule_wins() -> None:
    """Test that list order decides, even when a later rule is less specific."""
    config = Config(
        detection_rules=[
            DetectionRule("server", [OSCondition("linux"), HostnameCondition("srv")]),
            DetectionRule("work", [OSCondition("linux")]),
            DetectionRule("personal", [OSCondition("linux")]),
        ]
    )
    detector = ProfileDetector(config, signals(hostname="laptop"))
    assert detector.detect() == "work"
    assert detector.detect() == "work"
    assert ProfileDetector(config, signals(hostname="srv")).detect() == "server"


def test_env_var_condition() -> None:
    """Test that env conditions compare values and treat unset as no match."""
    config = Config(detection_rules=[DetectionRule("work", [EnvVarCondition("WORK", "1")])])
    assert ProfileDetector(config, signals(env={"WORK": "1"})).detect() == "work"
    assert ProfileDetector(config, signals(env={"WORK": "0"})).detect() == "default"
    assert ProfileDetector(config, signals(env={})).detect() == "default"


def test_rule_without_conditions_matches() -> None:
    """Test that an empty condition list always matches."""
    config = Config(detection_rules=[DetectionRule("catchall", [])])
    assert ProfileDetector(config, signals()).detect() == "catchall"


def test_current_signals() -> None:
    """Test that host signals are collected from this machine."""
    host = current_signals()
    assert host.hostname
    assert host.os == host.os.lower()
