"""Engine options shared by every session of a process.

Environment Variables:
    JUNOS_CMD_SLEEP_SHORT: Seconds to sleep after each staged batch (default: 0)
    JUNOS_CMD_SLEEP_LOCK: Seconds between two lock attempts (default: 10)
    JUNOS_LOCK_TIMEOUT: Seconds to keep trying to take the lock (default: 300)
    JUNOS_COMMIT_CONFIRMED: Minutes for 'commit confirmed', 1..65535 (default: off)
    JUNOS_COMMIT_CONFIRMED_WAIT_PERCENT: Percent of the timeout to wait
        before confirming, 0..99 (default: 90)
    JUNOS_SSH_SLEEP_CLOSED: Seconds to sleep after closing a session (default: 0)
    JUNOS_SSH_TIMEOUT_TO_ESTABLISH: SSH connect timeout in seconds (default: 30)
    JUNOS_SSH_RETRY_TO_ESTABLISH: SSH connect attempts, 1..10 (default: 1)
    JUNOS_FILE_PERMISSION: Octal mode for files written by the engine (default: 0644)
    JUNOS_LOG_PATH: Path of the NETCONF debug log (default: off)
    JUNOS_FAKECREATE_SETFILE: Write create lines to this file instead of a device
    JUNOS_FAKEUPDATE_ALSO: Also fake updates (requires the set file)
    JUNOS_FAKEDELETE_ALSO: Also fake deletes (requires the set file)
"""
import os
from dataclasses import dataclass, asdict
from typing import Any, Optional


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass
class EngineOptions:
    """Tunables for sessions, transactions and dry-run output."""
    cmd_sleep_short: float = 0
    cmd_sleep_lock: float = 10
    lock_timeout: float = 300
    commit_confirmed: Optional[int] = None
    commit_confirmed_wait_percent: int = 90
    ssh_sleep_closed: float = 0
    ssh_timeout_to_establish: int = 30
    ssh_retry_to_establish: int = 1
    file_permission: str = "0644"
    debug_netconf_log_path: Optional[str] = None
    fake_create_with_setfile: Optional[str] = None
    fake_update_also: bool = False
    fake_delete_also: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ValueError on inconsistent or out-of-range options."""
        if self.commit_confirmed is not None and not 1 <= self.commit_confirmed <= 65535:
            raise ValueError(
                f"commit_confirmed must be between 1 and 65535, got {self.commit_confirmed}"
            )
        if not 0 <= self.commit_confirmed_wait_percent <= 99:
            raise ValueError(
                "commit_confirmed_wait_percent must be between 0 and 99, "
                f"got {self.commit_confirmed_wait_percent}"
            )
        if not 1 <= self.ssh_retry_to_establish <= 10:
            raise ValueError(
                "ssh_retry_to_establish must be between 1 and 10, "
                f"got {self.ssh_retry_to_establish}"
            )
        if self.cmd_sleep_lock < 0 or self.cmd_sleep_short < 0 or self.ssh_sleep_closed < 0:
            raise ValueError("sleep options must not be negative")
        try:
            mode = int(self.file_permission, 8)
        except (TypeError, ValueError):
            raise ValueError(f"file_permission must be an octal string, got {self.file_permission!r}")
        if mode > 0o777:
            raise ValueError(f"file_permission out of range: {self.file_permission}")
        if (self.fake_update_also or self.fake_delete_also) and not self.fake_create_with_setfile:
            raise ValueError(
                "'fake_create_with_setfile' need to be set with "
                "'fake_update_also' and 'fake_delete_also'"
            )

    @property
    def file_mode(self) -> int:
        return int(self.file_permission, 8)

    @property
    def dry_run(self) -> bool:
        return bool(self.fake_create_with_setfile)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineOptions":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def from_env(cls, base: Optional[dict[str, Any]] = None) -> "EngineOptions":
        """Build options from `base` overridden by JUNOS_* environment variables."""
        data: dict[str, Any] = dict(base or {})
        env = os.environ

        float_vars = {
            "JUNOS_CMD_SLEEP_SHORT": "cmd_sleep_short",
            "JUNOS_CMD_SLEEP_LOCK": "cmd_sleep_lock",
            "JUNOS_LOCK_TIMEOUT": "lock_timeout",
            "JUNOS_SSH_SLEEP_CLOSED": "ssh_sleep_closed",
        }
        int_vars = {
            "JUNOS_COMMIT_CONFIRMED": "commit_confirmed",
            "JUNOS_COMMIT_CONFIRMED_WAIT_PERCENT": "commit_confirmed_wait_percent",
            "JUNOS_SSH_TIMEOUT_TO_ESTABLISH": "ssh_timeout_to_establish",
            "JUNOS_SSH_RETRY_TO_ESTABLISH": "ssh_retry_to_establish",
        }
        for var, key in float_vars.items():
            if env.get(var):
                try:
                    data[key] = float(env[var])
                except ValueError:
                    raise ValueError(f"Error to parse value in {var} environment variable: {env[var]!r}")
        for var, key in int_vars.items():
            if env.get(var):
                try:
                    data[key] = int(env[var])
                except ValueError:
                    raise ValueError(f"Error to parse value in {var} environment variable: {env[var]!r}")

        if env.get("JUNOS_FILE_PERMISSION"):
            data["file_permission"] = env["JUNOS_FILE_PERMISSION"]
        if env.get("JUNOS_LOG_PATH"):
            data["debug_netconf_log_path"] = env["JUNOS_LOG_PATH"]
        if env.get("JUNOS_FAKECREATE_SETFILE"):
            data["fake_create_with_setfile"] = env["JUNOS_FAKECREATE_SETFILE"]
        if env.get("JUNOS_FAKEUPDATE_ALSO"):
            data["fake_update_also"] = _env_bool(env["JUNOS_FAKEUPDATE_ALSO"])
        if env.get("JUNOS_FAKEDELETE_ALSO"):
            data["fake_delete_also"] = _env_bool(env["JUNOS_FAKEDELETE_ALSO"])

        return cls.from_dict(data)
