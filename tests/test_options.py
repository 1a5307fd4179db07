"""Tests for EngineOptions validation and environment loading."""
import pytest

from junos_commit.config.schema import EngineOptions

ENV_VARS = [
    "JUNOS_CMD_SLEEP_SHORT",
    "JUNOS_CMD_SLEEP_LOCK",
    "JUNOS_LOCK_TIMEOUT",
    "JUNOS_COMMIT_CONFIRMED",
    "JUNOS_COMMIT_CONFIRMED_WAIT_PERCENT",
    "JUNOS_SSH_SLEEP_CLOSED",
    "JUNOS_SSH_TIMEOUT_TO_ESTABLISH",
    "JUNOS_SSH_RETRY_TO_ESTABLISH",
    "JUNOS_FILE_PERMISSION",
    "JUNOS_LOG_PATH",
    "JUNOS_FAKECREATE_SETFILE",
    "JUNOS_FAKEUPDATE_ALSO",
    "JUNOS_FAKEDELETE_ALSO",
]


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestValidation:
    """Tests for EngineOptions.validate."""

    def test_defaults(self):
        options = EngineOptions()
        assert options.cmd_sleep_lock == 10
        assert options.commit_confirmed is None
        assert options.file_mode == 0o644
        assert not options.dry_run

    @pytest.mark.parametrize("minutes", [0, 65536])
    def test_commit_confirmed_range(self, minutes):
        with pytest.raises(ValueError, match="commit_confirmed"):
            EngineOptions(commit_confirmed=minutes)

    def test_wait_percent_range(self):
        with pytest.raises(ValueError, match="wait_percent"):
            EngineOptions(commit_confirmed_wait_percent=100)

    def test_retry_range(self):
        with pytest.raises(ValueError):
            EngineOptions(ssh_retry_to_establish=0)
        with pytest.raises(ValueError):
            EngineOptions(ssh_retry_to_establish=11)

    def test_negative_sleep(self):
        with pytest.raises(ValueError):
            EngineOptions(cmd_sleep_lock=-1)

    def test_file_permission(self):
        assert EngineOptions(file_permission="0600").file_mode == 0o600
        with pytest.raises(ValueError):
            EngineOptions(file_permission="rw-r--r--")
        with pytest.raises(ValueError):
            EngineOptions(file_permission="1777")

    def test_fake_flags_need_setfile(self):
        with pytest.raises(ValueError, match="fake_create_with_setfile"):
            EngineOptions(fake_update_also=True)
        with pytest.raises(ValueError, match="fake_create_with_setfile"):
            EngineOptions(fake_delete_also=True)

    def test_dry_run(self):
        options = EngineOptions(fake_create_with_setfile="/tmp/fake.set", fake_update_also=True)
        assert options.dry_run


class TestFromEnv:
    """Tests for EngineOptions.from_env."""

    def test_base_without_env(self, clean_env):
        options = EngineOptions.from_env({"cmd_sleep_lock": 3, "unknown": "ignored"})
        assert options.cmd_sleep_lock == 3

    def test_env_overrides_base(self, clean_env):
        clean_env.setenv("JUNOS_CMD_SLEEP_LOCK", "0.5")
        clean_env.setenv("JUNOS_COMMIT_CONFIRMED", "3")
        clean_env.setenv("JUNOS_FILE_PERMISSION", "0640")
        options = EngineOptions.from_env({"cmd_sleep_lock": 3})
        assert options.cmd_sleep_lock == 0.5
        assert options.commit_confirmed == 3
        assert options.file_mode == 0o640

    def test_fake_flags(self, clean_env):
        clean_env.setenv("JUNOS_FAKECREATE_SETFILE", "/tmp/fake.set")
        clean_env.setenv("JUNOS_FAKEDELETE_ALSO", "true")
        clean_env.setenv("JUNOS_FAKEUPDATE_ALSO", "no")
        options = EngineOptions.from_env()
        assert options.dry_run
        assert options.fake_delete_also
        assert not options.fake_update_also

    def test_bad_number(self, clean_env):
        clean_env.setenv("JUNOS_LOCK_TIMEOUT", "five minutes")
        with pytest.raises(ValueError, match="JUNOS_LOCK_TIMEOUT"):
            EngineOptions.from_env()

    def test_out_of_range_from_env(self, clean_env):
        clean_env.setenv("JUNOS_COMMIT_CONFIRMED", "70000")
        with pytest.raises(ValueError):
            EngineOptions.from_env()

    def test_to_dict_round_trip(self):
        options = EngineOptions(cmd_sleep_lock=2, commit_confirmed=5)
        assert EngineOptions.from_dict(options.to_dict()) == options
