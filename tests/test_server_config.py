import pytest

from metricscollect.configgetter import ConfigError
from metricscollect.server.server_config import ServerConfig, load_config

ENV_NAMES = ("ADDRESS", "STORE_INTERVAL", "FILE_STORAGE_PATH", "RESTORE", "DATABASE_DSN", "KEY")


class RecordingLogger:
    def __init__(self):
        self.calls = []

    def _record(name):
        def method(self, *args):
            self.calls.append((name, args))

        return method

    debug = _record("debug")
    info = _record("info")
    warn = _record("warn")
    error = _record("error")
    debugf = _record("debugf")
    infof = _record("infof")
    warnf = _record("warnf")
    errorf = _record("errorf")
    debugw = _record("debugw")
    infow = _record("infow")
    warnw = _record("warnw")
    errorw = _record("errorw")
    sync = _record("sync")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults_without_flags_or_env(clean_env):
    logger = RecordingLogger()
    config = load_config(logger, [])
    assert config == ServerConfig(
        addr="localhost:8080",
        store_interval=300,
        file_storage_path="",
        restore=True,
        database_dsn="",
        hash_key="",
    )
    errors = [args for name, args in logger.calls if name == "errorw"]
    assert len(errors) == len(ENV_NAMES)
    assert all(args[0] == "can't get env" and isinstance(args[2], ConfigError) for args in errors)


def test_flags_are_applied(clean_env):
    config = load_config(
        RecordingLogger(),
        ["-a", "127.0.0.1:9000", "-i", "5", "-f", "/tmp/m.json", "-r=false", "-d", "dsn", "-k", "secret"],
    )
    assert config == ServerConfig(
        addr="127.0.0.1:9000",
        store_interval=5,
        file_storage_path="/tmp/m.json",
        restore=False,
        database_dsn="dsn",
        hash_key="secret",
    )


def test_bare_restore_flag_means_true(clean_env):
    config = load_config(RecordingLogger(), ["-r", "-a", "host:1"])
    assert config.restore is True
    assert config.addr == "host:1"


def test_environment_overrides_flags(clean_env):
    clean_env.setenv("ADDRESS", "env-host:8081")
    clean_env.setenv("STORE_INTERVAL", "10")
    clean_env.setenv("FILE_STORAGE_PATH", "/var/metrics.json")
    clean_env.setenv("RESTORE", "false")
    clean_env.setenv("DATABASE_DSN", "env-dsn")
    clean_env.setenv("KEY", "secret")
    logger = RecordingLogger()
    config = load_config(logger, ["-a", "flag-host:1", "-i", "99"])
    assert config == ServerConfig(
        addr="env-host:8081",
        store_interval=10,
        file_storage_path="/var/metrics.json",
        restore=False,
        database_dsn="env-dsn",
        hash_key="secret",
    )
    assert [name for name, _ in logger.calls] == ["infow"]


def test_invalid_environment_value_keeps_flag_value(clean_env):
    clean_env.setenv("STORE_INTERVAL", "abc")
    clean_env.setenv("RESTORE", "maybe")
    logger = RecordingLogger()
    config = load_config(logger, ["-i", "7", "-r=false"])
    assert config.store_interval == 7
    assert config.restore is False
    messages = [str(args[2]) for name, args in logger.calls if name == "errorw"]
    assert any("abc" in message for message in messages)
    assert any("maybe" in message for message in messages)


def test_final_settings_are_logged(clean_env):
    logger = RecordingLogger()
    config = load_config(logger, ["-k", "secret"])
    assert logger.calls[-1] == (
        "infow",
        (
            "envs",
            "addr", config.addr,
            "storeInterval", config.store_interval,
            "fileStoragePath", config.file_storage_path,
            "restore", config.restore,
            "databaseDsn", config.database_dsn,
            "hashKey", "secret",
        ),
    )


def test_invalid_flag_exits(clean_env):
    with pytest.raises(SystemExit) as info:
        load_config(RecordingLogger(), ["-i", "notanumber"])
    assert info.value.code == 2