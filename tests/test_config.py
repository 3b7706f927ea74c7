import config as app_config


def test_defaults(monkeypatch):
    for name in (
        "AIBO_HOST",
        "RAW_CAM_PORT",
        "FRAME_WIDTH",
        "FRAME_HEIGHT",
        "HANDSHAKE_TIMEOUT",
        "HANDSHAKE_MAX_ATTEMPTS",
        "RECEIVE_MAX_FAULTS",
    ):
        monkeypatch.delenv(name, raising=False)

    cfg = app_config.load_config()

    assert cfg["AIBO_HOST"] == "10.10.10.3"
    assert cfg["RAW_CAM_PORT"] == 10011
    assert cfg["AIBO_COMMAND_PORT"] == 10001
    assert (cfg["FRAME_WIDTH"], cfg["FRAME_HEIGHT"]) == (208, 160)
    assert cfg["HANDSHAKE_TIMEOUT"] == 0.5
    assert cfg["HANDSHAKE_MAX_ATTEMPTS"] == 0
    assert cfg["RECEIVE_MAX_FAULTS"] == 0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AIBO_HOST", "192.168.0.42")
    monkeypatch.setenv("FRAME_WIDTH", "416")
    monkeypatch.setenv("FRAME_HEIGHT", "320")
    monkeypatch.setenv("AUTO_PLAY", "false")

    cfg = app_config.load_config()

    assert cfg["AIBO_HOST"] == "192.168.0.42"
    assert (cfg["FRAME_WIDTH"], cfg["FRAME_HEIGHT"]) == (416, 320)
    assert cfg["AUTO_PLAY"] is False


def test_invalid_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("FRAME_WIDTH", "wide")
    monkeypatch.setenv("FRAME_HEIGHT", "-1")
    monkeypatch.setenv("HANDSHAKE_TIMEOUT", "soon")
    monkeypatch.setenv("RECEIVE_MAX_FAULTS", "-3")

    cfg = app_config.load_config()

    assert (cfg["FRAME_WIDTH"], cfg["FRAME_HEIGHT"]) == (208, 160)
    assert cfg["HANDSHAKE_TIMEOUT"] == 0.5
    assert cfg["RECEIVE_MAX_FAULTS"] == 0


def test_zero_bounds_build_unbounded_policies(monkeypatch):
    monkeypatch.delenv("HANDSHAKE_MAX_ATTEMPTS", raising=False)
    monkeypatch.delenv("HANDSHAKE_MAX_DURATION", raising=False)
    monkeypatch.delenv("RECEIVE_MAX_FAULTS", raising=False)

    handshake, receive = app_config.retry_policies_from_config(app_config.load_config())

    assert handshake.unbounded
    assert receive.unbounded


def test_bounds_build_fatal_policies(monkeypatch):
    monkeypatch.setenv("HANDSHAKE_MAX_ATTEMPTS", "20")
    monkeypatch.setenv("HANDSHAKE_MAX_DURATION", "30")
    monkeypatch.setenv("RECEIVE_MAX_FAULTS", "5")
    monkeypatch.setenv("TRANSPORT_BACKOFF", "1.5")

    handshake, receive = app_config.retry_policies_from_config(app_config.load_config())

    assert handshake.max_attempts == 20
    assert handshake.max_duration == 30
    assert handshake.backoff == 1.5
    assert receive.max_attempts == 5
    assert receive.max_duration is None


def test_get_config_is_cached():
    assert app_config.get_config() is app_config.get_config()


def test_non_positive_handshake_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("HANDSHAKE_TIMEOUT", "-1")
    monkeypatch.setenv("TRANSPORT_BACKOFF", "-2")

    cfg = app_config.load_config()

    assert cfg["HANDSHAKE_TIMEOUT"] == 0.5
    assert cfg["TRANSPORT_BACKOFF"] == 0.0


def test_zero_handshake_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("HANDSHAKE_TIMEOUT", "0")

    assert app_config.load_config()["HANDSHAKE_TIMEOUT"] == 0.5
