import pytest

from udispatch.config import DispatchSettings


def test_defaults() -> None:
    settings = DispatchSettings.from_env({})
    assert settings == DispatchSettings()
    assert settings.handler_timeout is None
    assert settings.run_sync_in_threadpool


def test_from_env() -> None:
    settings = DispatchSettings.from_env(
        {
            "UDISPATCH_HANDLER_TIMEOUT": "2.5",
            "UDISPATCH_RUN_SYNC_IN_THREADPOOL": "false",
            "UDISPATCH_LITERAL_PRIORITY": "0",
            "UDISPATCH_LOG_LEVEL": "debug",
            "UNRELATED": "1",
        }
    )
    assert settings.handler_timeout == 2.5
    assert not settings.run_sync_in_threadpool
    assert not settings.literal_priority
    assert settings.log_level == "debug"


def test_from_env_prefix_and_none() -> None:
    settings = DispatchSettings.from_env(
        {"APP_HANDLER_TIMEOUT": "none", "APP_EXPOSE_ERROR_DETAILS": "yes"},
        prefix="APP_",
    )
    assert settings.handler_timeout is None
    assert settings.expose_error_details


def test_from_env_invalid() -> None:
    with pytest.raises(ValueError):
        DispatchSettings.from_env({"UDISPATCH_HEAD_FALLS_BACK_TO_GET": "sometimes"})
