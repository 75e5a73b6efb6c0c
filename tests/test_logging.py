import pytest
from loguru import logger

from concierge import logging_utils
from concierge.logging_utils import bind_user, configure_logging, current_user


def test_bind_user_scopes_the_current_user() -> None:
    assert current_user() == "-"
    with bind_user("u1"):
        assert current_user() == "u1"
        with bind_user("u2"):
            assert current_user() == "u2"
        assert current_user() == "u1"
    assert current_user() == "-"


def test_configured_records_carry_bound_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logging_utils, "_CONFIGURED_LEVEL", None)
    configure_logging("warning")
    seen: list[str] = []
    sink_id = logger.add(lambda message: seen.append(message.record["extra"]["user"]), level="INFO")
    try:
        with bind_user("5215550001"):
            logger.info("turn.start")
        logger.info("idle")
    finally:
        logger.remove(sink_id)

    assert seen == ["5215550001", "-"]
    assert logging_utils._CONFIGURED_LEVEL == "WARNING"
