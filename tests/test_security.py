import logging
import sys
from datetime import timedelta

import pytest
from fastapi import HTTPException

from core.security import create_access_token, decode_access_token
from models import UserRole
from utils.logging_utils import JsonFormatter, build_logging_config


def test_access_token_carries_user_id():
    token = create_access_token(42, UserRole.TEACHER)
    assert decode_access_token(token) == 42


@pytest.mark.parametrize("token", [
    "not-a-token",
    create_access_token(7, expires_delta=timedelta(minutes=-1)),
])
def test_bad_tokens_are_unauthorized(token):
    with pytest.raises(HTTPException) as exc_info:
        decode_access_token(token)
    assert exc_info.value.status_code == 401


def test_logging_config_adds_file_handler(tmp_path):
    log_file = str(tmp_path / "api.log")
    config = build_logging_config("debug", log_file, json_format=True)

    assert config["root"] == {"level": "DEBUG", "handlers": ["console", "file"]}
    assert config["formatters"]["default"] == {"()": JsonFormatter}
    assert config["loggers"]["tortoise"] == {"level": "WARNING"}


def test_logging_config_rejects_unknown_level():
    with pytest.raises(ValueError):
        build_logging_config("chatty")


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("coursehub", logging.ERROR, __file__, 1, "failed %s", ("write",), None)
        record.exc_info = sys.exc_info()

    output = JsonFormatter().format(record)
    assert '"message": "failed write"' in output
    assert "RuntimeError: boom" in output
