from __future__ import annotations

import logging

from lottery_ledger.core.logging_core import (
    ContextFilter,
    RedactingFilter,
    clear_request_context,
    current_request_id,
    set_request_context,
)


def _record(msg, *args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_context_fields_are_attached():
    clear_request_context()
    set_request_context(request_id="r1", lottery_id=7)
    set_request_context(identity="alice")
    record = _record("hello")

    ContextFilter(env="dev", service="svc").filter(record)

    assert (record.rid, record.lid, record.uid) == ("r1", "7", "alice")
    assert record.env == "dev"
    assert current_request_id() == "r1"
    clear_request_context()


def test_missing_context_renders_as_dash():
    clear_request_context()
    record = _record("hello")
    ContextFilter(env="prod", service="svc").filter(record)
    assert (record.rid, record.lid, record.uid) == ("-", "-", "-")


def test_dsn_password_is_masked():
    record = _record("connecting to %s", "postgresql+asyncpg://ledger:s3cret@db:5432/ledger")
    RedactingFilter().filter(record)
    text = record.getMessage()
    assert "s3cret" not in text
    assert "ledger:****@db" in text
