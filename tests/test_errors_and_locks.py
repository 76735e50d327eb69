from __future__ import annotations

import warnings

import pytest

from lottery_ledger.core.config_core import Settings
from lottery_ledger.core.errors_core import (
    AlreadyClaimedError,
    InsufficientFundsError,
    InvalidIdentityError,
    InvalidPaymentError,
    InvalidSeedError,
    InvalidTicketPriceError,
    LedgerOverflowError,
    LotteryNotFoundError,
    StoreConflictError,
    UnauthorizedError,
    normalize_exception,
)
from lottery_ledger.core.system_locks import (
    STATE_DRAWN,
    STATE_OPEN,
    STATE_SETTLED,
    LockViolation,
    assert_pot_consistent,
    assert_positive_amount,
    assert_randomness_canon,
    assert_transition,
)
from lottery_ledger.core.utils_core import (
    COUNTER_MAX,
    CounterOverflow,
    checked_add,
    is_storable_key,
    is_valid_identity,
)


@pytest.mark.parametrize(
    "exc, status, category, retryable",
    [
        (InvalidPaymentError(), 422, "validation", False),
        (UnauthorizedError(), 403, "authorization", False),
        (AlreadyClaimedError(), 409, "state_violation", False),
        (LotteryNotFoundError(), 404, "not_found", False),
        (LedgerOverflowError(), 409, "resource_exhaustion", False),
        (InsufficientFundsError(), 502, "external_failure", True),
        (StoreConflictError(), 409, "external_failure", True),
    ],
)
def test_error_taxonomy(exc, status, category, retryable):
    code, payload = normalize_exception(exc)
    assert code == status
    assert payload["category"] == category
    assert payload["retryable"] is retryable
    assert payload["error"] == exc.code


def test_lock_violation_and_unknown_errors_map_to_500():
    code, payload = normalize_exception(LockViolation("boom"))
    assert code == 500
    assert payload["error"] == "lock_violation"

    code, payload = normalize_exception(ValueError("secret"))
    assert code == 500
    assert payload == {"error": "internal_error", "message": "Internal server error."}


def test_only_forward_transitions():
    assert_transition(STATE_OPEN, STATE_DRAWN)
    assert_transition(STATE_DRAWN, STATE_SETTLED)
    for current, target in [
        (STATE_OPEN, STATE_SETTLED),
        (STATE_DRAWN, STATE_OPEN),
        (STATE_SETTLED, STATE_DRAWN),
        (STATE_SETTLED, STATE_OPEN),
        ("archived", STATE_OPEN),
    ]:
        with pytest.raises(LockViolation):
            assert_transition(current, target)


def test_pot_guard():
    assert_pot_consistent(ticket_price=100, ticket_count=3, prize_pot=300)
    with pytest.raises(LockViolation):
        assert_pot_consistent(ticket_price=100, ticket_count=3, prize_pot=200)
    with pytest.raises(LockViolation):
        assert_positive_amount(0)


def test_clock_randomness_refused_in_prod():
    prod = Settings(ENV="production", RANDOMNESS_SOURCE="clock", ALLOW_INSECURE_RANDOMNESS=False)
    with pytest.raises(LockViolation):
        assert_randomness_canon(prod)

    assert_randomness_canon(Settings(ENV="production", RANDOMNESS_SOURCE="clock", ALLOW_INSECURE_RANDOMNESS=True))
    assert_randomness_canon(Settings(ENV="production", RANDOMNESS_SOURCE="system"))
    assert_randomness_canon(Settings(ENV="dev", RANDOMNESS_SOURCE="clock"))


def test_unknown_randomness_source_is_rejected():
    with pytest.raises(ValueError):
        Settings(RANDOMNESS_SOURCE="dice")


def test_checked_add():
    assert checked_add(COUNTER_MAX - 1, 1) == COUNTER_MAX
    with pytest.raises(CounterOverflow):
        checked_add(COUNTER_MAX, 1)


@pytest.mark.parametrize(
    "value, ok",
    [
        ("alice", True),
        ("9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin", True),
        ("user:42", True),
        ("", False),
        ("with space", False),
        ("alice\n", False),
        ("x" * 65, False),
        (42, False),
    ],
)
def test_identity_format(value, ok):
    assert is_valid_identity(value) is ok


def test_validation_errors_build_without_deprecation_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        errors = [InvalidPaymentError(), InvalidIdentityError(), InvalidSeedError(), InvalidTicketPriceError()]
    assert {e.http_status for e in errors} == {422}


@pytest.mark.parametrize(
    "value, ok",
    [(0, True), (COUNTER_MAX, True), (COUNTER_MAX + 1, False), (-1, False), (True, False), ("1", False)],
)
def test_storable_key(value, ok):
    assert is_storable_key(value) is ok


def test_database_core_exports_only_the_live_surface():
    from lottery_ledger.core import database_core

    assert not hasattr(database_core, "reset_engine")
    assert not hasattr(database_core, "_engine_lock")
    assert all(hasattr(database_core, name) for name in database_core.__all__)
