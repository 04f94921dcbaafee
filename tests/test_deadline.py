"""Tests for deadline-bounded fan-out helpers."""

from __future__ import annotations

import asyncio

import pytest

from trendwire.utils.deadline import settle_all, with_deadline


async def _value(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def _fail(message):
    raise RuntimeError(message)


def test_with_deadline_returns_value_in_time():
    assert asyncio.run(with_deadline(_value([1, 2]), 1.0, [])) == [1, 2]


def test_with_deadline_returns_fallback_when_slow():
    assert asyncio.run(with_deadline(_value([1], delay=5), 0.05, [])) == []


def test_with_deadline_propagates_operation_errors():
    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(with_deadline(_fail("boom"), 1.0, []))


def test_settle_all_isolates_failures_and_timeouts():
    outcomes = asyncio.run(
        settle_all(
            {
                "fast": _value(["a"]),
                "broken": _fail("parse error"),
                "slow": _value(["late"], delay=5),
            },
            0.1,
        )
    )

    assert outcomes["fast"].ok
    assert outcomes["fast"].value == ["a"]
    assert isinstance(outcomes["broken"].error, RuntimeError)
    assert not outcomes["broken"].timed_out
    assert outcomes["slow"].timed_out
    assert outcomes["slow"].value is None
    assert not outcomes["slow"].ok


def test_settle_all_with_no_operations():
    assert asyncio.run(settle_all({}, 1.0)) == {}
