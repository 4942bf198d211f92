"""Unit tests for the now tool."""

from datetime import datetime, timedelta

import pytest

from supervisorAgent.tools.builtin.now import now


def test_defaults_to_utc():
    value = datetime.fromisoformat(now.invoke({}))
    assert value.utcoffset() == timedelta(0)


def test_offset_applied():
    value = datetime.fromisoformat(now.invoke({"utc_offset_hours": 5.5}))
    assert value.utcoffset() == timedelta(hours=5, minutes=30)


def test_offset_out_of_range():
    with pytest.raises(ValueError):
        now.invoke({"utc_offset_hours": 20})
