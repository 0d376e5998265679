from __future__ import annotations

import sys

import pytest

from montprime import runtime

# interpreter default for int <-> str conversions
_INT_STR_DIGITS = 4300


@pytest.fixture(autouse=True)
def _isolated_runtime(tmp_path, monkeypatch):
    """Private workspace, fresh runtime settings and the stock int/str limit for every test."""
    monkeypatch.setenv("MONTPRIME_HOME", str(tmp_path / "ws"))
    saved = sys.get_int_max_str_digits()
    sys.set_int_max_str_digits(_INT_STR_DIGITS)
    runtime.reset()
    yield
    runtime.reset()
    sys.set_int_max_str_digits(saved)
