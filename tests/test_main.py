import sys

import pytest

import govcord.main as govcord_main


@pytest.mark.parametrize(
    "code, expected",
    [
        (0, 0),
        (2, 2),
        ("3", 3),
        (None, 1),
        ("missing token", 1),
    ],
)
def test_main_maps_system_exit_codes(monkeypatch, code, expected):
    async def exiting():
        raise SystemExit(code)

    monkeypatch.setattr(govcord_main, "async_main", exiting)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)

    assert govcord_main.main() == expected


def test_main_returns_one_on_unexpected_error(monkeypatch):
    async def broken():
        raise RuntimeError("boom")

    monkeypatch.setattr(govcord_main, "async_main", broken)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)

    assert govcord_main.main() == 1
