"""
Tests for the drop handler of the merge window (no display needed)
"""
from types import SimpleNamespace

import pytest

tkinter = pytest.importorskip("tkinter")
pytest.importorskip("customtkinter")
pytest.importorskip("tkinterdnd2")

from gui.merger_gui import MergerGUI  # noqa: E402


@pytest.fixture
def tcl():
    try:
        return tkinter.Tcl()
    except tkinter.TclError as exc:
        pytest.skip(f"Tcl not available: {exc}")


class TestDropFiles:

    def test_dropped_tcl_list_is_split(self, tcl):
        added = []
        window = SimpleNamespace(mergerApp=tcl, _add_files=added.extend)
        data = "/data/a.csv {/data/with space/b.xlsx} /data/c\\ d.txt"

        MergerGUI.drop_files(window, SimpleNamespace(data=data))

        assert added == ["/data/a.csv", "/data/with space/b.xlsx", "/data/c d.txt"]
