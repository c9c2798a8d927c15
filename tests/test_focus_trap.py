"""Tests for FocusTrap with Qt widgets and with a plain FocusHost."""
import pytest
from PySide6.QtCore import Qt
from PySide6.QtTest import QTest
from PySide6.QtWidgets import QLineEdit, QPushButton, QVBoxLayout, QWidget

from prompter.app.ui.focus_trap import FRAME_MS, FocusTrap, QtFocusHost


@pytest.fixture
def window(qtbot):
    """A window with an outside button and a container holding three line edits."""
    win = QWidget()
    layout = QVBoxLayout(win)
    win.outside = QPushButton("Outside", win)
    win.outside.setFocusPolicy(Qt.StrongFocus)
    layout.addWidget(win.outside)
    win.container = QWidget(win)
    inner = QVBoxLayout(win.container)
    win.first = QLineEdit(win.container)
    win.middle = QLineEdit(win.container)
    win.middle.setEnabled(False)
    win.last = QLineEdit(win.container)
    for edit in (win.first, win.middle, win.last):
        inner.addWidget(edit)
    layout.addWidget(win.container)
    qtbot.addWidget(win)
    win.show()
    qtbot.waitExposed(win)
    win.outside.setFocus()
    return win


def wait_frames(n=3):
    QTest.qWait(FRAME_MS * n)


class TestQtFocusHost:
    """Widget queries behind the focus trap."""

    def test_focusable_elements_skip_disabled_and_hidden(self, window):
        """Disabled and hidden widgets are not tab stops."""
        host = QtFocusHost()
        assert host.focusable_elements(window.container) == [window.first, window.last]
        window.last.hide()
        assert host.focusable_elements(window.container) == [window.first]

    def test_contains(self, window):
        """Containment follows the widget tree."""
        host = QtFocusHost()
        assert host.contains(window.container, window.first)
        assert not host.contains(window.container, window.outside)
        assert not host.contains(window.container, None)

    def test_is_attached(self, window):
        """Hidden widgets count as detached."""
        host = QtFocusHost()
        assert host.is_attached(window.outside)
        window.outside.hide()
        assert not host.is_attached(window.outside)
        assert not host.is_attached(None)


class TestFocusTrapWithWidgets:
    """The trap driving real Qt focus."""

    def test_initial_focus_moves_inside(self, window):
        """Activation focuses the first element after a frame."""
        trap = FocusTrap()
        trap.activate(window.container)
        wait_frames()
        assert window.focusWidget() is window.first
        trap.dispose()

    def test_tab_cycles_inside_and_skips_disabled(self, window):
        """Tab and Shift+Tab wrap inside the container."""
        trap = FocusTrap()
        trap.capture(window)
        window.first.setFocus()
        trap.activate(window.container)
        wait_frames()

        QTest.keyClick(window.first, Qt.Key_Tab)
        assert window.focusWidget() is window.last
        QTest.keyClick(window.last, Qt.Key_Tab)
        assert window.focusWidget() is window.first
        QTest.keyClick(window.first, Qt.Key_Backtab, Qt.ShiftModifier)
        assert window.focusWidget() is window.last
        trap.dispose()

    def test_restores_previous_focus_after_a_frame(self, window):
        """Deactivation restores the captured widget one frame later."""
        trap = FocusTrap()
        trap.capture(window)
        assert trap.previous is window.outside
        trap.activate(window.container)
        wait_frames()
        assert window.focusWidget() is window.first

        trap.deactivate()
        assert not trap.active
        wait_frames()
        assert window.focusWidget() is window.outside

    def test_hidden_previous_target_is_not_restored(self, window):
        """A hidden capture target is skipped."""
        trap = FocusTrap()
        trap.capture(window)
        trap.activate(window.container)
        wait_frames()
        window.outside.hide()
        trap.deactivate()
        wait_frames()
        assert window.focusWidget() is not window.outside


class FakeHost:
    """FocusHost over plain strings, so the trap runs without widgets."""

    def __init__(self, elements, focused="outside"):
        self.elements = list(elements)
        self.focused = focused
        self.focus_calls = []
        self.detached = set()

    def current_focus(self, scope):
        return self.focused

    def focusable_elements(self, container):
        return list(self.elements)

    def contains(self, container, element):
        return element in self.elements

    def focus(self, element):
        self.focus_calls.append(element)
        self.focused = element

    def is_attached(self, element):
        return element not in self.detached


class TestFocusTrapWithFakeHost:
    """The trap's algorithm over a non-Qt host."""

    def test_cycle_wraps(self, qapp):
        """Cycling wraps at both ends."""
        host = FakeHost(["a", "b", "c"], focused="c")
        trap = FocusTrap(host)
        trap.activate("container")
        assert trap.cycle(backwards=False)
        assert host.focused == "a"
        assert trap.cycle(backwards=True)
        assert host.focused == "c"
        trap.dispose()

    def test_cycle_from_outside_enters_at_edges(self, qapp):
        """From outside, Shift+Tab enters at the last element."""
        host = FakeHost(["a", "b"], focused="elsewhere")
        trap = FocusTrap(host)
        trap.activate("container")
        trap.cycle(backwards=True)
        assert host.focused == "b"
        trap.dispose()

    def test_no_focusable_elements(self, qapp):
        """An empty container does not consume Tab."""
        trap = FocusTrap(FakeHost([]))
        trap.activate("container")
        assert trap.cycle(backwards=False) is False
        trap.dispose()

    def test_restore_happens_exactly_once(self, qapp):
        """Repeated deactivation restores focus once."""
        host = FakeHost(["a", "b"])
        trap = FocusTrap(host)
        trap.capture("scope")
        trap.activate("container")
        wait_frames()
        assert host.focus_calls == ["a"]

        trap.deactivate()
        trap.deactivate()
        assert host.focus_calls == ["a"]
        wait_frames()
        wait_frames()
        assert host.focus_calls == ["a", "outside"]

    def test_initial_focus_skipped_when_already_inside(self, qapp):
        """Focus already inside is left alone."""
        host = FakeHost(["a", "b"], focused="b")
        trap = FocusTrap(host)
        trap.activate("container")
        wait_frames()
        assert host.focus_calls == []
        trap.dispose()

    def test_detached_previous_is_skipped(self, qapp):
        """A detached capture target is not focused."""
        host = FakeHost(["a"])
        trap = FocusTrap(host)
        trap.capture("scope")
        trap.activate("container")
        wait_frames()
        host.detached.add("outside")
        trap.deactivate()
        wait_frames()
        assert host.focus_calls == ["a"]

    def test_dispose_cancels_pending_callbacks(self, qapp):
        """dispose() cancels initial focus and restoration."""
        host = FakeHost(["a"])
        trap = FocusTrap(host)
        trap.capture("scope")
        trap.activate("container")
        trap.dispose()
        wait_frames()
        assert host.focus_calls == []

        trap.capture("scope")
        trap.activate("container")
        wait_frames()
        trap.deactivate()
        trap.dispose()
        wait_frames()
        assert host.focus_calls == ["a"]
