import pytest

pytest.importorskip("PySide6.QtWebSockets")

from PySide6.QtCore import QCoreApplication, QObject, QTimer  # noqa: E402
from PySide6.QtTest import QTest  # noqa: E402

from osh_dashboard.link.qt_transport import QtScheduler  # noqa: E402


@pytest.fixture
def qt_parent():
    app = QCoreApplication.instance() or QCoreApplication([])
    parent = QObject()
    yield parent
    parent.deleteLater()
    app.processEvents()


def live_timers(parent):
    return parent.findChildren(QTimer)


def test_single_shot_timer_released_after_firing(qt_parent):
    fired = []
    scheduler = QtScheduler(qt_parent)
    handle = scheduler.call_later(0.0, lambda: fired.append(True))
    QTest.qWait(50)
    assert fired == [True]
    assert handle.done
    assert live_timers(qt_parent) == []
    handle.cancel()


def test_cancelled_timer_never_fires(qt_parent):
    fired = []
    scheduler = QtScheduler(qt_parent)
    handle = scheduler.call_later(0.01, lambda: fired.append(True))
    handle.cancel()
    QTest.qWait(50)
    assert fired == []
    assert live_timers(qt_parent) == []


def test_repeating_timer_kept_until_cancelled(qt_parent):
    ticks = []
    scheduler = QtScheduler(qt_parent)
    handle = scheduler.call_every(0.005, lambda: ticks.append(1))
    QTest.qWait(60)
    assert len(ticks) >= 2
    assert not handle.done
    handle.cancel()
    QTest.qWait(10)
    assert live_timers(qt_parent) == []
