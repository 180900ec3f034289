"""Qt compatibility layer for PySide6, PyQt6, and PyQt5.

Qt is optional for grid_taskr. When a binding is installed, the fill
progress events can be observed through Qt signals (see ``signals``);
otherwise ``QT_AVAILABLE`` is False and only the plain event emitter is used.
"""

QT_API = None
QtCore = None
Signal = None

# Try PySide6 first (modern, official Qt bindings)
try:
    from PySide6 import QtCore
    from PySide6.QtCore import Signal

    QT_API = "PySide6"
except (ImportError, NotImplementedError):
    pass

if QT_API is None:
    try:
        from PyQt6 import QtCore
        from PyQt6.QtCore import pyqtSignal as Signal

        QT_API = "PyQt6"
    except (ImportError, NotImplementedError):
        pass

if QT_API is None:
    try:
        from PyQt5 import QtCore
        from PyQt5.QtCore import pyqtSignal as Signal

        QT_API = "PyQt5"
    except (ImportError, NotImplementedError):
        pass

QT_AVAILABLE = QT_API is not None


__all__ = [
    "QtCore",
    "Signal",
    "QT_API",
    "QT_AVAILABLE",
]
