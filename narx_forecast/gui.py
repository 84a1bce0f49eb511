"""
PyQt5 front-end: import button, lag order and hidden neuron fields, and a
train button. Every handler reports NarxError through a message box and
leaves the window as it was.
"""

import logging
import sys
from typing import Any, Dict, Optional

import matplotlib
matplotlib.use("Qt5Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_qt5agg import FigureCanvasQTAgg as FigureCanvas
from matplotlib.backends.backend_qt5agg import NavigationToolbar2QT as NavigationToolbar

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QApplication, QDialog, QFileDialog, QFormLayout, QLineEdit,
    QMainWindow, QMessageBox, QPushButton, QVBoxLayout, QWidget
)

from .evaluation import format_results, plot_actual_vs_predicted
from .exceptions import NarxError
from .pipeline import ForecastSession

logger = logging.getLogger(__name__)

FILE_FILTER = "Data files (*.mat *.npz);;MAT files (*.mat);;NumPy archives (*.npz)"


class PlotWindow(QDialog):
    """Non-modal window embedding the actual vs predicted chart."""

    def __init__(self, figure, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Actual vs Predicted Values")
        self.resize(900, 500)
        self.figure = figure

        layout = QVBoxLayout()
        canvas = FigureCanvas(figure)
        layout.addWidget(NavigationToolbar(canvas, self))
        layout.addWidget(canvas)
        self.setLayout(layout)

    def closeEvent(self, event):
        plt.close(self.figure)
        super().closeEvent(event)


class NarxMainWindow(QMainWindow):

    def __init__(self, session: Optional[ForecastSession] = None):
        super().__init__()
        self.session = session or ForecastSession()
        self.plot_windows = []

        self.setWindowTitle("NARX Neural Network GUI")
        self.setFixedSize(400, 300)
        self.initUI()

    def initUI(self):
        widget = QWidget()
        layout = QVBoxLayout()

        self.import_button = QPushButton("Import Data (y and X)")
        self.import_button.setMinimumHeight(40)
        self.import_button.clicked.connect(self.import_data)
        layout.addWidget(self.import_button)

        form = QFormLayout()
        self.lag_edit = QLineEdit(str(self.session.default_lag_order))
        self.neurons_edit = QLineEdit(str(self.session.default_hidden_units))
        form.addRow("Lag Order:", self.lag_edit)
        form.addRow("Hidden Neurons:", self.neurons_edit)
        layout.addLayout(form)

        self.train_button = QPushButton("Train and Evaluate NARX Network")
        self.train_button.setMinimumHeight(40)
        self.train_button.clicked.connect(self.train_network)
        layout.addWidget(self.train_button)

        widget.setLayout(layout)
        self.setCentralWidget(widget)

    def _show_error(self, error: Exception):
        logger.error(f"{type(error).__name__}: {error}")
        QMessageBox.critical(self, "Error", str(error))

    def import_data(self):
        file_path, _ = QFileDialog.getOpenFileName(self, "Select a Data File", "", FILE_FILTER)

        try:
            summary = self.session.import_file(file_path)
        except NarxError as e:
            self._show_error(e)
            return

        QMessageBox.information(
            self, "Success",
            "Data successfully loaded!\n"
            f"{summary['n_observations']} observations, {summary['n_regressors']} regressors"
        )

    def train_network(self):
        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            result = self.session.train(self.lag_edit.text(), self.neurons_edit.text())
        except NarxError as e:
            error = e
        else:
            error = None
        finally:
            QApplication.restoreOverrideCursor()

        if error is not None:
            self._show_error(error)
            return

        QMessageBox.information(self, "Results", format_results(result))
        self.show_plot(result)

    def show_plot(self, result: Dict[str, Any]):
        figure = plot_actual_vs_predicted(result['targets'], result['predictions'], result['partition'])
        window = PlotWindow(figure, self)
        window.finished.connect(lambda _: self.plot_windows.remove(window))
        self.plot_windows.append(window)
        window.show()


def run_app(config: Optional[Dict[str, Any]] = None) -> int:
    """Open the main window and run the Qt event loop."""
    app = QApplication.instance() or QApplication(sys.argv)
    window = NarxMainWindow(ForecastSession(config))
    window.show()
    return app.exec_()
