import logging
import sys

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QColor, QPalette
from PyQt6.QtWidgets import QApplication, QLabel, QMainWindow, QSplitter, QTextEdit, QVBoxLayout, QWidget

from notegraph.api_client import GraphClient
from notegraph.config import AppSettings
from notegraph.controller import LayoutController
from notegraph.ui.graph_widget import GraphWidget

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, controller):
        super().__init__()
        self.setWindowTitle("NoteGraph - Knowledge Graph")
        self.resize(1200, 800)

        self.controller = controller
        self.controller.graph_changed.connect(self.on_graph_changed)
        self.controller.selection_changed.connect(self.on_selection_changed)
        self.controller.loading_changed.connect(self.on_loading_changed)
        self.controller.fetch_failed.connect(self.on_fetch_failed)
        self.controller.simulation_state_changed.connect(self.on_simulation_state_changed)

        self.init_ui()
        self.setup_theme()

    def init_ui(self):
        self.central_widget = QWidget()
        self.setCentralWidget(self.central_widget)

        self.main_layout = QVBoxLayout(self.central_widget)
        self.main_layout.setContentsMargins(0, 0, 0, 0)

        self.info_label = QLabel("Loading graph...")
        self.info_label.setStyleSheet("padding: 5px; background-color: #252526; color: #ccc; border-bottom: 1px solid #3e3e3e;")
        self.main_layout.addWidget(self.info_label)

        self.splitter = QSplitter(Qt.Orientation.Horizontal)
        self.main_layout.addWidget(self.splitter)

        self.details_panel = QTextEdit()
        self.details_panel.setReadOnly(True)
        self.details_panel.setText("Click a node to view details. Double-click a concept to focus it.")
        self.splitter.addWidget(self.details_panel)

        self.graph_widget = GraphWidget(self.controller)
        self.splitter.addWidget(self.graph_widget)

        self.splitter.setStretchFactor(0, 25)
        self.splitter.setStretchFactor(1, 75)

        self.create_menu()

    def create_menu(self):
        menu = self.menuBar()

        file_menu = menu.addMenu("&File")
        exit_action = QAction("E&xit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        view_menu = menu.addMenu("&View")
        reset_action = QAction("&Reset View", self)
        reset_action.setShortcut("Ctrl+R")
        reset_action.triggered.connect(self.controller.reset)
        view_menu.addAction(reset_action)

        refresh_action = QAction("Re&fresh", self)
        refresh_action.setShortcut("F5")
        refresh_action.triggered.connect(self.controller.refresh)
        view_menu.addAction(refresh_action)

    def setup_theme(self):
        app = QApplication.instance()
        app.setStyle("Fusion")

        palette = QPalette()
        palette.setColor(QPalette.ColorRole.Window, QColor(53, 53, 53))
        palette.setColor(QPalette.ColorRole.WindowText, Qt.GlobalColor.white)
        palette.setColor(QPalette.ColorRole.Base, QColor(25, 25, 25))
        palette.setColor(QPalette.ColorRole.Text, Qt.GlobalColor.white)
        palette.setColor(QPalette.ColorRole.Button, QColor(53, 53, 53))
        palette.setColor(QPalette.ColorRole.ButtonText, Qt.GlobalColor.white)
        palette.setColor(QPalette.ColorRole.Highlight, QColor(42, 130, 218))
        palette.setColor(QPalette.ColorRole.HighlightedText, Qt.GlobalColor.black)
        app.setPalette(palette)

        self.details_panel.setStyleSheet(
            "QTextEdit { background-color: #1e1e1e; color: #d4d4d4; font-size: 13px; border: none; padding: 10px; }"
        )

    def on_graph_changed(self):
        components = self.controller.model.components()
        self.info_label.setText(
            f"{len(self.controller.model.nodes)} nodes, {len(self.controller.model.edges)} relations, "
            f"{len(components)} cluster(s)"
        )

    def on_simulation_state_changed(self, running):
        self.statusBar().showMessage("Arranging layout..." if running else "Layout settled", 0 if running else 3000)

    def on_loading_changed(self, loading):
        if loading:
            self.info_label.setText("Loading graph...")
        elif not self.controller.error_message:
            self.on_graph_changed()

    def on_fetch_failed(self, message):
        # Stale graph stays on screen
        self.info_label.setText(f"Could not refresh graph: {message}")

    def on_selection_changed(self, node):
        if node is None:
            self.details_panel.setText("Click a node to view details. Double-click a concept to focus it.")
            return

        incoming, outgoing = self.controller.neighbors(node.uid)
        text = f"<h1>{node.label}</h1><p><i>{node.kind.value}</i></p>"

        text += "<h3>Linked from</h3><ul>"
        for uid in incoming:
            text += f"<li>{self.controller.node(uid).label}</li>"
        if not incoming:
            text += "<li><i>nothing</i></li>"
        text += "</ul>"

        text += "<h3>Links to</h3><ul>"
        for uid in outgoing:
            text += f"<li>{self.controller.node(uid).label}</li>"
        if not outgoing:
            text += "<li><i>nothing</i></li>"
        text += "</ul>"

        self.details_panel.setHtml(text)

    def closeEvent(self, event):
        self.controller.shutdown()
        super().closeEvent(event)


def main():
    settings = AppSettings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    app = QApplication(sys.argv)

    client = GraphClient(settings.api_url, token=settings.token, timeout=settings.timeout)
    controller = LayoutController(
        source=client,
        config=settings.layout,
        depth=settings.graph_depth,
        limit=settings.graph_limit,
    )

    window = MainWindow(controller)
    window.show()

    logger.info(f"Fetching graph from {settings.api_url}")
    controller.refresh()

    code = app.exec()
    client.close()
    return code


if __name__ == "__main__":
    sys.exit(main())
