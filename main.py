"""
main.py

Dialog Graph Editor - Main Application

PyQt6 application for editing branching dialog scenes:
- Cards (replicas) placed freely on an infinite canvas
- Directed edges routed orthogonally around other cards
- Click-to-connect edge creation
- Property panel for the selected card or edge, layered auto-layout
- Undo/redo, YAML/JSON scene files, periodic autosave

Usage:
    python main.py [scene.yaml]

Dependencies:
    pip install PyQt6 platformdirs tomli_w jsonschema PyYAML networkx
"""

from __future__ import annotations

import sys
import traceback
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence, QUndoStack
from PyQt6.QtWidgets import (
    QApplication,
    QFileDialog,
    QMainWindow,
    QMessageBox,
    QSplitter,
    QToolBar,
)

from autosave import AutosaveService
from canvas.edge_creation import EdgeCreationState
from canvas.items import CardItem, EdgeItem
from canvas.scene import DialogGraphScene
from canvas.view import GraphView
from debug_trace import close_log, configure_logging, trace, trace_call, trace_exception
from error_log import ErrorLog
from graph.errors import GraphError
from graph.layout import layered_layout
from graph.service import GraphService
from models import DialogScene, Edge, Position
from properties import PropertyPanel
from routing.router import EdgeRouter, RouterConfig
from scene_io import export_yaml, import_yaml, list_autosaves, load_scene, save_scene
from settings import SettingsManager, get_settings
from undo_commands import GraphChangeCommand, apply_change, push_move

SCENE_FILTER = "Scene files (*.yaml *.yml *.json);;YAML (*.yaml *.yml);;JSON (*.json)"
YAML_FILTER = "YAML (*.yaml *.yml)"

# Gap between a newly added card and the previous one
NEW_CARD_STEP = 40.0


class MainWindow(QMainWindow):
    """
    Main window: graph canvas, toolbar and File/Edit/View menus.

    All model mutations go through ``apply_change`` so they land on the
    undo stack.  Model and file errors are shown in a message box and
    recorded in the error log.
    """

    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.settings_manager = settings_manager
        self.current_path: Optional[Path] = None

        self.error_log = ErrorLog()
        self.service = GraphService()
        self.router = EdgeRouter(RouterConfig.from_settings())

        # Scene and view
        self.scene = DialogGraphScene(self.service, self.router)
        self.view = GraphView(self.scene)

        # Property panel (in splitter beside canvas)
        self.props = PropertyPanel(self.service, self)

        self.main_splitter = QSplitter(Qt.Orientation.Horizontal)
        self.main_splitter.addWidget(self.view)
        self.main_splitter.addWidget(self.props)
        self.main_splitter.setStretchFactor(0, 4)  # Canvas gets more space
        self.main_splitter.setStretchFactor(1, 1)
        self.setCentralWidget(self.main_splitter)

        # Undo/Redo stack
        self.undo_stack = QUndoStack(self)
        self.undo_stack.setUndoLimit(100)
        self.undo_stack.cleanChanged.connect(lambda _clean: self._update_title())
        self.props.undo_stack = self.undo_stack
        self.props.set_error_callback(self._show_error)
        self.props.set_select_callback(self._select_item)

        self._build_menus()
        self._build_toolbar()

        self.scene.set_cards_moved_callback(self._on_cards_moved)
        self.scene.set_card_activated_callback(self.edit_card)
        self.scene.set_edge_created_callback(self._on_edge_created)
        self.scene.set_error_callback(lambda e: self._show_error("Cannot create edge", e))
        self.scene.set_edge_state_callback(self._on_edge_creation_state)
        self.scene.set_model_changed_callback(self.props.refresh)
        self.scene.selectionChanged.connect(self.on_selection_changed)

        self.autosave = AutosaveService(self.service.get_scene, error_log=self.error_log, parent=self)

        self._update_title()
        self.statusBar().showMessage("Add a card to start. Select a card and press Connect to link it.")

    # ---- UI construction ----

    def _build_menus(self):
        """Build the application menu bar."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        for text, shortcut, slot in (
            ("&New Scene", QKeySequence.StandardKey.New, self.new_scene),
            ("&Open...", QKeySequence.StandardKey.Open, self.open_scene_dialog),
            ("&Save", QKeySequence.StandardKey.Save, self.save_scene),
            ("Save &As...", QKeySequence.StandardKey.SaveAs, self.save_scene_as),
        ):
            act = QAction(text, self)
            act.setShortcut(shortcut)
            act.triggered.connect(slot)
            file_menu.addAction(act)

        file_menu.addSeparator()
        import_act = QAction("&Import YAML...", self)
        import_act.triggered.connect(self.import_yaml_dialog)
        file_menu.addAction(import_act)

        export_act = QAction("&Export YAML...", self)
        export_act.triggered.connect(self.export_yaml_dialog)
        file_menu.addAction(export_act)

        restore_act = QAction("&Restore Latest Autosave", self)
        restore_act.triggered.connect(self.restore_autosave)
        file_menu.addAction(restore_act)

        file_menu.addSeparator()
        exit_act = QAction("E&xit", self)
        exit_act.setShortcut(QKeySequence.StandardKey.Quit)
        exit_act.triggered.connect(self.close)
        file_menu.addAction(exit_act)

        edit_menu = menubar.addMenu("&Edit")
        self.undo_act = self.undo_stack.createUndoAction(self, "&Undo")
        self.undo_act.setShortcut(QKeySequence.StandardKey.Undo)
        edit_menu.addAction(self.undo_act)
        self.redo_act = self.undo_stack.createRedoAction(self, "&Redo")
        self.redo_act.setShortcut(QKeySequence.StandardKey.Redo)
        edit_menu.addAction(self.redo_act)

        edit_menu.addSeparator()
        self.delete_act = QAction("&Delete", self)
        self.delete_act.setShortcut(QKeySequence.StandardKey.Delete)
        self.delete_act.triggered.connect(self.delete_selected)
        edit_menu.addAction(self.delete_act)

        edit_menu.addSeparator()
        self.layout_act = QAction("Auto &Layout", self)
        self.layout_act.setShortcut("Ctrl+L")
        self.layout_act.triggered.connect(self.auto_layout)
        edit_menu.addAction(self.layout_act)

        view_menu = menubar.addMenu("&View")
        fit_act = QAction("&Fit All", self)
        fit_act.setShortcut("Ctrl+0")
        fit_act.triggered.connect(self.view.fit_all)
        view_menu.addAction(fit_act)
        reset_act = QAction("&Reset Zoom", self)
        reset_act.setShortcut("Ctrl+1")
        reset_act.triggered.connect(self.view.reset_zoom)
        view_menu.addAction(reset_act)

    def _build_toolbar(self):
        """Build the main toolbar."""
        tb = QToolBar("Tools")
        tb.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.TopToolBarArea, tb)

        add_act = QAction("Add Card", self)
        add_act.setShortcut("N")
        add_act.triggered.connect(self.add_card)
        tb.addAction(add_act)

        self.connect_act = QAction("Connect", self)
        self.connect_act.setShortcut("C")
        self.connect_act.setCheckable(True)
        self.connect_act.triggered.connect(self._toggle_connect)
        tb.addAction(self.connect_act)

        tb.addAction(self.delete_act)
        tb.addAction(self.layout_act)
        tb.addSeparator()
        tb.addAction(self.undo_act)
        tb.addAction(self.redo_act)

    def _update_title(self):
        name = self.current_path.name if self.current_path else self.service.get_scene().name
        dirty = "" if self.undo_stack.isClean() else " *"
        self.setWindowTitle(f"Dialog Editor - {name}{dirty}")

    # ---- Errors ----

    def _show_error(self, title: str, error: BaseException):
        self.error_log.log_error(error, title)
        QMessageBox.warning(self, title, str(error))
        self.statusBar().showMessage(f"{title}: {error}")

    # ---- Cards and edges ----

    def _new_card_position(self) -> Position:
        center = self.view.mapToScene(self.view.viewport().rect().center())
        cfg = self.router.config
        offset = NEW_CARD_STEP * (len(self.service.cards) % 10)
        return Position(center.x() - cfg.card_width / 2 + offset,
                        center.y() - cfg.card_height / 2 + offset)

    def add_card(self):
        """Add a card near the center of the view."""
        pos = self._new_card_position()
        card = apply_change(self.undo_stack, self.service, "Add card",
                            lambda: self.service.add_card(position=pos))
        self.statusBar().showMessage(f"Added card {card.id}.")

    def edit_card(self, card_id: int):
        """Select a card and put the cursor in its title field."""
        self.scene.select_card(card_id)
        self.props.title_edit.setFocus()
        self.props.title_edit.selectAll()

    def on_selection_changed(self):
        """Show the single selected card or edge in the property panel."""
        items = [i for i in self.scene.selectedItems() if isinstance(i, (CardItem, EdgeItem))]
        self.props.set_item(items[0] if len(items) == 1 else None)

    def _select_item(self, kind: str, ident):
        if kind == "card":
            self.scene.select_card(ident)
        else:
            self.scene.select_edge(ident)

    def auto_layout(self):
        """Arrange all cards top to bottom in layers (undoable)."""
        if not self.service.cards:
            return
        cfg = self.router.config
        spacing = self.settings_manager.settings.layout
        positions = layered_layout(self.service.cards, self.service.edges,
                                   cfg.card_width, cfg.card_height,
                                   spacing.node_sep, spacing.rank_sep)
        try:
            apply_change(self.undo_stack, self.service, "Auto layout",
                         lambda: self.service.move_cards(positions))
        except GraphError as e:
            self._show_error("Auto layout failed", e)
            return
        self.view.fit_all()
        self.statusBar().showMessage(f"Arranged {len(positions)} card(s).")

    def delete_selected(self):
        """Delete selected edges and cards (cards take their edges along)."""
        edge_ids = self.scene.selected_edge_ids()
        card_ids = self.scene.selected_card_ids()
        if not edge_ids and not card_ids:
            return

        def do_delete():
            for edge_id in edge_ids:
                if any(e.id == edge_id for e in self.service.edges):
                    self.service.delete_edge(edge_id)
            for card_id in card_ids:
                self.service.delete_card(card_id)

        try:
            apply_change(self.undo_stack, self.service,
                         f"Delete {len(card_ids) + len(edge_ids)} item(s)", do_delete)
        except GraphError as e:
            self._show_error("Delete failed", e)
            return
        self.statusBar().showMessage(f"Deleted {len(card_ids)} card(s), {len(edge_ids)} edge(s).")

    def _toggle_connect(self, checked: bool):
        if not checked:
            self.scene.edge_creation.cancel()
            return
        if not self.scene.start_edge_from_selection():
            self.connect_act.setChecked(False)
            self.statusBar().showMessage("Select exactly one card to connect from.")

    def _on_edge_creation_state(self, state: str, source_id: Optional[int]):
        active = state == EdgeCreationState.SOURCE_SELECTED
        self.connect_act.setChecked(active)
        if active:
            self.statusBar().showMessage(
                f"Connecting from card {source_id}: click a target card, Esc to cancel.")

    def _on_edge_created(self, before: DialogScene, edge: Edge):
        self.undo_stack.push(GraphChangeCommand(
            self.service, f"Connect {edge.source} -> {edge.target}", before, self.service.get_scene()))
        self.statusBar().showMessage(f"Connected card {edge.source} to card {edge.target}.")

    def _on_cards_moved(self, moved: dict):
        """Commit dragged positions and push move commands to the undo stack."""
        if len(moved) > 1:
            self.undo_stack.beginMacro(f"Move {len(moved)} cards")
        for card_id, (old_pos, new_pos) in moved.items():
            self.service.update_card(card_id, position=new_pos)
            push_move(self.undo_stack, self.service, card_id, old_pos, new_pos)
        if len(moved) > 1:
            self.undo_stack.endMacro()

    # ---- Files ----

    def _replace_scene(self, scene: DialogScene, path: Optional[Path]):
        self.scene.edge_creation.cancel()
        self.service.set_scene(scene)
        self.current_path = path
        self.undo_stack.clear()
        self.undo_stack.setClean()
        self._update_title()
        self.view.fit_all()

    def _confirm_discard(self) -> bool:
        if self.undo_stack.isClean():
            return True
        answer = QMessageBox.question(
            self, "Unsaved changes", "Discard unsaved changes?",
            QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel)
        return answer == QMessageBox.StandardButton.Discard

    def new_scene(self):
        if not self._confirm_discard():
            return
        self._replace_scene(GraphService().get_scene(), None)
        self.statusBar().showMessage("New scene.")

    def open_scene_dialog(self):
        if not self._confirm_discard():
            return
        start_dir = str(self.settings_manager.get_workspace_dir())
        path, _ = QFileDialog.getOpenFileName(self, "Open scene", start_dir, SCENE_FILTER)
        if path:
            self.open_scene(path)

    @trace_call("FILE")
    def open_scene(self, path: str):
        """Load and validate a scene file, replacing the current scene."""
        try:
            scene = load_scene(path)
        except (GraphError, OSError, ValueError) as e:
            self._show_error("Open failed", e)
            return
        self._replace_scene(scene, Path(path))
        self.statusBar().showMessage(
            f"Opened {path}: {len(scene.cards)} card(s), {len(scene.edges)} edge(s).")

    def save_scene(self) -> bool:
        if self.current_path is None:
            return self.save_scene_as()
        return self._write_scene(self.current_path)

    def save_scene_as(self) -> bool:
        start_dir = str(self.settings_manager.get_workspace_dir())
        path, _ = QFileDialog.getSaveFileName(self, "Save scene", start_dir, SCENE_FILTER)
        if not path:
            return False
        if not Path(path).suffix:
            path += ".yaml"
        if not self._write_scene(Path(path)):
            return False
        self.current_path = Path(path)
        self._update_title()
        return True

    @trace_call("FILE")
    def _write_scene(self, path: Path) -> bool:
        try:
            save_scene(self.service.get_scene(), path)
        except (OSError, ValueError) as e:
            self._show_error("Save failed", e)
            return False
        self.undo_stack.setClean()
        self.statusBar().showMessage(f"Saved {path}.")
        return True

    def import_yaml_dialog(self):
        """Replace the scene with a YAML file's contents (undoable)."""
        start_dir = str(self.settings_manager.get_workspace_dir())
        path, _ = QFileDialog.getOpenFileName(self, "Import YAML", start_dir, YAML_FILTER)
        if not path:
            return
        try:
            scene = import_yaml(Path(path).read_text(encoding="utf-8"))
        except (GraphError, OSError, ValueError) as e:
            self._show_error("Import failed", e)
            return
        self.scene.edge_creation.cancel()
        apply_change(self.undo_stack, self.service, "Import YAML",
                     lambda: self.service.set_scene(scene))
        self.view.fit_all()
        self.statusBar().showMessage(f"Imported {path}.")

    def export_yaml_dialog(self):
        start_dir = str(self.settings_manager.get_workspace_dir())
        path, _ = QFileDialog.getSaveFileName(self, "Export YAML", start_dir, YAML_FILTER)
        if not path:
            return
        if Path(path).suffix.lower() not in (".yaml", ".yml"):
            path += ".yaml"
        try:
            Path(path).write_text(export_yaml(self.service.get_scene()), encoding="utf-8")
        except OSError as e:
            self._show_error("Export failed", e)
            return
        self.statusBar().showMessage(f"Exported {path}.")

    def restore_autosave(self):
        autosaves = list_autosaves()
        if not autosaves:
            QMessageBox.information(self, "Restore autosave", "No autosaves found.")
            return
        if not self._confirm_discard():
            return
        try:
            scene = load_scene(autosaves[0])
        except (GraphError, OSError, ValueError) as e:
            self._show_error("Restore failed", e)
            return
        self._replace_scene(scene, None)
        self.statusBar().showMessage(f"Restored {autosaves[0].name}.")

    def closeEvent(self, event):
        if not self._confirm_discard():
            event.ignore()
            return
        self.autosave.stop()
        super().closeEvent(event)


def main():
    """Application entry point."""
    settings_manager = get_settings()
    configure_logging(settings_manager)
    trace("Application starting", "MAIN")
    app = QApplication(sys.argv)

    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    # Save settings on application quit
    def save_on_quit():
        trace("Saving settings on quit", "MAIN")
        settings_manager.save()
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    trace("Creating MainWindow", "MAIN")
    w = MainWindow(settings_manager)
    w.resize(1400, 900)
    if len(sys.argv) > 1:
        w.open_scene(sys.argv[1])
    if settings_manager.settings.autosave.enabled:
        w.autosave.start()
    w.show()
    trace("Entering event loop", "MAIN")
    sys.exit(app.exec())


if __name__ == "__main__":
    # Set up global exception handler to catch crashes
    def excepthook(exc_type, exc_value, exc_tb):
        trace("UNCAUGHT EXCEPTION:", "CRASH")
        trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
        close_log()
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = excepthook

    try:
        main()
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise
