#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Desktop front-end: pick images/PDFs, a target size and an output format, and
compress them on a worker thread.
"""

import logging
import os
import shutil
import sys

import psutil
from PyQt6.QtCore import Qt, QThread, QTimer, pyqtSignal
from PyQt6.QtGui import QDragEnterEvent, QDropEvent
from PyQt6.QtWidgets import (
    QApplication, QComboBox, QDoubleSpinBox, QFileDialog, QGroupBox, QHBoxLayout, QLabel,
    QLineEdit, QMainWindow, QMessageBox, QProgressBar, QPushButton, QTextEdit, QVBoxLayout, QWidget
)

from . import config
from .errors import CompressionError, InvalidPreset
from .models import Preset
from .presets import exam_options, exam_preset
from .progress import ProgressReporter
from .service import CompressionService, format_file_size

logger = logging.getLogger(__name__)

FORMAT_CHOICES = (
    ("JPEG", config.JPEG),
    ("PNG", config.PNG),
    ("WebP", config.WEBP),
    ("PDF", config.PDF),
)


# ------------------------- Resources -------------------------

def available_memory_gb() -> float:
    try:
        return psutil.virtual_memory().available / (1024**3)
    except psutil.Error:
        return 0.0


def free_disk_gb(path: str) -> float:
    try:
        return shutil.disk_usage(path).free / (1024**3)
    except OSError:
        return 0.0


# ------------------------- Worker -------------------------

class _SignalLogHandler(logging.Handler):
    def __init__(self, signal):
        super().__init__(level=logging.INFO)
        self.signal = signal
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record):
        self.signal.emit(self.format(record))


class CompressionWorker(QThread):
    progress = pyqtSignal(int)
    finished = pyqtSignal(bool, str)
    status_update = pyqtSignal(str)
    memory_usage = pyqtSignal(float)

    def __init__(self, paths, preset: Preset, output_dir: str | None, pages):
        super().__init__()
        self.paths = list(paths)
        self.preset = preset
        self.output_dir = output_dir
        self.pages = pages
        self.cancelled = False

    def cancel(self):
        # Takes effect between files; a running search finishes first.
        self.cancelled = True

    def check_cancellation(self):
        if self.cancelled:
            raise InterruptedError("Operation cancelled by user")

    def _emit_memory(self):
        try:
            memory_mb = psutil.Process().memory_info().rss / (1024**2)
            self.memory_usage.emit(memory_mb)
        except psutil.Error:
            pass

    def _on_progress(self, value: int):
        self.progress.emit(value)
        self._emit_memory()

    def run(self):
        handler = _SignalLogHandler(self.status_update)
        package_logger = logging.getLogger("target_compressor")
        package_logger.addHandler(handler)
        try:
            self.preset.validate()
            service = CompressionService()
            reporter = ProgressReporter(self._on_progress)
            written, warnings, failures = [], 0, []
            count = len(self.paths)
            for idx, path in enumerate(self.paths):
                self.check_cancellation()
                self.status_update.emit(f"Converting {os.path.basename(path)} ({idx + 1}/{count})...")
                sub = reporter.child(100 * idx / count, 100 * (idx + 1) / count)
                try:
                    batch = service.compress_path(path, self.preset, self.output_dir, pages=self.pages,
                                                  progress=sub)
                except InvalidPreset as e:
                    failures.append(f"{os.path.basename(path)}: {e}")
                    continue
                for item in batch.items:
                    if item.ok:
                        written.append(item)
                        warnings += item.outcome.exceeded_target
                    else:
                        failures.append(f"{os.path.basename(path)} ({item.label}): {item.error}")
            reporter.finish()

            total = sum(item.outcome.new_size_bytes for item in written)
            lines = [f"Wrote {len(written)} file(s), {format_file_size(total)} total."]
            if warnings:
                lines.append(f"⚠ {warnings} output(s) could not reach the target size.")
            lines.extend(f"✗ {f}" for f in failures)
            self.finished.emit(not failures, "\n".join(lines))
        except InterruptedError:
            self.finished.emit(False, "Operation cancelled by user")
        except CompressionError as e:
            self.finished.emit(False, f"Error: {e}")
        except Exception as e:
            logging.exception("Compression error")
            self.finished.emit(False, f"Error: {e}")
        finally:
            package_logger.removeHandler(handler)


# ------------------------- UI -------------------------

class DropArea(QWidget):
    files_dropped = pyqtSignal(list)

    def __init__(self):
        super().__init__()
        self.setAcceptDrops(True)
        layout = QVBoxLayout()
        label = QLabel("Drag images or PDFs here or click to select")
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(label)
        self.label = label
        self.setLayout(layout)

    @staticmethod
    def _accepted(path: str) -> bool:
        return path.lower().endswith(config.INPUT_SUFFIXES)

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls() and any(self._accepted(u.path()) for u in event.mimeData().urls()):
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent):
        paths = [u.toLocalFile() for u in event.mimeData().urls() if self._accepted(u.path())]
        if paths:
            self.files_dropped.emit(paths)

    def mousePressEvent(self, _):
        paths, _ = QFileDialog.getOpenFileNames(
            self, "Select files", "", "Images and PDFs (*.jpg *.jpeg *.png *.webp *.pdf)")
        if paths:
            self.files_dropped.emit(paths)


class CompressorApp(QMainWindow):
    def __init__(self):
        super().__init__()
        self.input_paths = []
        self.worker = None

        self.setWindowTitle("Target Compressor")
        self.setMinimumSize(760, 620)

        self._build_ui()

        self.memory_timer = QTimer()
        self.memory_timer.timeout.connect(self._show_resources)
        self.memory_timer.start(2000)

    def _build_ui(self):
        main = QWidget()
        layout = QVBoxLayout()

        # System status
        sys_group = QGroupBox("System Status")
        sys_h = QHBoxLayout()
        self.memory_status = QLabel("Memory: Checking...")
        self.disk_status = QLabel("Disk: Checking...")
        sys_h.addWidget(self.memory_status)
        sys_h.addWidget(self.disk_status)
        sys_group.setLayout(sys_h)
        layout.addWidget(sys_group)

        self.drop_area = DropArea()
        self.drop_area.files_dropped.connect(self._files_selected)
        layout.addWidget(self.drop_area)

        self.file_label = QLabel("No files selected")
        self.file_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.file_label)

        # Settings
        settings_group = QGroupBox("Settings")
        settings_layout = QVBoxLayout()

        preset_row = QHBoxLayout()
        preset_row.addWidget(QLabel("Preset:"))
        self.preset_combo = QComboBox()
        self.preset_combo.addItem("Target size", None)
        for key, label in exam_options():
            if key != "custom":
                self.preset_combo.addItem(label, key)
        self.preset_combo.currentIndexChanged.connect(self._preset_changed)
        preset_row.addWidget(self.preset_combo)
        self.kind_combo = QComboBox()
        self.kind_combo.addItem("Photo", "photo")
        self.kind_combo.addItem("Signature", "signature")
        self.kind_combo.setEnabled(False)
        preset_row.addWidget(self.kind_combo)
        settings_layout.addLayout(preset_row)

        val_h = QHBoxLayout()
        self.target_input = QDoubleSpinBox()
        self.target_input.setDecimals(0)
        self.target_input.setRange(5, 50000)
        self.target_input.setValue(100)
        self.target_input.setSuffix(" KB")
        val_h.addWidget(QLabel("Target size:"))
        val_h.addWidget(self.target_input)
        self.format_combo = QComboBox()
        for label, fmt in FORMAT_CHOICES:
            self.format_combo.addItem(label, fmt)
        val_h.addWidget(QLabel("Format:"))
        val_h.addWidget(self.format_combo)
        self.pages_input = QLineEdit("all")
        self.pages_input.setToolTip("PDF pages to extract: 'all' or e.g. 1,3")
        val_h.addWidget(QLabel("Pages:"))
        val_h.addWidget(self.pages_input)
        settings_layout.addLayout(val_h)

        settings_group.setLayout(settings_layout)
        layout.addWidget(settings_group)

        # Output folder
        out_h = QHBoxLayout()
        self.output_dir = QLineEdit()
        self.output_dir.setPlaceholderText("Output folder (default: next to each file)")
        out_h.addWidget(self.output_dir)
        browse_button = QPushButton("Browse")
        browse_button.clicked.connect(self._select_output_dir)
        out_h.addWidget(browse_button)
        layout.addLayout(out_h)

        btn_h = QHBoxLayout()
        self.compress_button = QPushButton("Convert")
        self.compress_button.clicked.connect(self._start_compression)
        self.compress_button.setEnabled(False)
        btn_h.addWidget(self.compress_button)
        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self._cancel_compression)
        self.cancel_button.setEnabled(False)
        btn_h.addWidget(self.cancel_button)
        layout.addLayout(btn_h)

        # Progress
        prog_group = QGroupBox("Progress")
        prog_v = QVBoxLayout()
        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        prog_v.addWidget(self.progress_bar)
        self.status_label = QLabel("Ready")
        prog_v.addWidget(self.status_label)
        self.detailed_status = QTextEdit()
        self.detailed_status.setReadOnly(True)
        self.detailed_status.setMaximumHeight(160)
        self.detailed_status.setVisible(False)
        prog_v.addWidget(self.detailed_status)
        self.memory_label = QLabel()
        prog_v.addWidget(self.memory_label)
        prog_group.setLayout(prog_v)
        layout.addWidget(prog_group)

        main.setLayout(layout)
        self.setCentralWidget(main)

    def _show_resources(self):
        mem_gb = available_memory_gb()
        self.memory_status.setText(f"Memory: {mem_gb:.1f} GB available")
        self.memory_status.setStyleSheet("color: green;" if mem_gb > 2 else ("color: orange;" if mem_gb > 1 else "color: red;"))
        out_dir = self.output_dir.text() or (os.path.dirname(self.input_paths[0]) if self.input_paths else os.getcwd())
        free_gb = free_disk_gb(out_dir)
        self.disk_status.setText(f"Disk: {free_gb:.1f} GB free")
        self.disk_status.setStyleSheet("color: green;" if free_gb > 5 else ("color: orange;" if free_gb > 1 else "color: red;"))

    def _preset_changed(self, _index):
        exam = self.preset_combo.currentData()
        self.kind_combo.setEnabled(exam is not None)
        self.target_input.setEnabled(exam is None)
        self.format_combo.setEnabled(exam is None)

    def _select_output_dir(self):
        directory = QFileDialog.getExistingDirectory(self, "Output folder")
        if directory:
            self.output_dir.setText(directory)

    def _files_selected(self, paths):
        self.input_paths = paths
        bits = []
        for path in paths:
            try:
                with open(path, "rb") as f:
                    info = CompressionService.inspect(f.read(), os.path.basename(path))
            except (OSError, CompressionError) as e:
                bits.append(f"{os.path.basename(path)}: {e}")
                continue
            kind = f"PDF ({info['pages']} pages)" if info["is_pdf"] else "Image"
            if info["is_encrypted"]:
                kind = "PDF (encrypted)"
            bits.append(f"{os.path.basename(path)} • {format_file_size(info['size_bytes'])} • {kind}")
        self.file_label.setText("\n".join(bits))
        self.compress_button.setEnabled(bool(paths))

    def _current_preset(self) -> Preset:
        exam = self.preset_combo.currentData()
        if exam is not None:
            return exam_preset(exam, self.kind_combo.currentData())
        return Preset.for_target(self.target_input.value(), self.format_combo.currentData())

    def _current_pages(self):
        text = self.pages_input.text().strip() or "all"
        if text.lower() == "all":
            return "all"
        return [int(p) for p in text.split(",") if p.strip()]

    def _start_compression(self):
        if not self.input_paths:
            QMessageBox.warning(self, "Error", "Please select a file first.")
            return
        try:
            preset = self._current_preset().validate()
            pages = self._current_pages()
        except ValueError as e:
            QMessageBox.warning(self, "Error", str(e))
            return

        self.progress_bar.setValue(0)
        self.progress_bar.setVisible(True)
        self.detailed_status.setVisible(True)
        self.detailed_status.clear()
        self.status_label.setText("Starting...")
        self.compress_button.setEnabled(False)
        self.cancel_button.setEnabled(True)

        self.worker = CompressionWorker(self.input_paths, preset, self.output_dir.text() or None, pages)
        self.worker.progress.connect(self.progress_bar.setValue)
        self.worker.finished.connect(self._compression_finished)
        self.worker.status_update.connect(self._update_status)
        self.worker.memory_usage.connect(self._update_memory_display)
        self.worker.start()

    def _cancel_compression(self):
        if self.worker and self.worker.isRunning():
            self.worker.cancel()
            self.status_label.setText("Cancelling...")
            self.cancel_button.setEnabled(False)

    def _update_status(self, message):
        self.status_label.setText(message)
        self.detailed_status.append(message)

    def _update_memory_display(self, memory_mb):
        self.memory_label.setText(f"Memory: {memory_mb:.0f} MB")

    def _compression_finished(self, success, message):
        self.progress_bar.setVisible(False)
        self.status_label.setText(message.splitlines()[0] if message else "")
        self.compress_button.setEnabled(True)
        self.cancel_button.setEnabled(False)

        if success:
            QMessageBox.information(self, "Conversion Complete", message)
        else:
            QMessageBox.critical(self, "Conversion Failed", message)

        if self.worker:
            self.worker.deleteLater()
            self.worker = None


# ------------------------- Main -------------------------

def main():
    config.configure_logging()
    app = QApplication(sys.argv)
    window = CompressorApp()
    window.show()
    sys.exit(app.exec())


if __name__ == '__main__':
    main()
