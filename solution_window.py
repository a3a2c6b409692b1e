from PySide6.QtCore import Qt
from PySide6.QtGui import QFont, QGuiApplication
from PySide6.QtWidgets import QDialog, QVBoxLayout, QPlainTextEdit, QPushButton, QHBoxLayout


class SolutionWindow(QDialog):
    """Always-on-top read-only view of the last solution, report or table."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Firing Solution")
        self.setWindowFlag(Qt.WindowStaysOnTopHint, True)
        self.setModal(False)
        self.resize(520, 360)

        lay = QVBoxLayout(self)
        self.text = QPlainTextEdit()
        self.text.setReadOnly(True)
        self.text.setFont(QFont("Monospace", 11))
        lay.addWidget(self.text)

        btn_row = QHBoxLayout()
        self.btn_copy = QPushButton("Copy")
        self.btn_close = QPushButton("Hide")
        btn_row.addWidget(self.btn_copy)
        btn_row.addWidget(self.btn_close)
        lay.addLayout(btn_row)

        self.btn_copy.clicked.connect(self.copy_text)
        self.btn_close.clicked.connect(self.hide)

    def set_text(self, text: str):
        self.text.setPlainText(text)

    def copy_text(self):
        QGuiApplication.clipboard().setText(self.text.toPlainText())
