import sys
import threading
from typing import Callable, Optional

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QShortcut, QKeySequence
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QHBoxLayout, QVBoxLayout, QGroupBox, QFormLayout,
    QLineEdit, QPushButton, QLabel, QComboBox, QProgressBar, QCheckBox, QPlainTextEdit,
    QFileDialog, QTabWidget, QStackedWidget,
)

import met
from coords import parse_coordinate_pair
from errors import ArtyError, MissingInputError, OutOfRangeError
from logger import logger
from models import FireMission, LatLonInput, MgrsInput, ManualInput, LATLON, MGRS, MANUAL
from report import ReportGenerator, ReportInput, format_solution
from solver import solve, resolve_positions
from tables import TableManager
from utils import parse_float, az_input_to_deg
from weapon import WeaponCatalog, load_catalog
from solution_window import SolutionWindow

NL = chr(10)

MODE_LABELS = (("Lat / Lon", LATLON), ("MGRS", MGRS), ("Manual range / azimuth", MANUAL))


def _row(*widgets) -> QWidget:
    w = QWidget()
    lay = QHBoxLayout(w)
    lay.setContentsMargins(0, 0, 0, 0)
    for x in widgets:
        lay.addWidget(x)
    return w


def _required(w: QLineEdit, field: str, mode: str) -> str:
    text = (w.text() or "").strip()
    if not text:
        raise MissingInputError(field, mode)
    return text


class MainWindow(QMainWindow):
    def __init__(self, catalog: Optional[WeaponCatalog] = None, reporter: Optional[ReportGenerator] = None):
        super().__init__()
        self.setWindowTitle("Artillery Fire Mission Calculator")
        self.resize(900, 720)

        self.catalog = catalog if catalog is not None else load_catalog()
        self.reporter = reporter if reporter is not None else ReportGenerator()
        self.tables = TableManager(self.catalog)
        self._net_lock = threading.Lock()
        self._busy = False
        self._pending = None

        self.sol_win = SolutionWindow(self)

        self.setStyleSheet("""
            QWidget { background: #0d0f12; color: #e6e6e6; font-size: 12px; }
            QGroupBox { border: 1px solid #2a2f36; margin-top: 10px; padding: 10px; border-radius: 6px; }
            QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; color: #ffffff; font-weight: 700; }
            QLineEdit, QComboBox, QPlainTextEdit { background: #141a21; border: 1px solid #2a2f36; padding: 6px; border-radius: 4px; }
            QPushButton { background: #1a2028; border: 1px solid #3a4048; padding: 10px; border-radius: 6px; font-weight: 700; }
            QPushButton:hover { background: #222a34; }
            QPushButton:disabled { color: #888; background: #12161c; }
            QProgressBar { background: #141a21; border: 1px solid #2a2f36; border-radius: 4px; text-align: center; }
            QProgressBar::chunk { background: #2c6bff; }
            QTabWidget::pane { border: 1px solid #2a2f36; }
        """)

        root = QWidget(); self.setCentralWidget(root)
        main = QVBoxLayout(root)

        self.tabs = QTabWidget()
        main.addWidget(self.tabs)

        self.progress = QProgressBar(); self.progress.setRange(0, 100); self.progress.setValue(0)
        self.status = QLabel("—"); self.status.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self.out = QLabel("—"); self.out.setTextInteractionFlags(Qt.TextSelectableByMouse)
        main.addWidget(self.progress)
        main.addWidget(self.status)
        main.addWidget(self.out)

        self.tab_mission = QWidget()
        self.tab_env = QWidget()
        self.tab_tables = QWidget()
        self.tabs.addTab(self.tab_mission, "Mission")
        self.tabs.addTab(self.tab_env, "MET / elevation")
        self.tabs.addTab(self.tab_tables, "Firing tables")

        self._build_mission_tab()
        self._build_env_tab()
        self._build_tables_tab()

        QShortcut(QKeySequence("Return"), self, activated=self.compute_selected)

        # background results are picked up from the Qt thread
        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(200)
        self._poll_timer.timeout.connect(self._poll_worker)
        self._poll_timer.start()

        self._on_weapon_changed()

    # --- BUILD TABS ---

    def _build_mission_tab(self):
        lay = QVBoxLayout(self.tab_mission)

        gun_box = QGroupBox("Weapon")
        gun_form = QFormLayout(gun_box)
        self.weapon = QComboBox(); self.weapon.addItems(list(self.catalog.names()))
        self.ammo = QComboBox()
        self.projectile = QComboBox()
        self.charge = QComboBox()
        self.charge_label = QLabel("Charge")
        gun_form.addRow("Weapon system", self.weapon)
        gun_form.addRow("Ammunition", self.ammo)
        gun_form.addRow("Projectile", self.projectile)
        gun_form.addRow(self.charge_label, self.charge)
        lay.addWidget(gun_box)
        self.weapon.currentIndexChanged.connect(self._on_weapon_changed)

        pos_box = QGroupBox("Positions")
        pos_lay = QVBoxLayout(pos_box)
        self.mode = QComboBox()
        for label, mode in MODE_LABELS:
            self.mode.addItem(label, mode)
        pos_lay.addWidget(self.mode)

        self.pages = QStackedWidget()
        pos_lay.addWidget(self.pages)

        page = QWidget(); form = QFormLayout(page)
        self.weapon_latlon = QLineEdit(); self.weapon_latlon.setPlaceholderText("lat, lon")
        self.target_latlon = QLineEdit(); self.target_latlon.setPlaceholderText("lat, lon")
        form.addRow("Weapon", self.weapon_latlon)
        form.addRow("Target", self.target_latlon)
        self.pages.addWidget(page)

        page = QWidget(); form = QFormLayout(page)
        self.weapon_mgrs = QLineEdit(); self.weapon_mgrs.setPlaceholderText("18SUJ2348006270")
        self.target_mgrs = QLineEdit(); self.target_mgrs.setPlaceholderText("18SUJ2348006270")
        form.addRow("Weapon MGRS", self.weapon_mgrs)
        form.addRow("Target MGRS", self.target_mgrs)
        self.pages.addWidget(page)

        page = QWidget(); form = QFormLayout(page)
        self.range_m = QLineEdit(); self.range_m.setPlaceholderText("m")
        self.azimuth = QLineEdit()
        self.az_unit = QComboBox(); self.az_unit.addItems(["deg", "mil"])
        form.addRow("Range, m", self.range_m)
        form.addRow("Azimuth", _row(self.azimuth, self.az_unit))
        self.pages.addWidget(page)

        self.mode.currentIndexChanged.connect(self._on_mode_changed)
        lay.addWidget(pos_box)

        self.ai_refine = QCheckBox("Refine report with AI")
        self.ai_refine.setEnabled(self.reporter.available)
        if not self.reporter.available:
            self.ai_refine.setToolTip("Set OPENAI_API_KEY to enable")
        self.btn_calc = QPushButton("Calculate firing solution")
        self.btn_calc.clicked.connect(self.compute_selected)
        lay.addWidget(self.ai_refine)
        lay.addWidget(self.btn_calc)
        lay.addStretch(1)

    def _build_env_tab(self):
        lay = QVBoxLayout(self.tab_env)

        box = QGroupBox("Elevation and MET")
        form = QFormLayout(box)
        self.weapon_elev = QLineEdit("0")
        self.target_elev = QLineEdit("0")
        self.met_text = QPlainTextEdit("Standard atmosphere, no wind.")
        self.btn_fetch = QPushButton("Fetch data")
        self.btn_fetch.setToolTip("Terrain elevation and current weather from Open-Meteo")
        form.addRow("Weapon elevation, m", self.weapon_elev)
        form.addRow("Target elevation, m", self.target_elev)
        form.addRow("MET data", self.met_text)
        form.addRow(self.btn_fetch)
        lay.addWidget(box)
        lay.addStretch(1)

        self.btn_fetch.clicked.connect(self.fetch_mission_data)

    def _build_tables_tab(self):
        lay = QVBoxLayout(self.tab_tables)

        box = QGroupBox("Firing table for the selected weapon and charge")
        form = QFormLayout(box)
        self.table_step = QLineEdit(str(self.tables.step_m))
        self.btn_table = QPushButton("Show table")
        self.btn_save_tables = QPushButton("Save all tables…")
        self.btn_load_tables = QPushButton("Load tables…")
        form.addRow("Range step, m", self.table_step)
        form.addRow(self.btn_table)
        form.addRow(self.btn_save_tables, self.btn_load_tables)
        lay.addWidget(box)
        lay.addStretch(1)

        self.btn_table.clicked.connect(self.show_table)
        self.btn_save_tables.clicked.connect(self.save_tables)
        self.btn_load_tables.clicked.connect(self.load_tables)

    # --- FORM ---

    def _on_weapon_changed(self):
        name = self.weapon.currentText()
        if name not in self.catalog:
            return
        profile = self.catalog.profile(name)
        for combo, items in ((self.ammo, profile.ammo), (self.projectile, profile.projectiles),
                             (self.charge, profile.charges)):
            combo.clear()
            combo.addItems(list(items))
        self.charge_label.setText(profile.charge_label)

    def _on_mode_changed(self):
        self.pages.setCurrentIndex(self.mode.currentIndex())

    def _position(self):
        mode = self.mode.currentData()
        if mode == LATLON:
            gun = parse_coordinate_pair(_required(self.weapon_latlon, "weapon", mode), "weapon")
            tgt = parse_coordinate_pair(_required(self.target_latlon, "target", mode), "target")
            return LatLonInput(gun.lat, gun.lon, tgt.lat, tgt.lon)
        if mode == MGRS:
            return MgrsInput(_required(self.weapon_mgrs, "weapon_mgrs", mode),
                             _required(self.target_mgrs, "target_mgrs", mode))
        az = parse_float(self.azimuth.text(), "azimuth_deg")
        return ManualInput(range_m=parse_float(self.range_m.text(), "range_m"),
                           azimuth_deg=az_input_to_deg(az, self.az_unit.currentText()))

    def _mission_from_form(self) -> FireMission:
        return FireMission(
            weapon=self.weapon.currentText(),
            charge=self.charge.currentText(),
            position=self._position(),
            ammunition=self.ammo.currentText(),
            projectile=self.projectile.currentText(),
            weapon_elevation_m=parse_float(self.weapon_elev.text(), "weapon_elevation_m", 0.0),
            target_elevation_m=parse_float(self.target_elev.text(), "target_elevation_m", 0.0),
            met_data=self.met_text.toPlainText().strip(),
        )

    def _show_error(self, e: Exception):
        where = f" [{e.field}]" if isinstance(e, ArtyError) and e.field else ""
        hint = ""
        if isinstance(e, OutOfRangeError) and e.reachable_charges:
            hint = f" Reachable with: {', '.join(e.reachable_charges)}"
        self.status.setText(f"Error{where}: {e}{hint}")
        self.progress.setValue(0)

    # --- ACTIONS ---

    def compute_selected(self):
        try:
            mission = self._mission_from_form()
            sol = solve(mission, self.catalog)
        except ArtyError as e:
            self._show_error(e)
            return
        inp = ReportInput.from_solution(mission, self.catalog.profile(mission.weapon), sol)
        summary = format_solution(inp)

        self.out.setText(
            f"Range: {sol.range_m:.0f} m | Az: {sol.azimuth_mil:.0f} mil ({sol.azimuth_deg:.1f}°) | "
            f"QE: {sol.elevation_mil:.0f} mil | TOF: {sol.time_of_flight_s:.1f} s"
        )
        self.sol_win.set_text(summary)
        self.sol_win.show()

        if self.ai_refine.isChecked() and self.reporter.available:
            if self._start_worker("report", lambda: self.reporter.generate(inp)):
                self.status.setText("Generating report…")
                self.progress.setValue(50)
            return
        self.status.setText(f"Done: {mission.weapon} / {mission.charge}")
        self.progress.setValue(100)

    def fetch_mission_data(self):
        try:
            if self.mode.currentData() == MANUAL:
                raise MissingInputError("weapon and target positions", MANUAL)
            gun, tgt = resolve_positions(self._position())
        except ArtyError as e:
            self._show_error(e)
            return
        if self._start_worker("mission_data", lambda: met.fetch_mission_data(gun, tgt)):
            self.status.setText("Fetching elevation and weather…")
            self.progress.setValue(30)

    def show_table(self):
        try:
            step = parse_float(self.table_step.text(), "step", self.tables.step_m)
            tab = self.tables.get(self.weapon.currentText(), self.charge.currentText(), step)
        except ArtyError as e:
            self._show_error(e)
            return
        lines = [f"{tab.weapon} / {tab.charge} ({tab.muzzle_velocity:.0f} m/s)", "Range m    QE mil   TOF s"]
        for r in tab.rows():
            lines.append(f"{r['range_m']:7.0f} {r['elevation_mil']:9.1f} {r['time_of_flight_s']:7.1f}")
        self.sol_win.set_text(NL.join(lines))
        self.sol_win.show()
        self.status.setText(f"Table: {len(tab.range_m)} rows up to {tab.max_range_m:.0f} m")

    def save_tables(self):
        folder = QFileDialog.getExistingDirectory(self, "Save firing tables")
        if not folder:
            return
        try:
            paths = self.tables.save_folder(folder)
        except OSError as e:
            self._show_error(e)
            return
        self.status.setText(f"Saved {len(paths)} tables")

    def load_tables(self):
        folder = QFileDialog.getExistingDirectory(self, "Load firing tables")
        if not folder:
            return
        try:
            n = self.tables.load_folder(folder)
        except (OSError, ValueError, KeyError) as e:
            self._show_error(e)
            return
        self.status.setText(f"Loaded {n} tables")

    # --- BACKGROUND WORK ---

    def _start_worker(self, kind: str, fn: Callable) -> bool:
        if self._busy:
            self.status.setText("Busy, please wait…")
            return False
        self._busy = True
        self.btn_fetch.setEnabled(False)

        def worker():
            try:
                result = (kind, fn())
            except ArtyError as e:
                result = ("error", e)
            except Exception as e:
                logger.exception(f"Background task {kind} crashed")
                result = ("error", e)
            with self._net_lock:
                self._pending = result

        threading.Thread(target=worker, daemon=True).start()
        return True

    def _poll_worker(self):
        with self._net_lock:
            pending = self._pending
            self._pending = None
        if pending is None:
            return
        self._busy = False
        self.btn_fetch.setEnabled(True)
        kind, value = pending
        if kind == "error":
            logger.warning(f"Background task failed: {getattr(value, 'kind', type(value).__name__)}")
            self._show_error(value)
        elif kind == "mission_data":
            self.weapon_elev.setText(str(value.weapon_elevation_m))
            self.target_elev.setText(str(value.target_elevation_m))
            self.met_text.setPlainText(value.met_data)
            self.status.setText(f"Mission data updated. Range to target: {value.range_m:.0f} m")
            self.progress.setValue(100)
        elif kind == "report":
            self.sol_win.set_text(value)
            self.sol_win.show()
            self.status.setText("AI report ready")
            self.progress.setValue(100)


def main():
    app = QApplication(sys.argv)
    w = MainWindow(); w.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
