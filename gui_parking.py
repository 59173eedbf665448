import sys
import random
import time
import networkx as nx
from matplotlib.backends.backend_qt5agg import FigureCanvasQTAgg as FigureCanvas
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from PyQt5.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout,
                             QHBoxLayout, QGridLayout, QLabel, QPushButton,
                             QTextEdit, QFrame, QStackedWidget, QLineEdit, QListWidget)
from PyQt5.QtCore import Qt, pyqtSignal, QObject, QTimer
from PyQt5.QtGui import QFont

from errors import InternalInconsistency
from placement import Parked, Waiting
from results import Departed, DuplicateVehicle, MoveKind, RemovedFromQueue, VehicleNotFound
from slot_allocator import SlotAllocator

# Événement de l'automate déclenché par chaque mouvement
EVENEMENT_AUTOMATE = {
    MoveKind.EVICTED: "evincer",
    MoveKind.EXITED: "sortir",
    MoveKind.RESTORED: "restaurer",
    MoveKind.RELOCATED: "replacer",
    MoveKind.BACKFILLED: "promouvoir",
}

# Statuts d'affichage d'une place
LIBRE, OCCUPEE, TRANSIT = 1, 0, -1

STYLE_PLACE = {
    LIBRE: "background-color: #10b981; color: white; border-radius: 8px; border: 2px solid #059669;",
    OCCUPEE: "background-color: #f43f5e; color: white; border-radius: 8px; border: 2px solid #e11d48;",
    TRANSIT: "background-color: #f59e0b; color: white; border-radius: 8px; border: 2px solid #d97706;",
}


# --- CLASS 1 : WORKER (Logique & Animation) ---
class ParkingWorker(QObject):
    log_signal = pyqtSignal(str)
    status_signal = pyqtSignal(dict)
    update_grid_signal = pyqtSignal(int, int, str)  # place, statut (LIBRE/OCCUPEE/TRANSIT), immatriculation

    def __init__(self, capacity=10, pause_s=0.3):
        super().__init__()
        self.system = SlotAllocator(capacity)
        self.pause_s = pause_s
        self.entry_times = {}
        self.history_edges = []

    def log(self, message):
        self.log_signal.emit(message)
        print(message)

    def _animation_step(self):
        """Laisse l'interface se redessiner entre deux mouvements."""
        QApplication.processEvents()
        time.sleep(self.pause_s)

    def _transition(self, src, evt):
        dst = self.system.automate.cible(src, evt)
        if dst is not None:
            self.history_edges.append((src, dst.label_etat))
        return dst

    def entree(self, reg_no, owner):
        reg_no = reg_no.strip()
        if not reg_no:
            self.log("[Erreur] Immatriculation vide.")
            return
        self.history_edges = []
        try:
            resultat = self.system.admit(reg_no, owner.strip())
        except InternalInconsistency as e:
            self.log(f"💥 Erreur interne : {e}")
            return

        if isinstance(resultat, DuplicateVehicle):
            self.log(f"[Refus] {reg_no} est déjà dans le parking.")
        elif isinstance(resultat, Parked):
            self._transition("ABSENT", "garer")
            self.entry_times[reg_no] = time.time()
            self.update_grid_signal.emit(resultat.slot, OCCUPEE, reg_no)
            self.log(f"--- 🚗 Entrée {reg_no} (Place P-{resultat.slot}) ---")
        elif isinstance(resultat, Waiting):
            self._transition("ABSENT", "mettre_en_attente")
            self.entry_times[reg_no] = time.time()
            self.log(f"--- ⏳ Parking COMPLET : {reg_no} en file d'attente ---")
        self.update_status()

    def sortie(self, reg_no):
        reg_no = reg_no.strip()
        self.history_edges = []
        try:
            resultat = self.system.depart(reg_no)
        except InternalInconsistency as e:
            self.log(f"💥 Erreur interne : {e}. Système bloqué.")
            self.update_status()
            return

        if isinstance(resultat, VehicleNotFound):
            self.log(f"[Erreur] Véhicule {reg_no} introuvable.")
            return
        if isinstance(resultat, RemovedFromQueue):
            self._transition("EN_ATTENTE", "quitter_file")
            self.entry_times.pop(reg_no, None)
            self.log(f"--- 🚧 {reg_no} quitte la file d'attente ---")
            self.update_status()
            return

        self._rejouer(resultat)

    def _rejouer(self, resultat: Departed):
        """Anime les mouvements d'un départ sur la grille, un par un."""
        self.log(f"--- 🛑 Sortie {resultat.reg_no} (P-{resultat.slot}) ---")
        for evt in resultat.events:
            src = {
                MoveKind.EVICTED: "GARE",
                MoveKind.EXITED: "GARE",
                MoveKind.BACKFILLED: "EN_ATTENTE",
            }.get(evt.kind, "EN_TRANSIT")
            self._transition(src, EVENEMENT_AUTOMATE[evt.kind])

            if evt.kind is MoveKind.EVICTED:
                self.update_grid_signal.emit(evt.slot, TRANSIT, evt.reg_no)
                self.log(f"   ↩ {evt.reg_no} sort temporairement de P-{evt.slot}")
            elif evt.kind is MoveKind.EXITED:
                self.entry_times.pop(evt.reg_no, None)
                self.update_grid_signal.emit(evt.slot, LIBRE, "")
            else:
                self.update_grid_signal.emit(evt.slot, OCCUPEE, evt.reg_no)
                verbe = {
                    MoveKind.RESTORED: "revient en",
                    MoveKind.RELOCATED: "est replacé en",
                    MoveKind.BACKFILLED: "(file d'attente) entre en",
                }[evt.kind]
                self.log(f"   ↪ {evt.reg_no} {verbe} P-{evt.slot}")
            self.update_status()
            self._animation_step()

        # Les places évincées non réoccupées redeviennent libres
        for slot in self.system.snapshot().free_slots:
            self.update_grid_signal.emit(slot, LIBRE, "")
        self.update_status()
        self.log("--- ✅ Barrière ouverte ---")

    def sortie_aleatoire(self):
        vue = self.system.snapshot()
        candidats = [v.reg_no for v in vue.slots if v is not None] + [v.reg_no for v in vue.waiting]
        if not candidats:
            self.log("[Erreur] Le parking est vide !")
            return
        self.sortie(random.choice(candidats))

    def sortie_place(self, slot):
        occupant = self.system.snapshot().occupant(slot)
        if occupant is not None:
            self.sortie(occupant.reg_no)

    def update_status(self):
        vue = self.system.snapshot()
        if self.system.corrupted:
            etat = "BLOQUÉ"
        elif not vue.free_slots:
            etat = "COMPLET"
        else:
            etat = "DISPONIBLE"
        self.status_signal.emit({
            "etat": etat,
            "libres": len(vue.free_slots),
            "gares": len(vue.occupied),
            "attente": [f"{v.reg_no} ({v.owner})" for v in vue.waiting],
            "history": list(self.history_edges),
        })


# --- CLASS 2 : WIDGET GRAPHE (Cycle de vie d'un véhicule) ---
class GraphWidget(QWidget):
    def __init__(self, automate):
        super().__init__()
        self.automate = automate

        layout = QVBoxLayout()
        self.setLayout(layout)
        layout.setContentsMargins(0, 0, 0, 0)

        self.figure = Figure(facecolor='#2b2b2b')
        self.canvas = FigureCanvas(self.figure)
        layout.addWidget(self.canvas)

        self.canvas.mpl_connect('button_press_event', self.on_click)
        self.selected_node = None
        self.last_history = []

        self.G = nx.DiGraph()
        self.pos = {
            "ABSENT": (0.0, 4.0),
            "EN_ATTENTE": (4.0, 8.0),
            "GARE": (6.0, 4.0),
            "EN_TRANSIT": (12.0, 4.0),
            "SORTI": (6.0, 0.0),
        }
        self.labels_map = {
            "ABSENT": "ABSENT", "EN_ATTENTE": "EN\nATTENTE", "GARE": "GARÉ",
            "EN_TRANSIT": "EN\nTRANSIT", "SORTI": "SORTI",
        }
        self.state_info = {
            "ABSENT": "Véhicule pas encore entré.",
            "EN_ATTENTE": "Parking complet : le véhicule attend une place (ordre d'arrivée).",
            "GARE": "Véhicule garé sur une place numérotée.",
            "EN_TRANSIT": "Sorti temporairement pour laisser partir un véhicule garé devant.",
            "SORTI": "Véhicule parti, plus suivi par le système.",
        }
        self._construire_structure()
        self.draw_graph()

    def _construire_structure(self):
        for etat in self.automate.list_etats.values():
            self.G.add_node(etat.label_etat)
        labels = {}
        for t in self.automate.list_transitions:
            cle = (t.etat_source.label_etat, t.etat_dest.label_etat)
            labels.setdefault(cle, []).append(t.etiquette)
        for (src, dst), evts in labels.items():
            self.G.add_edge(src, dst, label="/".join(evts))

    def on_click(self, event):
        if event.inaxes is None:
            return
        min_dist = float('inf')
        closest = None
        for node, (x, y) in self.pos.items():
            dist = (x - event.xdata) ** 2 + (y - event.ydata) ** 2
            if dist < min_dist:
                min_dist = dist
                closest = node

        if closest and min_dist < 1.0:
            self.selected_node = closest if self.selected_node != closest else None
            self.draw_graph(self.last_history)

    def draw_graph(self, history=()):
        self.last_history = list(history)
        current = history[-1][1] if history else None

        self.figure.clear()
        ax = self.figure.add_subplot(111)
        ax.set_facecolor('#2b2b2b')

        node_colors = []
        edge_colors = []
        for node in self.G.nodes():
            if node == current:
                node_colors.append('#e74c3c')
                edge_colors.append('#c0392b')
            elif node == self.selected_node:
                node_colors.append('#f1c40f')
                edge_colors.append('#f39c12')
            elif node == "GARE":
                node_colors.append('#ccffcc')
                edge_colors.append('green')
            elif node == "EN_TRANSIT":
                node_colors.append('#ffe0b2')
                edge_colors.append('#d97706')
            else:
                node_colors.append('#eeeeee')
                edge_colors.append('#bdc3c7')

        nx.draw_networkx_nodes(self.G, self.pos, ax=ax, node_color=node_colors,
                               edgecolors=edge_colors, linewidths=3, node_size=4500)
        nx.draw_networkx_labels(self.G, self.pos, ax=ax, labels=self.labels_map,
                                font_size=9, font_weight="bold")

        # Aller-retour GARE <-> EN_TRANSIT : arcs courbés pour ne pas se superposer
        nx.draw_networkx_edges(self.G, self.pos, ax=ax, edge_color='#ecf0f1',
                               arrows=True, arrowsize=25, width=2.0,
                               connectionstyle='arc3,rad=0.15',
                               min_source_margin=20, min_target_margin=20)

        hist_edges = [e for e in dict.fromkeys(self.last_history) if self.G.has_edge(*e)]
        if hist_edges:
            nx.draw_networkx_edges(self.G, self.pos, ax=ax, edgelist=hist_edges,
                                   edge_color='#3498db', style='dashed', alpha=0.8,
                                   arrows=True, arrowsize=25, width=2.5,
                                   connectionstyle='arc3,rad=0.15',
                                   min_source_margin=20, min_target_margin=20)

        edge_labels = nx.get_edge_attributes(self.G, 'label')
        nx.draw_networkx_edge_labels(self.G, self.pos, edge_labels=edge_labels,
                                     font_color='#f39c12', font_size=8, ax=ax,
                                     bbox=dict(facecolor='#2b2b2b', edgecolor='none', alpha=0.6))

        titre = self.labels_map.get(current, "—").replace(chr(10), ' ') if current else "—"
        ax.set_title(f"DERNIER ÉTAT ATTEINT : {titre}", color="white", fontsize=14, fontweight='bold')
        ax.set_xlim(-2, 14)
        ax.set_ylim(-2, 10)
        ax.axis('off')

        if self.selected_node:
            info = self.state_info.get(self.selected_node, "Pas d'info.")
            sorties = ", ".join(t.etiquette for t in self.automate.transitions_depuis(self.selected_node))
            ax.text(6, 9.3, f"INFO ({self.selected_node}):\n{info}\nTransitions: {sorties or 'aucune'}",
                    bbox=dict(facecolor='#f1c40f', alpha=0.9, boxstyle='round,pad=0.5'),
                    fontsize=9, color='black', ha='center')

        legend_elements = [
            Line2D([0], [0], marker='o', color='w', label='Dernier état', markerfacecolor='#e74c3c', markersize=10),
            Line2D([0], [0], color='#3498db', lw=2, linestyle='--', label='Dernière opération'),
            Line2D([0], [0], color='#ecf0f1', lw=2, label='Transition possible'),
        ]
        ax.legend(handles=legend_elements, loc='lower right', facecolor='#2b2b2b',
                  edgecolor='white', labelcolor='white')
        self.canvas.draw()


# --- CLASS 3 : DASHBOARD ---
class ParkingDashboard(QMainWindow):
    def __init__(self, capacity=10):
        super().__init__()
        self.setWindowTitle("Smart Parking Lot Manager")
        self.setGeometry(100, 100, 1200, 800)
        self.simulation_start = time.time()

        self.setStyleSheet("""
            QMainWindow { background-color: #0f172a; }
            QLabel { color: white; font-family: 'Segoe UI', sans-serif; }
            QLineEdit, QListWidget {
                background-color: #1e293b; color: white; border: 1px solid #475569;
                border-radius: 6px; padding: 6px;
            }
            QPushButton {
                background-color: #334155; color: white; border: none; padding: 12px;
                border-radius: 8px; font-family: 'Segoe UI', sans-serif;
                font-weight: bold; font-size: 14px;
            }
            QPushButton:hover { background-color: #475569; }
            QPushButton:pressed { background-color: #1e293b; }
        """)

        self.worker = ParkingWorker(capacity=capacity)
        self.worker.log_signal.connect(self.append_log)
        self.worker.status_signal.connect(self.update_dashboard)
        self.worker.update_grid_signal.connect(self.update_place)

        self.init_ui()

        self.timer_clock = QTimer(self)
        self.timer_clock.timeout.connect(self.update_clocks)
        self.timer_clock.start(1000)
        self.worker.update_status()

    def init_ui(self):
        main = QWidget()
        self.setCentralWidget(main)
        layout = QVBoxLayout(main)
        layout.setSpacing(20)
        layout.setContentsMargins(20, 20, 20, 20)

        header_top = QHBoxLayout()
        self.lbl_sim_time = QLabel("⏱ SESSION: 00:00")
        self.lbl_sim_time.setFont(QFont("Segoe UI", 12, QFont.Bold))
        self.lbl_sim_time.setStyleSheet("color: #3b82f6; background-color: #1e293b; padding: 5px 10px; border-radius: 5px;")
        header_top.addStretch()
        header_top.addWidget(self.lbl_sim_time)
        layout.addLayout(header_top)

        # KPI
        kpi_layout = QHBoxLayout()
        kpi_layout.setSpacing(15)
        self.card_free = self.create_kpi_card("PLACES LIBRES", "0", "#10b981")
        self.card_parked = self.create_kpi_card("VÉHICULES GARÉS", "0", "#3b82f6")
        self.card_waiting = self.create_kpi_card("EN ATTENTE", "0", "#8b5cf6")

        self.lbl_system_status = QLabel("DISPONIBLE")
        self.lbl_system_status.setFont(QFont("Segoe UI", 14, QFont.Bold))
        self.lbl_system_status.setStyleSheet("background-color: #10b981; padding: 8px 16px; border-radius: 6px;")

        kpi_layout.addWidget(self.card_free)
        kpi_layout.addWidget(self.card_parked)
        kpi_layout.addWidget(self.card_waiting)
        kpi_layout.addStretch()
        l_stat = QLabel("ÉTAT DU SYSTÈME :")
        l_stat.setStyleSheet("color: #94a3b8; font-weight: bold;")
        kpi_layout.addWidget(l_stat)
        kpi_layout.addWidget(self.lbl_system_status)
        layout.addLayout(kpi_layout)

        # Grille des places (cliquer une place occupée fait sortir son véhicule)
        grid_frame = QFrame()
        grid_frame.setStyleSheet("background-color: #1e293b; border-radius: 12px;")
        grid_layout = QGridLayout(grid_frame)
        grid_layout.setSpacing(15)
        grid_layout.setContentsMargins(15, 15, 15, 15)
        self.places_widgets = {}
        self.places_occupants = {}
        for slot in range(1, self.worker.system.capacity + 1):
            btn = QPushButton(f"P-{slot}\nLIBRE")
            btn.setFixedSize(110, 90)
            btn.setFont(QFont("Segoe UI", 10, QFont.Bold))
            btn.setStyleSheet(STYLE_PLACE[LIBRE])
            btn.clicked.connect(lambda _checked, s=slot: self.worker.sortie_place(s))
            grid_layout.addWidget(btn, (slot - 1) // 5, (slot - 1) % 5)
            self.places_widgets[slot] = btn
        layout.addWidget(grid_frame)

        # Commandes & suivi
        bottom = QHBoxLayout()
        btns = QVBoxLayout()
        btns.setSpacing(10)

        self.input_reg = QLineEdit()
        self.input_reg.setPlaceholderText("Immatriculation")
        self.input_owner = QLineEdit()
        self.input_owner.setPlaceholderText("Propriétaire")

        b_entree = QPushButton("🎫  Garer")
        b_entree.setStyleSheet("QPushButton { border-left: 4px solid #3b82f6; }")
        b_entree.clicked.connect(lambda: self.worker.entree(self.input_reg.text(), self.input_owner.text()))

        b_sortie = QPushButton("🛑  Sortir")
        b_sortie.setStyleSheet("QPushButton { border-left: 4px solid #f43f5e; }")
        b_sortie.clicked.connect(lambda: self.worker.sortie(self.input_reg.text()))

        b_random = QPushButton("🎲  Sortie Aléatoire")
        b_random.clicked.connect(self.worker.sortie_aleatoire)

        b_switch = QPushButton("🔄  Vue Console / Graphe")
        b_switch.setStyleSheet("border: 1px solid #475569;")
        b_switch.clicked.connect(self.toggle_view)

        l_file = QLabel("FILE D'ATTENTE")
        l_file.setStyleSheet("color: #94a3b8; font-weight: bold;")
        self.list_waiting = QListWidget()

        for w in (self.input_reg, self.input_owner, b_entree, b_sortie, b_random):
            btns.addWidget(w)
        btns.addSpacing(15)
        btns.addWidget(b_switch)
        btns.addWidget(l_file)
        btns.addWidget(self.list_waiting)

        self.stack = QStackedWidget()
        self.logs = QTextEdit()
        self.logs.setReadOnly(True)
        self.logs.setStyleSheet("""
            QTextEdit {
                background-color: rgba(30, 41, 59, 0.7); color: #10b981;
                font-family: 'Consolas', 'Courier New', monospace; font-size: 13px;
                border: 1px solid #475569; border-radius: 8px; padding: 10px;
            }
        """)
        self.graph_widget = GraphWidget(self.worker.system.automate)
        self.stack.addWidget(self.logs)
        self.stack.addWidget(self.graph_widget)

        bottom.addLayout(btns, 1)
        bottom.addWidget(self.stack, 3)
        layout.addLayout(bottom, 1)

    def create_kpi_card(self, title, value, base_color):
        frame = QFrame()
        # .QFrame cible le conteneur seul, pas les QLabel enfants
        frame.setStyleSheet(f"""
            .QFrame {{
                background-color: qlineargradient(x1:0, y1:0, x2:0, y2:1, stop:0 {base_color}, stop:1 #1e293b);
                border-radius: 10px;
                border: 1px solid {base_color};
            }}
            QLabel {{ border: none; background: transparent; }}
        """)
        frame.setFixedSize(180, 85)
        vbox = QVBoxLayout(frame)
        vbox.setContentsMargins(15, 10, 15, 10)

        l_title = QLabel(title)
        l_title.setFont(QFont("Segoe UI", 9, QFont.Bold))
        l_title.setStyleSheet("color: rgba(255, 255, 255, 180);")
        l_val = QLabel(value)
        l_val.setFont(QFont("Segoe UI", 18, QFont.Bold))
        l_val.setAlignment(Qt.AlignLeft | Qt.AlignVCenter)

        vbox.addWidget(l_title)
        vbox.addWidget(l_val)
        return frame

    def toggle_view(self):
        self.stack.setCurrentIndex(1 - self.stack.currentIndex())

    def update_dashboard(self, stats):
        self.card_free.findChildren(QLabel)[1].setText(str(stats["libres"]))
        self.card_parked.findChildren(QLabel)[1].setText(str(stats["gares"]))
        self.card_waiting.findChildren(QLabel)[1].setText(str(len(stats["attente"])))

        etat = stats["etat"]
        self.lbl_system_status.setText(etat)
        couleur = "#10b981" if etat == "DISPONIBLE" else "#f43f5e"
        self.lbl_system_status.setStyleSheet(f"background-color: {couleur}; padding: 8px 16px; border-radius: 6px;")

        self.list_waiting.clear()
        self.list_waiting.addItems(stats["attente"])
        self.graph_widget.draw_graph(stats["history"])

    def append_log(self, text):
        self.logs.append(text)
        self.logs.verticalScrollBar().setValue(self.logs.verticalScrollBar().maximum())

    def update_place(self, slot, status, reg_no):
        widget = self.places_widgets[slot]
        widget.setStyleSheet(STYLE_PLACE[status])
        if status == LIBRE:
            self.places_occupants.pop(slot, None)
            widget.setText(f"P-{slot}\nLIBRE")
        elif status == TRANSIT:
            self.places_occupants.pop(slot, None)
            widget.setText(f"P-{slot}\n↩ {reg_no}")
        else:
            self.places_occupants[slot] = reg_no
            self.update_clocks()

    def update_clocks(self):
        elapsed = time.time() - self.simulation_start
        m, s = divmod(int(elapsed), 60)
        self.lbl_sim_time.setText(f"⏱ SESSION: {m:02d}:{s:02d}")

        now = time.time()
        for slot, reg_no in self.places_occupants.items():
            entry = self.worker.entry_times.get(reg_no, now)
            mm, ss = divmod(int(now - entry), 60)
            hh, mm = divmod(mm, 60)
            self.places_widgets[slot].setText(f"P-{slot} | {reg_no}\n{hh:02d}:{mm:02d}:{ss:02d}")


def lancer_dashboard(capacity=10):
    app = QApplication(sys.argv)
    window = ParkingDashboard(capacity=capacity)
    window.show()
    return app.exec_()


if __name__ == "__main__":
    sys.exit(lancer_dashboard())
