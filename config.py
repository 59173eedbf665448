"""
Smart Parking — Configuration
Paramètres de démarrage, surchargeables par variables d'environnement.
"""

import os
from dataclasses import dataclass

from slot_allocator import CAPACITE_DEFAUT

UI_CONSOLE = "console"
UI_GUI = "gui"


def _parse_capacity(raw) -> int:
    try:
        capacity = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Capacité invalide: {raw!r}")
    if capacity < 1:
        raise ValueError(f"Capacité invalide: {raw!r} (au moins 1 place)")
    return capacity


@dataclass
class ParkingConfig:
    capacity: int = CAPACITE_DEFAUT     # Nombre de places
    log_level: str = "INFO"
    ui: str = UI_CONSOLE                # "console" ou "gui"

    def __post_init__(self) -> None:
        self.capacity = _parse_capacity(self.capacity)
        self.log_level = str(self.log_level).upper()
        if self.ui not in (UI_CONSOLE, UI_GUI):
            raise ValueError(f"Interface inconnue: {self.ui!r}")

    @classmethod
    def from_env(cls, environ=None) -> "ParkingConfig":
        env = os.environ if environ is None else environ
        return cls(
            capacity=env.get("PARKING_CAPACITY", CAPACITE_DEFAUT),
            log_level=env.get("PARKING_LOG_LEVEL", "INFO"),
            ui=env.get("PARKING_UI", UI_CONSOLE).lower(),
        )
