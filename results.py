"""Résultats structurés renvoyés par l'allocateur.

Chaque opération publique renvoie une valeur discriminée : l'adaptateur
(console ou tableau de bord) choisit le rendu selon le type reçu.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from placement import Parked, Vehicle, Waiting


class MoveKind(Enum):
    EVICTED = "evicted"
    EXITED = "exited"
    RESTORED = "restored"
    RELOCATED = "relocated"
    BACKFILLED = "backfilled"


@dataclass(frozen=True)
class MoveEvent:
    """Un mouvement de véhicule survenu pendant un départ."""
    kind: MoveKind
    reg_no: str
    slot: int


@dataclass(frozen=True)
class DuplicateVehicle:
    reg_no: str


@dataclass(frozen=True)
class VehicleNotFound:
    reg_no: str


@dataclass(frozen=True)
class NotFound:
    reg_no: str


@dataclass(frozen=True)
class RemovedFromQueue:
    reg_no: str


@dataclass(frozen=True)
class Departed:
    """
    Départ d'un véhicule garé.

    Attributes:
        reg_no: Immatriculation du véhicule sorti
        slot: Place qu'il occupait
        events: Mouvements dans l'ordre où ils ont eu lieu
    """
    reg_no: str
    slot: int
    events: Tuple[MoveEvent, ...] = ()

    def events_of(self, kind: MoveKind) -> Tuple[MoveEvent, ...]:
        return tuple(e for e in self.events if e.kind is kind)


AdmitResult = Union[Parked, Waiting, DuplicateVehicle]
DepartResult = Union[Departed, RemovedFromQueue, VehicleNotFound]
FindResult = Union[Vehicle, NotFound]


@dataclass(frozen=True)
class StatusView:
    """
    Vue figée de l'état du parking.

    Attributes:
        capacity: Nombre total de places
        slots: Occupant de chaque place (indice 0 = place 1), None si libre
        free_slots: Places libres, ordre croissant
        waiting: Véhicules en attente, ordre d'arrivée
        total: Nombre de véhicules suivis (garés + en attente)
    """
    capacity: int
    slots: Tuple[Optional[Vehicle], ...]
    free_slots: Tuple[int, ...]
    waiting: Tuple[Vehicle, ...]
    total: int

    def occupant(self, slot: int) -> Optional[Vehicle]:
        return self.slots[slot - 1]

    @property
    def occupied(self) -> Dict[int, Vehicle]:
        return {i: v for i, v in enumerate(self.slots, start=1) if v is not None}
