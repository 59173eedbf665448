"""Modèle des véhicules et de leur position dans le parking."""

from dataclasses import dataclass, replace
from typing import Union


@dataclass(frozen=True)
class Parked:
    """Véhicule garé sur la place ``slot`` (numérotée à partir de 1)."""
    slot: int

    label_etat = "GARE"


@dataclass(frozen=True)
class Waiting:
    """Véhicule dans la file d'attente."""

    label_etat = "EN_ATTENTE"


@dataclass(frozen=True)
class InTransit:
    """Véhicule sorti temporairement de ``orig_slot`` pendant un départ."""
    orig_slot: int

    label_etat = "EN_TRANSIT"


Placement = Union[Parked, Waiting, InTransit]


@dataclass(frozen=True)
class Vehicle:
    """
    Véhicule suivi par l'allocateur.

    Attributes:
        reg_no: Immatriculation, clé unique (sensible à la casse)
        owner: Nom du propriétaire
        placement: Position courante du véhicule
    """
    reg_no: str
    owner: str
    placement: Placement

    def moved_to(self, placement: Placement) -> "Vehicle":
        """Retourne une copie du véhicule avec une nouvelle position."""
        return replace(self, placement=placement)

    @property
    def slot(self):
        if isinstance(self.placement, Parked):
            return self.placement.slot
        return None
