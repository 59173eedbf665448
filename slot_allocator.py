import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple, Union

from automate_base import Automate, construire_cycle_de_vie
from errors import InternalInconsistency
from placement import InTransit, Parked, Placement, Vehicle, Waiting
from results import (
    AdmitResult,
    DepartResult,
    Departed,
    DuplicateVehicle,
    FindResult,
    MoveEvent,
    MoveKind,
    NotFound,
    RemovedFromQueue,
    StatusView,
    VehicleNotFound,
)

logger = logging.getLogger(__name__)

# Constantes de configuration
CAPACITE_DEFAUT = 5

# Véhicule évincé et place qu'il occupait avant l'éviction
_Deplacement = Tuple[Vehicle, int]


class _HorsParking:
    """Position fictive d'un véhicule avant son entrée ou après sa sortie."""

    def __init__(self, label_etat: str) -> None:
        self.label_etat = label_etat

    def __repr__(self) -> str:
        return self.label_etat


_ABSENT = _HorsParking("ABSENT")
_SORTI = _HorsParking("SORTI")

_Position = Union[Placement, _HorsParking]


class SlotAllocator:
    """
    Allocateur de places de parking avec file d'attente.

    Garde les véhicules tassés vers les places de plus petit numéro : quand
    un véhicule part, ceux garés derrière lui sont sortis puis replacés, et
    les places libérées sont attribuées à la file d'attente dans l'ordre
    d'arrivée.

    Attributes:
        capacity: Nombre total de places (numérotées de 1 à capacity)
        automate: Automate du cycle de vie d'un véhicule, qui valide chaque
            changement de position
    """

    def __init__(self, capacity: int = CAPACITE_DEFAUT) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError("capacity must be a positive integer")
        self.capacity = capacity
        self.automate: Automate = construire_cycle_de_vie()

        self._places: List[Optional[str]] = [None] * capacity
        self._libres = set(range(1, capacity + 1))
        self._file: Deque[str] = deque()
        self._index: Dict[str, Vehicle] = {}
        self._corrompu = False
        logger.info("[SlotAllocator] Initialisé : %d places.", capacity)

    # ------------------------------------------------------------------
    # Opérations publiques
    # ------------------------------------------------------------------

    def admit(self, reg_no: str, owner: str) -> AdmitResult:
        """
        Fait entrer un véhicule : place libre la plus basse, sinon file d'attente.

        Args:
            reg_no: Immatriculation (clé unique)
            owner: Nom du propriétaire

        Returns:
            Parked(slot), Waiting() ou DuplicateVehicle si l'immatriculation
            est déjà suivie (aucune modification dans ce cas)
        """
        self._verifier_utilisable()
        if reg_no in self._index:
            logger.warning("[SlotAllocator] Refus: %s déjà présent.", reg_no)
            return DuplicateVehicle(reg_no)

        if self._libres:
            slot = min(self._libres)
            vehicule = self._changer_position(Vehicle(reg_no, owner, _ABSENT), "garer", Parked(slot))
            self._occuper(slot, vehicule)
            logger.info("[SlotAllocator] %s garé place %d.", reg_no, slot)
            return vehicule.placement

        vehicule = self._changer_position(Vehicle(reg_no, owner, _ABSENT), "mettre_en_attente", Waiting())
        self._index[reg_no] = vehicule
        self._file.append(reg_no)
        logger.info("[SlotAllocator] Parking complet, %s en file d'attente (position %d).",
                    reg_no, len(self._file))
        return vehicule.placement

    def depart(self, reg_no: str) -> DepartResult:
        """
        Fait sortir un véhicule, garé ou en attente.

        Pour un véhicule garé, les véhicules des places supérieures sont
        évincés, la place est libérée, les évincés sont replacés (sur leur
        place d'origine si possible), puis la file d'attente comble les
        places restantes.

        Args:
            reg_no: Immatriculation du véhicule qui sort

        Returns:
            Departed (avec la liste des mouvements), RemovedFromQueue, ou
            VehicleNotFound si l'immatriculation est inconnue

        Raises:
            InternalInconsistency: si un véhicule ne peut être replacé
        """
        self._verifier_utilisable()
        vehicule = self._index.get(reg_no)
        if vehicule is None:
            logger.warning("[SlotAllocator] Sortie refusée: %s introuvable.", reg_no)
            return VehicleNotFound(reg_no)

        if isinstance(vehicule.placement, Waiting):
            self._changer_position(vehicule, "quitter_file", _SORTI)
            self._file.remove(reg_no)
            del self._index[reg_no]
            logger.info("[SlotAllocator] %s retiré de la file d'attente.", reg_no)
            return RemovedFromQueue(reg_no)

        place_sortie = vehicule.placement.slot
        evenements: List[MoveEvent] = []
        try:
            pile = self._evincer_au_dessus(place_sortie, evenements)

            self._changer_position(vehicule, "sortir", _SORTI)
            self._liberer(place_sortie)
            del self._index[reg_no]
            evenements.append(MoveEvent(MoveKind.EXITED, reg_no, place_sortie))
            logger.info("[SlotAllocator] %s sorti de la place %d.", reg_no, place_sortie)

            self._restaurer(pile, evenements)
            self._remplir_depuis_file(evenements)
        except InternalInconsistency:
            self._corrompu = True
            logger.error("[SlotAllocator] Incohérence pendant la sortie de %s, allocateur bloqué.", reg_no)
            raise

        return Departed(reg_no, place_sortie, tuple(evenements))

    def find(self, reg_no: str) -> FindResult:
        """Retourne le véhicule (avec sa position) ou NotFound."""
        vehicule = self._index.get(reg_no)
        if vehicule is None:
            return NotFound(reg_no)
        return vehicule

    def snapshot(self) -> StatusView:
        return StatusView(
            capacity=self.capacity,
            slots=tuple(self._index[r] if r is not None else None for r in self._places),
            free_slots=tuple(sorted(self._libres)),
            waiting=tuple(self._index[r] for r in self._file),
            total=len(self._index),
        )

    @property
    def corrupted(self) -> bool:
        return self._corrompu

    def check_invariants(self) -> None:
        """
        Vérifie la cohérence entre l'index, la table des places et la file.

        Raises:
            InternalInconsistency: à la première incohérence trouvée
        """
        occupees = set()
        for slot, reg_no in enumerate(self._places, start=1):
            if (reg_no is None) != (slot in self._libres):
                raise InternalInconsistency(f"place {slot}: table et ensemble des places libres en désaccord")
            if reg_no is None:
                continue
            vehicule = self._index.get(reg_no)
            if vehicule is None or vehicule.placement != Parked(slot):
                raise InternalInconsistency(f"place {slot}: {reg_no} absent de l'index ou mal positionné")
            if reg_no in occupees:
                raise InternalInconsistency(f"{reg_no} occupe plusieurs places")
            occupees.add(reg_no)

        if not self._libres <= set(range(1, self.capacity + 1)):
            raise InternalInconsistency("place libre hors de la plage 1..capacity")

        en_attente = set()
        for reg_no in self._file:
            vehicule = self._index.get(reg_no)
            if vehicule is None or not isinstance(vehicule.placement, Waiting):
                raise InternalInconsistency(f"{reg_no} en file mais pas en attente dans l'index")
            if reg_no in occupees or reg_no in en_attente:
                raise InternalInconsistency(f"{reg_no} présent deux fois")
            en_attente.add(reg_no)

        if len(self._index) != len(occupees) + len(en_attente):
            raise InternalInconsistency("l'index contient des véhicules ni garés ni en attente")

    # ------------------------------------------------------------------
    # Étapes internes d'un départ
    # ------------------------------------------------------------------

    def _evincer_au_dessus(self, place_sortie: int, evenements: List[MoveEvent]) -> List[_Deplacement]:
        """Sort les véhicules garés au-delà de ``place_sortie``, du plus proche au plus lointain."""
        pile: List[_Deplacement] = []
        for slot in range(place_sortie + 1, self.capacity + 1):
            reg_no = self._places[slot - 1]
            if reg_no is None:
                continue
            vehicule = self._changer_position(self._index[reg_no], "evincer", InTransit(slot))
            self._index[reg_no] = vehicule
            self._liberer(slot)
            pile.append((vehicule, slot))
            evenements.append(MoveEvent(MoveKind.EVICTED, reg_no, slot))
            logger.debug("[SlotAllocator] %s sorti temporairement de la place %d.", reg_no, slot)
        return pile

    def _restaurer(self, pile: List[_Deplacement], evenements: List[MoveEvent]) -> None:
        """Replace les véhicules évincés, le dernier sorti en premier."""
        while pile:
            vehicule, place_origine = pile.pop()
            if place_origine in self._libres:
                slot, evt, kind = place_origine, "restaurer", MoveKind.RESTORED
            elif self._libres:
                slot, evt, kind = min(self._libres), "replacer", MoveKind.RELOCATED
            else:
                raise InternalInconsistency(
                    f"aucune place libre pour replacer {vehicule.reg_no} (place d'origine {place_origine})")

            self._occuper(slot, self._changer_position(vehicule, evt, Parked(slot)))
            evenements.append(MoveEvent(kind, vehicule.reg_no, slot))
            if kind is MoveKind.RELOCATED:
                logger.info("[SlotAllocator] %s replacé place %d (place %d indisponible).",
                            vehicule.reg_no, slot, place_origine)
            else:
                logger.debug("[SlotAllocator] %s revenu place %d.", vehicule.reg_no, slot)

    def _remplir_depuis_file(self, evenements: List[MoveEvent]) -> None:
        while self._file and self._libres:
            reg_no = self._file.popleft()
            vehicule = self._index.get(reg_no)
            if vehicule is None:
                raise InternalInconsistency(f"{reg_no} en file d'attente mais absent de l'index")
            slot = min(self._libres)
            self._occuper(slot, self._changer_position(vehicule, "promouvoir", Parked(slot)))
            evenements.append(MoveEvent(MoveKind.BACKFILLED, reg_no, slot))
            logger.info("[SlotAllocator] %s (file d'attente) garé place %d.", reg_no, slot)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def _occuper(self, slot: int, vehicule: Vehicle) -> None:
        if slot not in self._libres or self._places[slot - 1] is not None:
            raise InternalInconsistency(f"place {slot} déjà occupée")
        self._libres.remove(slot)
        self._places[slot - 1] = vehicule.reg_no
        self._index[vehicule.reg_no] = vehicule

    def _liberer(self, slot: int) -> None:
        self._places[slot - 1] = None
        self._libres.add(slot)

    def _changer_position(self, vehicule: Vehicle, evt: str, nouvelle: _Position) -> Vehicle:
        """
        Valide un changement de position auprès de l'automate.

        Args:
            vehicule: Véhicule dans sa position actuelle
            evt: Événement du cycle de vie
            nouvelle: Position visée

        Returns:
            Le véhicule dans sa nouvelle position (l'index n'est pas modifié)

        Raises:
            InternalInconsistency: si l'automate n'autorise pas la transition
        """
        source = vehicule.placement.label_etat
        dest = self.automate.cible(source, evt)
        if dest is None or dest.label_etat != nouvelle.label_etat:
            raise InternalInconsistency(
                f"{vehicule.reg_no}: transition '{evt}' interdite depuis {source} vers {nouvelle.label_etat}")
        if nouvelle is _SORTI:
            return vehicule
        return vehicule.moved_to(nouvelle)

    def _verifier_utilisable(self) -> None:
        if self._corrompu:
            raise InternalInconsistency("allocateur bloqué après une incohérence interne")
