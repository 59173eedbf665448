"""Menu console du parking.

Adaptateur sans état : lit les choix de l'utilisateur, appelle
l'allocateur et met en forme les résultats.
"""

import logging
from typing import Callable, List, Optional

from errors import InternalInconsistency
from placement import Parked, Vehicle, Waiting
from results import (
    Departed,
    DuplicateVehicle,
    MoveEvent,
    MoveKind,
    RemovedFromQueue,
    StatusView,
    VehicleNotFound,
)
from slot_allocator import SlotAllocator

logger = logging.getLogger(__name__)

MENU = """
===== SMART PARKING LOT MANAGER =====
1. Garer un véhicule
2. Sortir un véhicule
3. Véhicules garés
4. File d'attente
5. Rechercher un véhicule
6. Quitter"""

_LIBELLES_MOUVEMENT = {
    MoveKind.EVICTED: "sorti temporairement de la place {slot}",
    MoveKind.EXITED: "a quitté la place {slot}",
    MoveKind.RESTORED: "remis à sa place {slot}",
    MoveKind.RELOCATED: "replacé à la place {slot}",
    MoveKind.BACKFILLED: "quitte la file d'attente pour la place {slot}",
}


# --- Rendu des résultats ---

def rendre_admission(reg_no: str, resultat) -> str:
    if isinstance(resultat, Parked):
        return f"✅ Véhicule {reg_no} garé place {resultat.slot}"
    if isinstance(resultat, Waiting):
        return f"⚠️ Parking complet ! Véhicule {reg_no} ajouté à la file d'attente."
    if isinstance(resultat, DuplicateVehicle):
        return f"❌ Le véhicule {resultat.reg_no} est déjà enregistré."
    raise TypeError(f"Résultat d'admission inattendu: {resultat!r}")


def rendre_mouvement(evt: MoveEvent) -> str:
    return f"   {evt.reg_no} " + _LIBELLES_MOUVEMENT[evt.kind].format(slot=evt.slot)


def rendre_sortie(resultat) -> List[str]:
    if isinstance(resultat, Departed):
        lignes = [f"🚗 Véhicule {resultat.reg_no} sorti de la place {resultat.slot}"]
        lignes.extend(rendre_mouvement(e) for e in resultat.events if e.kind is not MoveKind.EXITED)
        return lignes
    if isinstance(resultat, RemovedFromQueue):
        return [f"🚧 Véhicule {resultat.reg_no} retiré de la file d'attente."]
    if isinstance(resultat, VehicleNotFound):
        return [f"❌ Véhicule {resultat.reg_no} introuvable."]
    raise TypeError(f"Résultat de sortie inattendu: {resultat!r}")


def rendre_recherche(resultat) -> str:
    if not isinstance(resultat, Vehicle):
        return "❌ Véhicule introuvable."
    if isinstance(resultat.placement, Parked):
        return f"✅ Véhicule trouvé place {resultat.placement.slot} (Propriétaire: {resultat.owner})"
    return f"🚧 Véhicule en file d'attente (Propriétaire: {resultat.owner})"


def rendre_gares(vue: StatusView) -> List[str]:
    occupees = vue.occupied
    if not occupees:
        return ["Aucun véhicule garé."]
    lignes = ["🚘 Véhicules garés :"]
    for slot, v in sorted(occupees.items()):
        lignes.append(f"Place {slot}: {v.reg_no} (Propriétaire: {v.owner})")
    lignes.append(f"Places libres: {', '.join(str(s) for s in vue.free_slots) or 'aucune'}")
    return lignes


def rendre_file(vue: StatusView) -> List[str]:
    if not vue.waiting:
        return ["Aucun véhicule en file d'attente."]
    lignes = ["⏳ File d'attente :"]
    for rang, v in enumerate(vue.waiting, start=1):
        lignes.append(f"{rang}. {v.reg_no} (Propriétaire: {v.owner})")
    return lignes


# --- Boucle interactive ---

class ConsoleParking:
    """
    Boucle de menu autour d'un SlotAllocator.

    Attributes:
        allocateur: L'allocateur piloté
        lire: Fonction de saisie (prompt -> texte), ``input`` par défaut
        ecrire: Fonction d'affichage, ``print`` par défaut
    """

    def __init__(self, allocateur: SlotAllocator,
                 lire: Optional[Callable[[str], str]] = None,
                 ecrire: Optional[Callable[[str], None]] = None) -> None:
        self.allocateur = allocateur
        self.lire = lire or input
        self.ecrire = ecrire or print
        self._actions = {
            "1": self.garer,
            "2": self.sortir,
            "3": self.afficher_gares,
            "4": self.afficher_file,
            "5": self.rechercher,
        }

    def _saisir_immatriculation(self, prompt: str):
        reg_no = self.lire(prompt).strip()
        if not reg_no:
            self.ecrire("❌ Immatriculation vide.")
            return None
        return reg_no

    def garer(self) -> None:
        reg_no = self._saisir_immatriculation("Immatriculation : ")
        if reg_no is None:
            return
        owner = self.lire("Propriétaire : ").strip()
        self.ecrire(rendre_admission(reg_no, self.allocateur.admit(reg_no, owner)))

    def sortir(self) -> None:
        reg_no = self._saisir_immatriculation("Immatriculation du véhicule qui sort : ")
        if reg_no is None:
            return
        for ligne in rendre_sortie(self.allocateur.depart(reg_no)):
            self.ecrire(ligne)

    def afficher_gares(self) -> None:
        for ligne in rendre_gares(self.allocateur.snapshot()):
            self.ecrire(ligne)

    def afficher_file(self) -> None:
        for ligne in rendre_file(self.allocateur.snapshot()):
            self.ecrire(ligne)

    def rechercher(self) -> None:
        reg_no = self._saisir_immatriculation("Immatriculation à rechercher : ")
        if reg_no is None:
            return
        self.ecrire(rendre_recherche(self.allocateur.find(reg_no)))

    def executer(self) -> int:
        """
        Lance la boucle jusqu'au choix 6 ou à la fin de l'entrée.

        Returns:
            Code de sortie : 0 si l'utilisateur quitte, 1 après une
            incohérence interne
        """
        while True:
            self.ecrire(MENU)
            try:
                choix = self.lire("Votre choix : ").strip()
            except EOFError:
                choix = "6"

            if choix == "6":
                self.ecrire("Merci ! Fermeture du système...")
                return 0

            action = self._actions.get(choix)
            if action is None:
                self.ecrire("Choix invalide ! Réessayez.")
                continue

            try:
                action()
            except EOFError:
                self.ecrire("Merci ! Fermeture du système...")
                return 0
            except InternalInconsistency as e:
                logger.error("[Console] %s", e)
                self.ecrire(f"💥 Erreur interne : {e}. Arrêt du système.")
                return 1
