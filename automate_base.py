import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class Etat:
    """
    Représente un état dans l'automate fini.

    Attributes:
        id_etat: Identifiant unique de l'état
        label_etat: Nom lisible de l'état
        type_etat: Type d'état ("initial", "final", "normal")
        transitions: Dictionnaire des transitions possibles {événement: id_destination}
    """

    def __init__(self, id_etat: int, label_etat: str, type_etat: str = "normal") -> None:
        self.id_etat = id_etat
        self.label_etat = label_etat
        self.type_etat = type_etat
        self.transitions: Dict[str, int] = {}

    def __repr__(self) -> str:
        return f"Etat({self.id_etat}: {self.label_etat} [{self.type_etat}])"


class Transition:
    """
    Représente le passage d'un état à un autre via un événement.

    Attributes:
        etat_source: État de départ
        etat_dest: État d'arrivée
        etiquette: Événement déclencheur de la transition
    """

    def __init__(self, etat_source: Etat, etat_dest: Etat, etiquette: str) -> None:
        self.etat_source = etat_source
        self.etat_dest = etat_dest
        self.etiquette = etiquette

    def __repr__(self) -> str:
        return f"Transition({self.etat_source.label_etat} -{self.etiquette}-> {self.etat_dest.label_etat})"


class Automate:
    """
    Table de transitions d'un automate à états finis.

    L'automate ne porte pas d'état courant : chaque véhicule a le sien
    (sa position), et l'automate sert d'arbitre pour savoir si un
    changement de position est légal.

    Attributes:
        list_etats: Dictionnaire des états {id: Etat}
        list_transitions: Liste de toutes les transitions
        etat_initial: État de départ de tout véhicule
    """

    def __init__(self) -> None:
        self.list_etats: Dict[int, Etat] = {}
        self.list_transitions: List[Transition] = []
        self.etat_initial: Optional[Etat] = None
        self._par_label: Dict[str, Etat] = {}

    def ajouter_etat(self, etat: Etat) -> None:
        """
        Enregistre un nouvel état dans le système.

        Args:
            etat: L'objet Etat à ajouter

        Raises:
            ValueError: si l'identifiant ou le label est déjà pris
        """
        if etat.id_etat in self.list_etats or etat.label_etat in self._par_label:
            raise ValueError(f"État {etat!r} déjà enregistré")
        self.list_etats[etat.id_etat] = etat
        self._par_label[etat.label_etat] = etat
        if etat.type_etat == "initial":
            self.etat_initial = etat
            logger.debug("[Automate] État initial défini: %s", etat.label_etat)

    def ajouter_transition(self, id_src: int, id_dst: int, evt: str) -> None:
        """
        Crée une transition logique entre deux états existants.

        Args:
            id_src: ID de l'état source
            id_dst: ID de l'état destination
            evt: Événement déclencheur

        Raises:
            ValueError: si l'un des deux états est inconnu
        """
        if id_src not in self.list_etats or id_dst not in self.list_etats:
            raise ValueError(f"État source {id_src} ou destination {id_dst} inexistant.")
        src = self.list_etats[id_src]
        dst = self.list_etats[id_dst]
        self.list_transitions.append(Transition(src, dst, evt))
        src.transitions[evt] = id_dst

    def etat(self, label: str) -> Etat:
        return self._par_label[label]

    def cible(self, label_src: str, evt: str) -> Optional[Etat]:
        """
        Calcule l'état atteint depuis ``label_src`` par l'événement ``evt``.

        Args:
            label_src: Label de l'état de départ
            evt: Événement déclencheur

        Returns:
            L'état destination, ou None si la transition n'existe pas
        """
        src = self._par_label.get(label_src)
        if src is None or evt not in src.transitions:
            logger.debug("[Automate] Bloqué: '%s' impossible depuis '%s'", evt, label_src)
            return None
        return self.list_etats[src.transitions[evt]]

    def transitions_depuis(self, label_src: str) -> List[Transition]:
        return [t for t in self.list_transitions if t.etat_source.label_etat == label_src]


def construire_cycle_de_vie() -> Automate:
    """Construit l'automate des positions successives d'un véhicule."""
    automate = Automate()
    etats = [
        Etat(0, "ABSENT", "initial"),
        Etat(1, "EN_ATTENTE"),
        Etat(2, "GARE"),
        Etat(3, "EN_TRANSIT"),
        Etat(4, "SORTI", "final"),
    ]
    for e in etats:
        automate.ajouter_etat(e)

    # Admission
    automate.ajouter_transition(0, 2, "garer")
    automate.ajouter_transition(0, 1, "mettre_en_attente")
    automate.ajouter_transition(1, 2, "promouvoir")

    # Réorganisation pendant un départ
    automate.ajouter_transition(2, 3, "evincer")
    automate.ajouter_transition(3, 2, "restaurer")
    automate.ajouter_transition(3, 2, "replacer")

    # Sorties
    automate.ajouter_transition(2, 4, "sortir")
    automate.ajouter_transition(1, 4, "quitter_file")
    return automate
