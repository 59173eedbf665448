import pytest

from console_parking import (
    ConsoleParking,
    rendre_admission,
    rendre_file,
    rendre_gares,
    rendre_recherche,
    rendre_sortie,
)
from placement import Parked, Waiting
from results import Departed, DuplicateVehicle, MoveEvent, MoveKind, NotFound, RemovedFromQueue, VehicleNotFound
from slot_allocator import SlotAllocator


def lancer(saisies, capacity=2):
    """Exécute la boucle console avec une liste de saisies, retourne (code, sorties, allocateur)."""
    entrees = iter(saisies)
    sorties = []

    def lire(prompt):
        try:
            return next(entrees)
        except StopIteration:
            raise EOFError

    p = SlotAllocator(capacity)
    code = ConsoleParking(p, lire=lire, ecrire=sorties.append).executer()
    return code, sorties, p


def test_rendu_admission():
    assert "garé place 3" in rendre_admission("AB", Parked(3))
    assert "file d'attente" in rendre_admission("AB", Waiting())
    assert "déjà enregistré" in rendre_admission("AB", DuplicateVehicle("AB"))


def test_rendu_sortie_liste_les_mouvements():
    resultat = Departed("V2", 2, (
        MoveEvent(MoveKind.EVICTED, "V3", 3),
        MoveEvent(MoveKind.EXITED, "V2", 2),
        MoveEvent(MoveKind.RESTORED, "V3", 3),
        MoveEvent(MoveKind.BACKFILLED, "W", 2),
    ))
    lignes = rendre_sortie(resultat)
    assert lignes[0] == "🚗 Véhicule V2 sorti de la place 2"
    assert len(lignes) == 4
    assert "W quitte la file d'attente pour la place 2" in lignes[-1]


def test_rendu_sortie_autres_cas():
    assert "retiré" in rendre_sortie(RemovedFromQueue("W"))[0]
    assert "introuvable" in rendre_sortie(VehicleNotFound("Z"))[0]
    with pytest.raises(TypeError):
        rendre_sortie(None)


def test_rendu_recherche():
    p = SlotAllocator(1)
    p.admit("A", "Alice")
    p.admit("B", "Bob")
    assert rendre_recherche(p.find("A")) == "✅ Véhicule trouvé place 1 (Propriétaire: Alice)"
    assert "file d'attente (Propriétaire: Bob)" in rendre_recherche(p.find("B"))
    assert "introuvable" in rendre_recherche(NotFound("C"))


def test_rendu_vues_vides():
    vue = SlotAllocator(2).snapshot()
    assert rendre_gares(vue) == ["Aucun véhicule garé."]
    assert rendre_file(vue) == ["Aucun véhicule en file d'attente."]


def test_menu_garer_et_afficher():
    code, sorties, p = lancer(["1", "AB-1", "Alice", "1", " CD-2 ", "Bob", "1", "EF-3", "Eve", "3", "4", "6"])
    assert code == 0
    assert "Place 1: AB-1 (Propriétaire: Alice)" in sorties
    assert "Place 2: CD-2 (Propriétaire: Bob)" in sorties
    assert "1. EF-3 (Propriétaire: Eve)" in sorties
    assert p.find("CD-2").placement == Parked(2)


def test_menu_sortie_et_recherche():
    code, sorties, p = lancer(["1", "A", "a", "1", "B", "b", "1", "C", "c", "2", "A", "5", "C", "6"])
    assert code == 0
    assert "🚗 Véhicule A sorti de la place 1" in sorties
    assert "✅ Véhicule trouvé place 1 (Propriétaire: c)" in sorties
    p.check_invariants()


def test_menu_choix_invalide_puis_fin_de_saisie():
    code, sorties, _ = lancer(["9", "abc"])
    assert code == 0
    assert sorties.count("Choix invalide ! Réessayez.") == 2
    assert sorties[-1] == "Merci ! Fermeture du système..."


def test_menu_immatriculation_vide():
    code, sorties, p = lancer(["1", "   ", "6"])
    assert "❌ Immatriculation vide." in sorties
    assert p.snapshot().total == 0


def test_menu_arret_sur_incoherence():
    entrees = iter(["2", "A", "1", "B", "b", "6"])
    sorties = []
    p = SlotAllocator(2)
    p.admit("A", "a")
    p._file.append("FANTOME")

    code = ConsoleParking(p, lire=lambda _: next(entrees), ecrire=sorties.append).executer()

    assert code == 1
    assert sorties[-1].startswith("💥 Erreur interne")
