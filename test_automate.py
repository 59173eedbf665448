import pytest

from automate_base import Automate, Etat, construire_cycle_de_vie


def test_cycle_de_vie_initial():
    a = construire_cycle_de_vie()
    assert a.etat_initial.label_etat == "ABSENT"
    assert len(a.list_etats) == 5
    assert a.etat("SORTI").type_etat == "final"


@pytest.mark.parametrize("src, evt, dst", [
    ("ABSENT", "garer", "GARE"),
    ("ABSENT", "mettre_en_attente", "EN_ATTENTE"),
    ("EN_ATTENTE", "promouvoir", "GARE"),
    ("GARE", "evincer", "EN_TRANSIT"),
    ("EN_TRANSIT", "restaurer", "GARE"),
    ("EN_TRANSIT", "replacer", "GARE"),
    ("GARE", "sortir", "SORTI"),
    ("EN_ATTENTE", "quitter_file", "SORTI"),
])
def test_transitions_autorisees(src, evt, dst):
    a = construire_cycle_de_vie()
    assert a.cible(src, evt).label_etat == dst


@pytest.mark.parametrize("src, evt", [
    ("EN_TRANSIT", "sortir"),       # un véhicule évincé ne quitte pas le parking
    ("EN_ATTENTE", "evincer"),
    ("SORTI", "garer"),
    ("GARE", "garer"),
    ("INCONNU", "garer"),
])
def test_transitions_interdites(src, evt):
    a = construire_cycle_de_vie()
    assert a.cible(src, evt) is None


def test_transitions_depuis():
    a = construire_cycle_de_vie()
    evts = {t.etiquette for t in a.transitions_depuis("EN_TRANSIT")}
    assert evts == {"restaurer", "replacer"}
    assert a.transitions_depuis("SORTI") == []


def test_etat_duplique_refuse():
    a = Automate()
    a.ajouter_etat(Etat(0, "A", "initial"))
    with pytest.raises(ValueError):
        a.ajouter_etat(Etat(0, "B"))
    with pytest.raises(ValueError):
        a.ajouter_etat(Etat(1, "A"))


def test_transition_vers_etat_inexistant():
    a = Automate()
    a.ajouter_etat(Etat(0, "A", "initial"))
    with pytest.raises(ValueError):
        a.ajouter_transition(0, 7, "evt")
