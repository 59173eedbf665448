import random

import pytest

from errors import InternalInconsistency
from placement import InTransit, Parked, Vehicle, Waiting
from results import (
    Departed,
    DuplicateVehicle,
    MoveEvent,
    MoveKind,
    NotFound,
    RemovedFromQueue,
    VehicleNotFound,
)
from slot_allocator import CAPACITE_DEFAUT, SlotAllocator


def parking_plein(capacity=5):
    p = SlotAllocator(capacity)
    for i in range(1, capacity + 1):
        p.admit(f"V{i}", f"Owner{i}")
    return p


def test_initialisation():
    p = SlotAllocator()
    vue = p.snapshot()
    assert p.capacity == CAPACITE_DEFAUT
    assert vue.free_slots == (1, 2, 3, 4, 5)
    assert vue.slots == (None,) * 5
    assert vue.waiting == ()
    assert vue.total == 0


@pytest.mark.parametrize("capacity", [0, -3, "5", 2.0, True])
def test_capacite_invalide(capacity):
    with pytest.raises(ValueError):
        SlotAllocator(capacity)


def test_entree_standard():
    p = SlotAllocator(3)
    assert p.admit("AB-123", "Alice") == Parked(1)
    assert p.admit("CD-456", "Bob") == Parked(2)
    assert p.snapshot().free_slots == (3,)
    p.check_invariants()


def test_place_la_plus_basse_en_premier():
    p = parking_plein(5)
    # Libère 2, 4 et 5 sans réorganisation : on part des places hautes
    p.depart("V5")
    p.depart("V4")
    p.depart("V2")
    assert p.snapshot().free_slots == (2, 4, 5)

    assert p.admit("NEW", "Nina") == Parked(2)


def test_saturation_file_attente():
    p = parking_plein(2)
    assert p.admit("A", "a") == Waiting()
    assert p.admit("B", "b") == Waiting()
    vue = p.snapshot()
    assert [v.reg_no for v in vue.waiting] == ["A", "B"]
    assert vue.total == 4
    assert vue.free_slots == ()
    p.check_invariants()


def test_file_attente_fifo():
    p = parking_plein(3)
    for reg in ("A", "B", "C"):
        p.admit(reg, reg.lower())

    resultat = p.depart("V3")
    assert resultat.events_of(MoveKind.BACKFILLED) == (MoveEvent(MoveKind.BACKFILLED, "A", 3),)
    assert p.find("A").placement == Parked(3)
    assert p.find("B").placement == Waiting()
    assert [v.reg_no for v in p.snapshot().waiting] == ["B", "C"]

    p.depart("V1")
    assert p.find("B").placement == Parked(1)
    p.check_invariants()


def test_doublon_refuse_sans_modification():
    p = parking_plein(2)
    p.admit("W", "w")
    avant = p.snapshot()

    assert p.admit("V1", "Quelqu'un d'autre") == DuplicateVehicle("V1")
    assert p.admit("W", "w") == DuplicateVehicle("W")
    assert p.snapshot() == avant
    assert p.find("V1").owner == "Owner1"


def test_immatriculation_sensible_a_la_casse():
    p = SlotAllocator(3)
    p.admit("ab-1", "x")
    assert p.admit("AB-1", "y") == Parked(2)


def test_sortie_vehicule_inconnu():
    p = parking_plein(3)
    avant = p.snapshot()
    assert p.depart("ZZZ") == VehicleNotFound("ZZZ")
    assert p.snapshot() == avant


def test_sortie_depuis_file_attente():
    p = parking_plein(2)
    p.admit("W1", "w1")
    p.admit("W2", "w2")
    slots_avant = p.snapshot().slots

    assert p.depart("W1") == RemovedFromQueue("W1")
    vue = p.snapshot()
    assert vue.slots == slots_avant
    assert [v.reg_no for v in vue.waiting] == ["W2"]
    assert p.find("W1") == NotFound("W1")
    assert vue.total == 3
    p.check_invariants()


def test_eviction_puis_restauration():
    p = parking_plein(5)
    p.admit("W", "w")

    resultat = p.depart("V2")

    assert isinstance(resultat, Departed)
    assert resultat.slot == 2
    assert resultat.events == (
        MoveEvent(MoveKind.EVICTED, "V3", 3),
        MoveEvent(MoveKind.EVICTED, "V4", 4),
        MoveEvent(MoveKind.EVICTED, "V5", 5),
        MoveEvent(MoveKind.EXITED, "V2", 2),
        MoveEvent(MoveKind.RESTORED, "V5", 5),
        MoveEvent(MoveKind.RESTORED, "V4", 4),
        MoveEvent(MoveKind.RESTORED, "V3", 3),
        MoveEvent(MoveKind.BACKFILLED, "W", 2),
    )
    occupees = {slot: v.reg_no for slot, v in p.snapshot().occupied.items()}
    assert occupees == {1: "V1", 2: "W", 3: "V3", 4: "V4", 5: "V5"}
    p.check_invariants()


def test_restauration_sans_file_laisse_la_place_libre():
    p = parking_plein(5)
    p.depart("V2")
    vue = p.snapshot()
    assert vue.occupant(2) is None
    assert vue.free_slots == (2,)
    assert {s: v.reg_no for s, v in vue.occupied.items()} == {1: "V1", 3: "V3", 4: "V4", 5: "V5"}


def test_places_inferieures_jamais_touchees():
    p = parking_plein(5)
    resultat = p.depart("V4")
    touches = {e.reg_no for e in resultat.events}
    assert touches == {"V4", "V5"}


def test_sortie_derniere_place_sans_eviction():
    p = parking_plein(3)
    resultat = p.depart("V3")
    assert resultat.events == (MoveEvent(MoveKind.EXITED, "V3", 3),)


def test_recherche():
    p = parking_plein(1)
    p.admit("W", "Walter")

    trouve = p.find("V1")
    assert isinstance(trouve, Vehicle)
    assert trouve.placement == Parked(1)
    assert trouve.slot == 1
    assert trouve.owner == "Owner1"

    assert p.find("W").placement == Waiting()
    assert p.find("W").slot is None
    assert p.find("nope") == NotFound("nope")


def test_replacement_si_place_origine_prise():
    p = parking_plein(5)
    evenements = []
    pile = p._evincer_au_dessus(2, evenements)
    assert [v.placement for v, _ in pile] == [InTransit(3), InTransit(4), InTransit(5)]

    # Sortie de V2, puis la place 5 est prise avant le retour de V5
    p._liberer(2)
    del p._index["V2"]
    p._occuper(5, Vehicle("X", "x", Parked(5)))

    p._restaurer(pile, evenements)

    assert evenements[-3:] == [
        MoveEvent(MoveKind.RELOCATED, "V5", 2),
        MoveEvent(MoveKind.RESTORED, "V4", 4),
        MoveEvent(MoveKind.RESTORED, "V3", 3),
    ]
    assert p.find("V5").placement == Parked(2)
    p.check_invariants()


def test_restauration_impossible_signalee():
    p = parking_plein(3)
    pile = p._evincer_au_dessus(1, [])
    p._occuper(2, Vehicle("X", "x", Parked(2)))
    p._occuper(3, Vehicle("Y", "y", Parked(3)))

    with pytest.raises(InternalInconsistency):
        p._restaurer(pile, [])


def test_allocateur_bloque_apres_incoherence():
    p = SlotAllocator(2)
    p.admit("A", "a")
    p._file.append("FANTOME")

    with pytest.raises(InternalInconsistency):
        p.depart("A")

    assert p.corrupted
    with pytest.raises(InternalInconsistency):
        p.admit("B", "b")
    with pytest.raises(InternalInconsistency):
        p.depart("A")
    # Les lectures restent possibles
    assert p.find("B") == NotFound("B")


def test_verification_detecte_incoherence():
    p = parking_plein(2)
    p._libres.add(1)
    with pytest.raises(InternalInconsistency):
        p.check_invariants()


def test_aucun_vehicule_en_transit_apres_sortie():
    p = parking_plein(5)
    p.depart("V1")
    for v in p._index.values():
        assert not isinstance(v.placement, InTransit)


def test_sequence_aleatoire_conserve_invariants():
    rng = random.Random(1234)
    p = SlotAllocator(6)
    connus = []
    for n in range(400):
        if connus and rng.random() < 0.45:
            reg = rng.choice(connus)
            resultat = p.depart(reg)
            assert isinstance(resultat, (Departed, RemovedFromQueue))
            connus.remove(reg)
        else:
            reg = f"R{n}"
            assert isinstance(p.admit(reg, "o"), (Parked, Waiting))
            connus.append(reg)

        p.check_invariants()
        vue = p.snapshot()
        assert len(vue.occupied) + len(vue.free_slots) == p.capacity
        assert vue.total == len(connus)
        # La file n'existe que si le parking est plein
        assert not vue.waiting or not vue.free_slots
