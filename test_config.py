import pytest

import main
from config import UI_CONSOLE, UI_GUI, ParkingConfig


def test_valeurs_par_defaut():
    c = ParkingConfig.from_env({})
    assert c.capacity == 5
    assert c.log_level == "INFO"
    assert c.ui == UI_CONSOLE


def test_lecture_environnement():
    c = ParkingConfig.from_env({"PARKING_CAPACITY": "12", "PARKING_LOG_LEVEL": "debug", "PARKING_UI": "GUI"})
    assert c.capacity == 12
    assert c.log_level == "DEBUG"
    assert c.ui == UI_GUI


@pytest.mark.parametrize("raw", ["0", "-1", "douze", None])
def test_capacite_invalide(raw):
    with pytest.raises(ValueError):
        ParkingConfig(capacity=raw)


def test_interface_inconnue():
    with pytest.raises(ValueError):
        ParkingConfig(ui="web")


def test_ligne_de_commande_surcharge_environnement(monkeypatch):
    monkeypatch.setenv("PARKING_CAPACITY", "8")
    assert main.charger_config([]).capacity == 8
    c = main.charger_config(["--capacity", "3", "--log-level", "warning", "--gui"])
    assert (c.capacity, c.log_level, c.ui) == (3, "WARNING", UI_GUI)


def test_main_console(monkeypatch):
    saisies = iter(["1", "AB-1", "Alice", "6"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(saisies))
    monkeypatch.delenv("PARKING_UI", raising=False)
    assert main.main(["--capacity", "2"]) == 0
