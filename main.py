# main.py
import argparse
import logging
import sys

from config import UI_GUI, ParkingConfig
from console_parking import ConsoleParking
from slot_allocator import SlotAllocator

logger = logging.getLogger(__name__)


def charger_config(argv=None) -> ParkingConfig:
    """Variables d'environnement d'abord, puis options de la ligne de commande."""
    config = ParkingConfig.from_env()

    parser = argparse.ArgumentParser(description="Smart Parking Lot Manager")
    parser.add_argument("--capacity", type=int, default=config.capacity,
                        help="nombre de places (défaut: %(default)s)")
    parser.add_argument("--log-level", default=config.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper)
    parser.add_argument("--gui", action="store_const", const=UI_GUI, dest="ui", default=config.ui,
                        help="ouvre le tableau de bord Qt au lieu du menu console")
    args = parser.parse_args(argv)
    return ParkingConfig(capacity=args.capacity, log_level=args.log_level, ui=args.ui)


def main(argv=None) -> int:
    config = charger_config(argv)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.info("[BOOT] Capacité %d places, interface %s", config.capacity, config.ui)

    if config.ui == UI_GUI:
        from gui_parking import lancer_dashboard
        return lancer_dashboard(config.capacity)

    return ConsoleParking(SlotAllocator(config.capacity)).executer()


if __name__ == "__main__":
    sys.exit(main())
