"""Erreurs levées par l'allocateur de places.

Les erreurs de saisie (immatriculation dupliquée ou inconnue) ne sont pas
des exceptions : elles sont renvoyées comme résultats (voir results.py).
Seules les violations d'invariant remontent sous forme d'exception.
"""


class AllocatorError(Exception):
    """Erreur de base de l'allocateur."""
    pass


class InternalInconsistency(AllocatorError):
    """L'état interne ne respecte plus ses invariants.

    Équivaut à un échec d'assertion : l'instance concernée refuse ensuite
    toute nouvelle mutation.
    """
    pass
