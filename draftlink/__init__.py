"""
DRAFTLINK - Suivi en direct de la sélection des champions via l'API locale du client LoL.
"""

from .config import CURRENT_VERSION as __version__
