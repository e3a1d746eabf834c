"""
DRAFTLINK - Module Erreurs
--------------------------
Hiérarchie des exceptions levées lors du dialogue avec le client LCU.
"""

from typing import Optional


class LcuError(Exception):
    """Erreur de base pour toute communication avec le client LoL."""


class CredentialNotFound(LcuError):
    """Client LoL non lancé (ou jeton introuvable). Situation normale, pas une alerte."""

    def __init__(self, message: str = "Client LoL introuvable (lockfile et processus absents)"):
        super().__init__(message)


class LockfileFormatError(LcuError):
    """Contenu de lockfile invalide (nombre de champs, port ou PID non numérique)."""


class TransportFailure(LcuError):
    """Erreur réseau: connexion refusée, timeout, TLS..."""


class HttpStatusFailure(LcuError):
    """Réponse HTTP hors 2xx."""

    def __init__(self, status_code: int, url: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Erreur HTTP {status_code}" + (f" ({url})" if url else ""))


class DecodeFailure(LcuError):
    """Corps de réponse illisible ou de forme inattendue."""


class ParseFailure(LcuError):
    """Session de draft structurellement inexploitable. Jamais retentée."""


class LockContention(LcuError):
    """Verrou interne non obtenu. Ne devrait jamais arriver: signale un bug."""

    def __init__(self, waited: Optional[float] = None):
        msg = "Verrou de session LCU indisponible"
        if waited is not None:
            msg += f" après {waited:.1f}s"
        super().__init__(msg)


# Erreurs déclenchant l'invalidation des identifiants + une unique relance
RETRYABLE_ERRORS = (TransportFailure, HttpStatusFailure, DecodeFailure)
