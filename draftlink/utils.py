"""
DRAFTLINK - Module Utilitaires
------------------------------
Accès tolérant aux documents JSON du client LCU.

Le schéma renvoyé par le client varie selon les versions: un champ peut
manquer, être un entier ou une chaîne contenant un entier. Ces fonctions ne
lèvent jamais d'exception sur une clé absente, elles renvoient la valeur par
défaut.
"""

from typing import Any, Dict, List, Optional


def get_int(obj: Any, key: str, default: Optional[int] = None) -> Optional[int]:
    """
    Lit un entier, en acceptant les chaînes numériques ("42").

    Args:
        obj: Dictionnaire source (toute autre valeur renvoie le défaut)
        key: Clé à lire
        default: Valeur si absente ou non convertible

    Returns:
        Entier lu ou valeur par défaut
    """
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    # bool est une sous-classe de int: True ne doit pas devenir 1
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def get_float(obj: Any, key: str, default: Optional[float] = None) -> Optional[float]:
    """Lit un nombre (entier ou flottant, ou chaîne numérique)."""
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def get_str(obj: Any, key: str, default: Optional[str] = None) -> Optional[str]:
    """Lit une chaîne (sans conversion)."""
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    return value if isinstance(value, str) else default


def get_text(obj: Any, key: str, default: str = "") -> str:
    """Lit une valeur affichable: chaîne telle quelle, nombre converti en chaîne."""
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def get_bool(obj: Any, key: str, default: bool = False) -> bool:
    """Lit un booléen strict."""
    if not isinstance(obj, dict):
        return default
    value = obj.get(key)
    return value if isinstance(value, bool) else default


def get_list(obj: Any, key: str) -> Optional[List[Any]]:
    """Renvoie la liste associée à la clé, ou None si absente / d'un autre type."""
    if not isinstance(obj, dict):
        return None
    value = obj.get(key)
    return value if isinstance(value, list) else None


def get_dict(obj: Any, key: str) -> Dict[str, Any]:
    """Renvoie le sous-objet associé à la clé (dict vide si absent)."""
    if not isinstance(obj, dict):
        return {}
    value = obj.get(key)
    return value if isinstance(value, dict) else {}


def first_int(obj: Any, *keys: str) -> Optional[int]:
    """Premier entier trouvé parmi plusieurs variantes de nom de champ."""
    for key in keys:
        value = get_int(obj, key)
        if value is not None:
            return value
    return None


def first_float(obj: Any, *keys: str) -> Optional[float]:
    """Premier nombre trouvé parmi plusieurs variantes de nom de champ."""
    for key in keys:
        value = get_float(obj, key)
        if value is not None:
            return value
    return None
