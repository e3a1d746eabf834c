"""
DRAFTLINK - Module de Configuration
-----------------------------------
Contient toutes les constantes, endpoints, et la gestion des paramètres.
"""

import os
import json
import tempfile
import logging
from typing import Dict, Any, List

# ───────────────────────────────────────────────────────────────────────────
# APPLICATION METADATA
# ───────────────────────────────────────────────────────────────────────────

CURRENT_VERSION: str = "1.0"
APP_FOLDER_NAME: str = "DraftLink"

# ───────────────────────────────────────────────────────────────────────────
# LCU API
# ───────────────────────────────────────────────────────────────────────────

LCU_HOST: str = "127.0.0.1"
LCU_USERNAME: str = "riot"
LCU_PROTOCOL: str = "https"
LCU_PROCESS_NAME: str = "LeagueClient"

EP_GAMEFLOW: str = "/lol-gameflow/v1/gameflow-phase"
EP_SESSION: str = "/lol-champ-select/v1/session"
EP_CURRENT_SUMMONER: str = "/lol-summoner/v1/current-summoner"
EP_RANKED_STATS: str = "/lol-ranked/v1/current-ranked-stats"
EP_MATCH_HISTORY: str = "/lol-match-history/v1/products/lol/{puuid}/matches"

# ───────────────────────────────────────────────────────────────────────────
# GAME DATA MAPPINGS
# ───────────────────────────────────────────────────────────────────────────

RANKED_QUEUES: tuple = ("RANKED_SOLO_5x5", "RANKED_FLEX_SR")
UNRANKED_TIER: str = "NONE"

TEAM_ALLY: int = 100
TEAM_ENEMY: int = 200

# Convention historique: cellules 0-4 côté allié, 5-9 côté ennemi
ALLY_CELL_LIMIT: int = 5

PHASE_UNKNOWN: str = "Unknown"
PHASE_DISPLAY_MAP: Dict[str, str] = {
    "PLANNING": "Intentions",
    "BAN_PICK": "Bans & Picks",
    "FINALIZATION": "Finalisation",
    "GAME_STARTING": "Lancement",
    PHASE_UNKNOWN: "Inconnue",
}

# ───────────────────────────────────────────────────────────────────────────
# TIMINGS
# ───────────────────────────────────────────────────────────────────────────

REQUEST_TIMEOUT: float = 5.0
LOCK_TIMEOUT: float = 30.0
POLL_INTERVAL: float = 0.25
TIMER_EPSILON: float = 0.01
# Au-delà, le timer est exprimé en millisecondes
TIMER_MS_THRESHOLD: float = 1000.0

MATCH_HISTORY_BEG_INDEX: int = 0
MATCH_HISTORY_END_INDEX: int = 10
MATCH_HISTORY_LIMIT: int = 5

# ───────────────────────────────────────────────────────────────────────────
# LOCKFILE CANDIDATES
# ───────────────────────────────────────────────────────────────────────────

LOCKFILE_RELATIVE: str = os.path.join("Riot Games", "League of Legends", "lockfile")

WINDOWS_LOCKFILE_ENV_ROOTS: List[str] = ["ProgramFiles", "ProgramFiles(x86)", "LOCALAPPDATA"]
WINDOWS_LOCKFILE_DEFAULT: str = "C:\\Riot Games\\League of Legends\\lockfile"

MAC_LOCKFILE_PATHS: List[str] = [
    "/Applications/League of Legends.app/Contents/LoL/lockfile",
    "/Applications/League of Legends.app/Contents/LoL/LeagueClient.app/Contents/Lockups/lockfile",
    "~/Library/Application Support/League of Legends/lockfile",
]

LINUX_LOCKFILE_PATHS: List[str] = [
    "~/.wine/drive_c/Riot Games/League of Legends/lockfile",
    "~/.local/share/Riot Games/League of Legends/lockfile",
]

# ───────────────────────────────────────────────────────────────────────────
# DEFAULT PARAMETERS
# ───────────────────────────────────────────────────────────────────────────

DEFAULT_PARAMS: Dict[str, Any] = {
    "poll_interval_ms": int(POLL_INTERVAL * 1000),
    "request_timeout": REQUEST_TIMEOUT,
    "lockfile_path": "",
    "match_history_limit": MATCH_HISTORY_LIMIT,
}

# ───────────────────────────────────────────────────────────────────────────
# PATH UTILITIES
# ───────────────────────────────────────────────────────────────────────────

def get_appdata_path(filename: str) -> str:
    """
    Retourne le chemin vers un fichier dans le dossier AppData de l'application.

    Args:
        filename: Nom du fichier

    Returns:
        Chemin complet vers le fichier dans AppData/DraftLink/
    """
    app_data_dir = os.getenv('APPDATA')
    if not app_data_dir:
        return filename

    app_folder = os.path.join(app_data_dir, APP_FOLDER_NAME)
    if not os.path.exists(app_folder):
        try:
            os.makedirs(app_folder)
        except OSError:
            return filename

    return os.path.join(app_folder, filename)


PARAMETERS_PATH: str = get_appdata_path("parameters.json")

# ───────────────────────────────────────────────────────────────────────────
# PARAMETERS MANAGEMENT
# ───────────────────────────────────────────────────────────────────────────

def load_parameters(path: str = PARAMETERS_PATH) -> Dict[str, Any]:
    """
    Charge les paramètres depuis le fichier JSON.

    Returns:
        Dictionnaire des paramètres (valeurs par défaut si fichier inexistant)
    """
    if not os.path.exists(path):
        return DEFAULT_PARAMS.copy()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
        if not isinstance(config, dict):
            raise ValueError("racine JSON non objet")
        # Fusionner avec les valeurs par défaut pour les clés manquantes
        merged = DEFAULT_PARAMS.copy()
        merged.update(config)
        return merged
    except (ValueError, IOError) as e:
        logging.warning(f"Erreur chargement paramètres: {e}")
        return DEFAULT_PARAMS.copy()


def save_parameters(params: Dict[str, Any], path: str = PARAMETERS_PATH) -> bool:
    """
    Sauvegarde les paramètres dans le fichier JSON.

    Args:
        params: Dictionnaire des paramètres à sauvegarder

    Returns:
        True si succès, False sinon
    """
    try:
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(params, f, indent=4, ensure_ascii=False)
        return True
    except (IOError, OSError) as e:
        logging.error(f"Erreur sauvegarde paramètres: {e}")
        return False


# ───────────────────────────────────────────────────────────────────────────
# LOGGING CONFIGURATION (AppData)
# ───────────────────────────────────────────────────────────────────────────

def setup_logging(level: int = logging.INFO) -> str:
    """
    Configure le logging vers AppData/DraftLink/draftlink_debug.log.

    Returns:
        Chemin absolu du fichier de log
    """
    app_data_dir = os.getenv('APPDATA')
    if not app_data_dir:
        app_data_dir = os.path.expanduser("~")

    log_folder = os.path.join(app_data_dir, APP_FOLDER_NAME)

    if not os.path.exists(log_folder):
        try:
            os.makedirs(log_folder, exist_ok=True)
        except OSError:
            # En dernier recours seulement, utiliser temp
            log_folder = tempfile.gettempdir()

    log_path = os.path.join(log_folder, "draftlink_debug.log")

    logging.basicConfig(
        filename=log_path,
        level=level,
        format='%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        encoding='utf-8'
    )

    return log_path
