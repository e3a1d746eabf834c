"""
DRAFTLINK - Module Client LCU
-----------------------------
Client HTTP de l'API locale du client LoL.

Toutes les requêtes suivent la même politique:
- identifiants résolus à la demande (lockfile / processus)
- en cas d'échec (réseau, statut HTTP, JSON), les identifiants sont oubliés
  et l'opération est relancée une seule fois avec des identifiants frais
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Optional, Dict, Any, List, Callable, TypeVar, Iterator

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from .config import (
    LCU_USERNAME, REQUEST_TIMEOUT, LOCK_TIMEOUT,
    EP_GAMEFLOW, EP_SESSION, EP_CURRENT_SUMMONER, EP_RANKED_STATS, EP_MATCH_HISTORY,
    RANKED_QUEUES, UNRANKED_TIER,
    MATCH_HISTORY_BEG_INDEX, MATCH_HISTORY_END_INDEX, MATCH_HISTORY_LIMIT
)
from .credentials import Credentials, CredentialResolver
from .draft import DraftState, parse_draft_session
from .errors import (
    LcuError, CredentialNotFound, TransportFailure, HttpStatusFailure,
    DecodeFailure, LockContention, RETRYABLE_ERRORS
)
from .utils import get_int, get_str, get_text, get_bool, get_list, get_dict

# Certificat auto-signé du client, API joignable uniquement en loopback
urllib3.disable_warnings(category=InsecureRequestWarning)

T = TypeVar("T")


# ───────────────────────────────────────────────────────────────────────────
# RÉSULTATS
# ───────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class SummonerInfo:
    summoner_id: str
    account_id: str
    puuid: str
    display_name: str
    summoner_level: int
    profile_icon_id: int
    xp_since_last_level: int
    xp_until_next_level: int


@dataclass(frozen=True)
class RankedStats:
    queue_type: str
    tier: str
    rank: str
    league_points: int
    wins: int
    losses: int


@dataclass(frozen=True)
class MatchHistoryGame:
    game_id: int
    queue_id: int
    champion_id: int
    game_mode: str
    game_creation: int
    game_duration: int
    win: bool
    kills: int
    deaths: int
    assists: int


# ───────────────────────────────────────────────────────────────────────────
# CONVERSIONS
# ───────────────────────────────────────────────────────────────────────────

def _require_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodeFailure(f"Réponse {what} inattendue (type {type(data).__name__})")
    return data


def summoner_from_json(data: Any) -> SummonerInfo:
    """Réduit la réponse de /lol-summoner/v1/current-summoner."""
    data = _require_dict(data, "summoner")
    display_name = get_str(data, "displayName")
    if not display_name:
        game_name, tag_line = get_str(data, "gameName"), get_str(data, "tagLine")
        display_name = f"{game_name}#{tag_line}" if game_name and tag_line else "Unknown"
    return SummonerInfo(
        summoner_id=get_text(data, "summonerId"),
        account_id=get_text(data, "accountId"),
        puuid=get_text(data, "puuid"),
        display_name=display_name,
        summoner_level=get_int(data, "summonerLevel", 0),
        profile_icon_id=get_int(data, "profileIconId", 0),
        xp_since_last_level=get_int(data, "xpSinceLastLevel", 0),
        xp_until_next_level=get_int(data, "xpUntilNextLevel", 0),
    )


def ranked_stats_from_json(data: Any) -> List[RankedStats]:
    """Garde uniquement Solo/Duo et Flex, en excluant les files non classées."""
    data = _require_dict(data, "ranked")
    stats = []
    for queue in get_list(data, "queues") or []:
        queue_type = get_str(queue, "queueType")
        if queue_type not in RANKED_QUEUES:
            continue
        tier = get_str(queue, "tier") or "UNRANKED"
        if tier == UNRANKED_TIER:
            continue
        stats.append(RankedStats(
            queue_type=queue_type,
            tier=tier,
            rank=get_str(queue, "division", ""),
            league_points=get_int(queue, "leaguePoints", 0),
            wins=get_int(queue, "wins", 0),
            losses=get_int(queue, "losses", 0),
        ))
    return stats


def _game_for_player(game: Dict[str, Any], puuid: str) -> Optional[MatchHistoryGame]:
    identity = next(
        (i for i in get_list(game, "participantIdentities") or []
         if get_str(get_dict(i, "player"), "puuid") == puuid),
        None
    )
    if identity is None:
        return None

    participant_id = get_int(identity, "participantId", 0)
    participant = next(
        (p for p in get_list(game, "participants") or []
         if get_int(p, "participantId", 0) == participant_id),
        None
    )
    if participant is None:
        return None

    stats = get_dict(participant, "stats")
    return MatchHistoryGame(
        game_id=get_int(game, "gameId", 0),
        queue_id=get_int(game, "queueId", 0),
        champion_id=get_int(participant, "championId", 0),
        game_mode=get_str(game, "gameMode", ""),
        game_creation=get_int(game, "gameCreation", 0),
        game_duration=get_int(game, "gameDuration", 0),
        # Selon les versions: "Win"/"Fail" ou booléen
        win=get_str(stats, "win") == "Win" or get_bool(stats, "win"),
        kills=get_int(stats, "kills", 0),
        deaths=get_int(stats, "deaths", 0),
        assists=get_int(stats, "assists", 0),
    )


def match_history_from_json(data: Any, puuid: str, limit: int = MATCH_HISTORY_LIMIT) -> List[MatchHistoryGame]:
    """
    Réduit l'historique brut aux parties du joueur.

    Args:
        data: Réponse de /lol-match-history/.../matches
        puuid: PUUID du joueur dont on extrait K/D/A
        limit: Nombre maximal de parties examinées

    Returns:
        Liste de MatchHistoryGame (parties sans le joueur ignorées)
    """
    data = _require_dict(data, "match history")
    games_node = data.get("games")
    if isinstance(games_node, dict):
        games_node = games_node.get("games")
    if not isinstance(games_node, list):
        return []

    games = []
    for game in games_node[:limit]:
        if not isinstance(game, dict):
            continue
        entry = _game_for_player(game, puuid)
        if entry is not None:
            games.append(entry)
    return games


# ───────────────────────────────────────────────────────────────────────────
# CLIENT
# ───────────────────────────────────────────────────────────────────────────

class SessionClient:
    """
    Client de l'API locale LCU.

    Thread-safe: un seul verrou protège les identifiants pendant toute la
    séquence requête + relance de chaque opération.
    """

    def __init__(
        self,
        resolver: Optional[CredentialResolver] = None,
        timeout: float = REQUEST_TIMEOUT,
        lock_timeout: float = LOCK_TIMEOUT,
        http: Optional[requests.Session] = None,
        match_history_limit: int = MATCH_HISTORY_LIMIT
    ):
        """
        Initialise le client.

        Args:
            resolver: Résolveur d'identifiants (par défaut, celui de la plateforme)
            timeout: Timeout de chaque requête HTTP (secondes)
            lock_timeout: Attente maximale du verrou interne (secondes)
            http: Session requests à utiliser (injectable pour les tests)
            match_history_limit: Nombre de parties gardées par défaut par match_history
        """
        self.resolver = resolver or CredentialResolver()
        self.timeout = timeout
        self.lock_timeout = lock_timeout
        self.http = http or requests.Session()
        self.match_history_limit = match_history_limit

        self._credentials: Optional[Credentials] = None
        self._lock = RLock()

    # --- Identifiants -----------------------------------------------------

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    def invalidate_credentials(self) -> None:
        """Oublie les identifiants (le client LoL a pu redémarrer)."""
        with self._locked():
            self._credentials = None

    def _ensure_credentials(self) -> Credentials:
        if self._credentials is None:
            self._credentials = self.resolver.resolve()
        return self._credentials

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.lock_timeout):
            logging.error(f"[LCU] Verrou non obtenu après {self.lock_timeout}s")
            raise LockContention(self.lock_timeout)
        try:
            yield
        finally:
            self._lock.release()

    # --- Transport --------------------------------------------------------

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Requête GET authentifiée. Toute erreur invalide les identifiants."""
        creds = self._ensure_credentials()
        url = f"{creds.base_url}{endpoint}"
        try:
            resp = self.http.get(
                url,
                params=params,
                auth=(LCU_USERNAME, creds.password),
                timeout=self.timeout,
                verify=False
            )
        except requests.RequestException as e:
            self._credentials = None
            raise TransportFailure(f"Requête échouée ({endpoint}): {e}") from e

        if not 200 <= resp.status_code < 300:
            self._credentials = None
            raise HttpStatusFailure(resp.status_code, endpoint)
        return resp

    def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        resp = self._get(endpoint, params=params)
        try:
            return resp.json()
        except ValueError as e:
            self._credentials = None
            raise DecodeFailure(f"JSON invalide ({endpoint}): {e}") from e

    def _with_retry(self, name: str, attempt: Callable[[], T]) -> T:
        """
        Exécute une tentative, puis une seule relance avec identifiants frais.

        CredentialNotFound n'est jamais relancé: sans client, inutile d'insister.
        """
        with self._locked():
            try:
                return attempt()
            except RETRYABLE_ERRORS as e:
                logging.debug(f"[LCU] {name}: {e} - nouvelle tentative avec identifiants frais")
                self._credentials = None
            try:
                return attempt()
            except RETRYABLE_ERRORS as e:
                self._credentials = None
                logging.debug(f"[LCU] {name}: échec après relance - {e}")
                raise

    def _decoded(self, data: Any, convert: Callable[[Any], T]) -> T:
        """Applique une conversion; une forme inattendue compte comme un échec de requête."""
        try:
            return convert(data)
        except DecodeFailure:
            self._credentials = None
            raise

    # --- Opérations -------------------------------------------------------

    def gameflow_phase(self) -> str:
        """Phase courante du client (Lobby, ChampSelect, InProgress...)."""
        def attempt() -> str:
            return self._get(EP_GAMEFLOW).text.strip().strip('"')
        return self._with_retry("gameflow-phase", attempt)

    def draft_session(self) -> Any:
        """Session de sélection brute (JSON)."""
        return self._with_retry("champ-select session", lambda: self._get_json(EP_SESSION))

    def draft_state(self) -> DraftState:
        """
        Session de sélection convertie en DraftState.

        Raises:
            ParseFailure: session inexploitable (jamais relancée)
        """
        return parse_draft_session(self.draft_session())

    def current_summoner(self) -> SummonerInfo:
        def attempt() -> SummonerInfo:
            return self._decoded(self._get_json(EP_CURRENT_SUMMONER), summoner_from_json)
        return self._with_retry("current-summoner", attempt)

    def ranked_stats(self) -> List[RankedStats]:
        def attempt() -> List[RankedStats]:
            return self._decoded(self._get_json(EP_RANKED_STATS), ranked_stats_from_json)
        return self._with_retry("ranked-stats", attempt)

    def match_history(
        self,
        beg_index: int = MATCH_HISTORY_BEG_INDEX,
        end_index: int = MATCH_HISTORY_END_INDEX,
        limit: Optional[int] = None
    ) -> List[MatchHistoryGame]:
        """
        Dernières parties du joueur connecté.

        Deux étapes, chacune avec sa propre relance: le joueur courant
        (pour son PUUID), puis la liste des parties.
        """
        if limit is None:
            limit = self.match_history_limit
        with self._locked():
            puuid = self.current_summoner().puuid
            if not puuid:
                raise DecodeFailure("PUUID du joueur courant absent")

            endpoint = EP_MATCH_HISTORY.format(puuid=puuid)
            params = {"begIndex": beg_index, "endIndex": end_index}

            def attempt() -> List[MatchHistoryGame]:
                data = self._get_json(endpoint, params=params)
                return self._decoded(data, lambda d: match_history_from_json(d, puuid, limit))
            return self._with_retry("match-history", attempt)

    def test_connection(self) -> ConnectionStatus:
        """Vérifie la connexion avec des identifiants frais. Ne lève jamais."""
        try:
            with self._locked():
                self._credentials = None
                self._ensure_credentials()
                self.gameflow_phase()
        except CredentialNotFound as e:
            return ConnectionStatus(connected=False, error=str(e))
        except LcuError as e:
            return ConnectionStatus(connected=False, error=f"Connexion à l'API LCU impossible: {e}")
        return ConnectionStatus(connected=True)
