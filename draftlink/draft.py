"""
DRAFTLINK - Module Draft
------------------------
Modèle canonique de la sélection des champions et conversion depuis la
session brute renvoyée par /lol-champ-select/v1/session.

Aucune I/O ici: parse_draft_session est une fonction pure.
"""

import json
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, List, Set, Tuple

from .config import (
    TEAM_ALLY, TEAM_ENEMY, ALLY_CELL_LIMIT, PHASE_UNKNOWN, TIMER_MS_THRESHOLD
)
from .errors import ParseFailure
from .utils import get_int, get_str, get_bool, get_list, get_dict, first_int, first_float


# ───────────────────────────────────────────────────────────────────────────
# MODÈLE
# ───────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Cell:
    cell_id: int
    champion_id: Optional[int] = None            # Champion verrouillé
    selected_champion_id: Optional[int] = None   # Champion survolé (non verrouillé)
    assigned_position: Optional[str] = None
    spell1_id: Optional[int] = None
    spell2_id: Optional[int] = None

    @property
    def is_locked(self) -> bool:
        return self.champion_id is not None

    @property
    def hovered_champion_id(self) -> Optional[int]:
        """Champion survolé s'il diffère du champion verrouillé."""
        if self.selected_champion_id is None or self.selected_champion_id == self.champion_id:
            return None
        return self.selected_champion_id


@dataclass(frozen=True)
class ChampionPick:
    champion_id: int
    cell_id: Optional[int]
    completed: bool
    is_ally_pick: bool
    position: Optional[str] = None


@dataclass(frozen=True)
class ChampionBan:
    champion_id: int
    cell_id: Optional[int]
    completed: bool
    is_ally_ban: bool


@dataclass(frozen=True)
class DraftAction:
    id: int
    type: str
    actor_cell_id: Optional[int] = None
    champion_id: Optional[int] = None
    selected_champion_id: Optional[int] = None
    completed: bool = False
    is_in_progress: bool = False


@dataclass(frozen=True)
class Team:
    team_id: int
    picks: Tuple[ChampionPick, ...] = ()
    bans: Tuple[ChampionBan, ...] = ()
    cells: Tuple[Cell, ...] = ()

    @property
    def is_ally(self) -> bool:
        return self.team_id == TEAM_ALLY

    @property
    def cell_ids(self) -> Set[int]:
        return {c.cell_id for c in self.cells}


@dataclass(frozen=True)
class DraftState:
    """État complet d'une sélection. Reconstruit à chaque sondage, jamais modifié."""

    game_id: Optional[int] = None
    timer: Optional[float] = None
    phase: str = PHASE_UNKNOWN
    teams: Tuple[Team, ...] = ()
    actions: Tuple[DraftAction, ...] = ()

    def team(self, team_id: int) -> Optional[Team]:
        return next((t for t in self.teams if t.team_id == team_id), None)

    @property
    def ally_team(self) -> Optional[Team]:
        return self.team(TEAM_ALLY)

    @property
    def enemy_team(self) -> Optional[Team]:
        return self.team(TEAM_ENEMY)

    @property
    def current_action(self) -> Optional[DraftAction]:
        """Action en cours (isInProgress), s'il y en a une."""
        return next((a for a in self.actions if a.is_in_progress), None)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        """Forme sérialisée stable, utilisée pour comparer deux sondages."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))


# ───────────────────────────────────────────────────────────────────────────
# RÈGLES D'ATTRIBUTION
# ───────────────────────────────────────────────────────────────────────────

def fallback_side_for_cell(cell_id: int) -> int:
    """
    Camp d'une cellule inconnue des deux équipes.

    Approximation historique (cellules 0-4 alliées, 5-9 ennemies), utilisée
    quand les actions arrivent avant les cellules. À conserver telle quelle.
    """
    return TEAM_ALLY if cell_id < ALLY_CELL_LIMIT else TEAM_ENEMY


def side_for_cell(cell_id: int, ally_cells: Set[int], enemy_cells: Set[int]) -> int:
    if cell_id in ally_cells:
        return TEAM_ALLY
    if cell_id in enemy_cells:
        return TEAM_ENEMY
    return fallback_side_for_cell(cell_id)


def normalize_timer(raw: Optional[float]) -> Optional[float]:
    """Le client a publié le temps restant en ms ou en s selon les versions."""
    if raw is None:
        return None
    if raw > TIMER_MS_THRESHOLD:
        return raw / 1000.0
    return raw


def _champion(value: Optional[int]) -> Optional[int]:
    # 0 signifie "aucun champion"
    return value if value else None


# ───────────────────────────────────────────────────────────────────────────
# PARSING
# ───────────────────────────────────────────────────────────────────────────

def _parse_cell(raw: Dict[str, Any]) -> Cell:
    return Cell(
        cell_id=get_int(raw, "cellId", 0),
        champion_id=_champion(get_int(raw, "championId")),
        selected_champion_id=_champion(first_int(raw, "championPickIntent", "selectedChampionId")),
        assigned_position=get_str(raw, "assignedPosition"),
        spell1_id=get_int(raw, "spell1Id"),
        spell2_id=get_int(raw, "spell2Id"),
    )


def _parse_team(team_id: int, entries: List[Any]) -> Team:
    cells = [_parse_cell(e) for e in entries if isinstance(e, dict)]
    picks = tuple(
        ChampionPick(
            champion_id=c.champion_id,
            cell_id=c.cell_id,
            completed=True,
            is_ally_pick=team_id == TEAM_ALLY,
            position=c.assigned_position,
        )
        for c in cells if c.champion_id is not None
    )
    return Team(team_id=team_id, picks=picks, cells=tuple(cells))


def _parse_action(raw: Any) -> Optional[DraftAction]:
    action_id = get_int(raw, "id")
    action_type = get_str(raw, "type")
    if action_id is None or action_type is None:
        return None
    return DraftAction(
        id=action_id,
        type=action_type,
        actor_cell_id=get_int(raw, "actorCellId"),
        champion_id=get_int(raw, "championId"),
        selected_champion_id=get_int(raw, "selectedChampionId"),
        completed=get_bool(raw, "completed"),
        is_in_progress=get_bool(raw, "isInProgress"),
    )


def flatten_actions(groups: Optional[List[Any]]) -> List[DraftAction]:
    """Aplatit les tours d'actions en une seule séquence, dans l'ordre source."""
    actions = []
    for group in groups or []:
        if not isinstance(group, list):
            continue
        for raw in group:
            action = _parse_action(raw)
            if action is not None:
                actions.append(action)
    return actions


def extract_bans(actions: List[DraftAction], teams: List[Team]) -> Dict[int, List[ChampionBan]]:
    """
    Reconstruit les bans de chaque camp depuis les actions de type "ban".

    Returns:
        {team_id: [ChampionBan, ...]} pour 100 et 200
    """
    ally_cells: Set[int] = set()
    enemy_cells: Set[int] = set()
    for team in teams:
        if team.team_id == TEAM_ALLY:
            ally_cells = team.cell_ids
        elif team.team_id == TEAM_ENEMY:
            enemy_cells = team.cell_ids

    bans: Dict[int, List[ChampionBan]] = {TEAM_ALLY: [], TEAM_ENEMY: []}
    for action in actions:
        if action.type != "ban" or not action.champion_id:
            continue
        # Sans cellule d'origine, impossible de savoir quel camp a banni
        if action.actor_cell_id is None:
            continue
        side = side_for_cell(action.actor_cell_id, ally_cells, enemy_cells)
        bans[side].append(ChampionBan(
            champion_id=action.champion_id,
            cell_id=action.actor_cell_id,
            completed=action.completed,
            is_ally_ban=side == TEAM_ALLY,
        ))
    return bans


def parse_draft_session(session: Any) -> DraftState:
    """
    Convertit une session de sélection brute en DraftState canonique.

    Args:
        session: Document JSON de /lol-champ-select/v1/session

    Returns:
        DraftState

    Raises:
        ParseFailure: document non objet, ou sans myTeam, theirTeam ni actions
    """
    if not isinstance(session, dict):
        raise ParseFailure(f"Session de draft invalide (type {type(session).__name__})")

    my_team = get_list(session, "myTeam")
    their_team = get_list(session, "theirTeam")
    action_groups = get_list(session, "actions")
    if my_team is None and their_team is None and action_groups is None:
        raise ParseFailure("Session de draft sans équipes ni actions")

    timer_data = get_dict(session, "timer")

    teams: List[Team] = []
    if my_team is not None:
        teams.append(_parse_team(TEAM_ALLY, my_team))
    if their_team is not None:
        teams.append(_parse_team(TEAM_ENEMY, their_team))

    actions = flatten_actions(action_groups)
    bans = extract_bans(actions, teams)
    teams = [
        Team(team_id=t.team_id, picks=t.picks, bans=tuple(bans[t.team_id]), cells=t.cells)
        for t in teams
    ]

    return DraftState(
        game_id=get_int(session, "gameId"),
        timer=normalize_timer(first_float(timer_data, "adjustedTimeLeftInPhase", "timeLeftInPhase")),
        phase=get_str(timer_data, "phase") or PHASE_UNKNOWN,
        teams=tuple(teams),
        actions=tuple(actions),
    )
