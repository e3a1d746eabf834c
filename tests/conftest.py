"""
Shared pytest fixtures for the DraftLink test suite.

Provides:
  - ``creds``: a resolved Credentials instance.
  - ``resolver``: a MagicMock CredentialResolver returning ``creds``.
  - ``http``: a MagicMock standing in for requests.Session.
  - ``make_response``: factory for fake requests.Response objects.
  - ``sample_session``: a realistic champ-select session payload.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from draftlink.credentials import Credentials, CredentialResolver


# ── Credentials ───────────────────────────────────────────────────────────────

@pytest.fixture
def creds() -> Credentials:
    return Credentials(
        process_name="LeagueClient",
        process_id=4242,
        port=54321,
        password="abc123def456",
        protocol="https",
    )


@pytest.fixture
def resolver(creds) -> MagicMock:
    r = MagicMock(spec=CredentialResolver)
    r.resolve.return_value = creds
    return r


# ── HTTP ──────────────────────────────────────────────────────────────────────

def _fake_response(status: int = 200, body: Any = None, text: str | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if text is None:
        text = json.dumps(body) if body is not None else ""
    resp.text = text
    if body is None:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    return _fake_response


@pytest.fixture
def http() -> MagicMock:
    return MagicMock()


# ── Sample payloads ───────────────────────────────────────────────────────────

_SESSION = {
    "gameId": 6543210987,
    "localPlayerCellId": 2,
    "timer": {
        "adjustedTimeLeftInPhase": 27000,
        "phase": "BAN_PICK",
    },
    "myTeam": [
        {"cellId": 0, "championId": 77, "championPickIntent": 0,
         "assignedPosition": "top", "spell1Id": 4, "spell2Id": 12},
        {"cellId": 1, "championId": 0, "championPickIntent": 99,
         "assignedPosition": "jungle", "spell1Id": 4, "spell2Id": 11},
        {"cellId": 2, "championId": 0, "championPickIntent": 0,
         "assignedPosition": "middle"},
    ],
    "theirTeam": [
        {"cellId": 5, "championId": 22, "assignedPosition": ""},
        {"cellId": 6, "championId": "0"},
    ],
    "actions": [
        [
            {"id": 1, "actorCellId": 0, "championId": 17, "completed": True,
             "isInProgress": False, "type": "ban"},
            {"id": 2, "actorCellId": 5, "championId": 86, "completed": True,
             "isInProgress": False, "type": "ban"},
        ],
        [
            {"id": 3, "actorCellId": 0, "championId": 77, "completed": True,
             "isInProgress": False, "type": "pick"},
            {"id": 4, "actorCellId": 1, "championId": 99, "completed": False,
             "isInProgress": True, "type": "pick"},
        ],
    ],
}


@pytest.fixture
def sample_session() -> dict:
    """Return a fresh deep copy of the sample session for each test."""
    return copy.deepcopy(_SESSION)
