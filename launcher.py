"""
DRAFTLINK - Point d'Entrée
--------------------------
Lance le sondage de la sélection des champions sans interface graphique:
chaque événement est écrit sur la sortie standard (une ligne JSON).
"""

import sys
import json
import logging
from threading import Event
from typing import Dict, Any, TextIO

from draftlink.config import (
    load_parameters, save_parameters, setup_logging,
    CURRENT_VERSION, PHASE_DISPLAY_MAP, MATCH_HISTORY_LIMIT
)
from draftlink.credentials import CredentialResolver
from draftlink.client import SessionClient
from draftlink.draft import DraftState
from draftlink.monitor import ChangeMonitor


class DraftLinkApplication:
    """Classe principale gérant le cycle de vie de l'application."""

    def __init__(self, params: Dict[str, Any], out: TextIO = sys.stdout):
        """
        Initialise l'application.

        Args:
            params: Paramètres chargés (voir DEFAULT_PARAMS)
            out: Flux recevant les événements
        """
        self._params = params
        self._out = out
        self._done = Event()

        resolver = CredentialResolver(extra_lockfiles=[params.get("lockfile_path", "")])
        self.client = SessionClient(
            resolver=resolver,
            timeout=float(params.get("request_timeout", 5.0)),
            match_history_limit=int(params.get("match_history_limit", MATCH_HISTORY_LIMIT))
        )
        self.monitor = ChangeMonitor(
            client=self.client,
            listener=self.on_core_event,
            interval=max(int(params.get("poll_interval_ms", 250)), 50) / 1000.0
        )

    def on_core_event(self, event_type: str, data: Any) -> None:
        """Écrit l'événement reçu du monitor."""
        if isinstance(data, DraftState):
            friendly_phase = PHASE_DISPLAY_MAP.get(data.phase, data.phase)
            logging.debug(f"Draft mis à jour ({friendly_phase}, timer={data.timer})")
            data = data.to_dict()
        self._out.write(json.dumps({"event": event_type, "payload": data}) + "\n")
        self._out.flush()

    def _save_params(self) -> None:
        """Sauvegarde les paramètres."""
        if save_parameters(self._params):
            logging.info("Paramètres sauvegardés avec succès.")
        else:
            logging.error("Échec de la sauvegarde des paramètres.")

    def run(self) -> None:
        """Lance le sondage jusqu'à interruption."""
        logging.info(f"DRAFTLINK v{CURRENT_VERSION} démarré.")
        status = self.client.test_connection()
        if status.connected:
            logging.info("Client LoL détecté ! Sondage de la sélection des champions.")
        else:
            logging.info(f"Client LoL non détecté ({status.error}). En attente...")

        self.monitor.start()
        try:
            while not self._done.wait(0.5):
                pass
        finally:
            self.quit_app()

    def quit_app(self) -> None:
        """Arrête le sondage proprement."""
        logging.info("Fermeture de l'application...")
        self._done.set()
        self._save_params()
        self.monitor.stop(timeout=2.0)


def main() -> None:
    """Point d'entrée principal."""
    setup_logging()
    try:
        app = DraftLinkApplication(load_parameters())
        app.run()
    except KeyboardInterrupt:
        logging.info("Interruption clavier détectée.")
    except Exception as e:
        logging.critical(f"Erreur fatale: {e}", exc_info=True)


if __name__ == "__main__":
    main()
