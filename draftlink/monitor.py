"""
DRAFTLINK - Module Monitor
--------------------------
Sondage périodique de la sélection des champions.

Un thread de fond interroge le client à intervalle fixe et notifie
l'écouteur uniquement quand l'état, le timer ou la phase ont changé.
"""

import logging
from threading import Thread, Event
from typing import Optional, Callable, Any

from .client import SessionClient
from .config import POLL_INTERVAL, TIMER_EPSILON
from .draft import DraftState
from .errors import LcuError, CredentialNotFound


def timer_changed(current: Optional[float], previous: Optional[float], epsilon: float = TIMER_EPSILON) -> bool:
    """Vrai si le timer a bougé de plus d'epsilon (ou apparu / disparu)."""
    if current is None and previous is None:
        return False
    if current is None or previous is None:
        return True
    return abs(current - previous) > epsilon


class ChangeMonitor:
    """
    Surveille la sélection des champions et notifie les changements.

    Thread-safe: communique avec l'extérieur via le callback uniquement.
    """

    # Types d'événements pour les callbacks
    EVENT_STATE_CHANGED = "draft-state-changed"
    EVENT_ERROR = "draft-error"

    def __init__(
        self,
        client: SessionClient,
        listener: Callable[[str, Any], None],
        interval: float = POLL_INTERVAL
    ):
        """
        Initialise le monitor.

        Args:
            client: Client LCU partagé
            listener: Fonction appelée avec (type d'événement, données)
            interval: Intervalle entre deux sondages (secondes)
        """
        self.client = client
        self.listener = listener
        self.interval = interval

        self._last_state: Optional[str] = None
        self._last_timer: Optional[float] = None
        self._last_phase: Optional[str] = None

        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    @property
    def has_snapshot(self) -> bool:
        """Vrai en régime "Polling" (un état de draft est connu)."""
        return self._last_state is not None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _notify(self, event_type: str, data: Any = None) -> None:
        try:
            self.listener(event_type, data)
        except Exception as e:
            # Un écouteur défaillant ne doit pas arrêter le sondage
            logging.error(f"[Monitor] Erreur dans l'écouteur ({event_type}): {e}", exc_info=True)

    def _reset(self) -> None:
        self._last_state = None
        self._last_timer = None
        self._last_phase = None

    def tick(self) -> bool:
        """
        Effectue un sondage.

        Returns:
            True si un événement "draft-state-changed" a été émis
        """
        try:
            state = self.client.draft_state()
        except CredentialNotFound:
            # Client fermé: situation normale, aucun bruit
            self._reset()
            return False
        except LcuError as e:
            if self.has_snapshot:
                logging.info(f"[Monitor] Fin de sélection ou erreur: {e}")
                self._notify(self.EVENT_ERROR, str(e))
            self._reset()
            return False

        return self._apply(state)

    def _apply(self, state: DraftState) -> bool:
        state_json = state.to_json()
        changed = (
            state_json != self._last_state
            or timer_changed(state.timer, self._last_timer)
            or state.phase != self._last_phase
        )
        if not changed:
            return False

        if state.phase != self._last_phase:
            logging.info(f"[Monitor] Phase de sélection : {self._last_phase} -> {state.phase}")
        self._last_state = state_json
        self._last_timer = state.timer
        self._last_phase = state.phase
        self._notify(self.EVENT_STATE_CHANGED, state)
        return True

    def run(self, stop_event: Optional[Event] = None) -> None:
        """
        Boucle de sondage: premier tick immédiat, puis un tick par intervalle.

        Args:
            stop_event: Signal d'arrêt (celui du monitor par défaut)
        """
        stop_event = stop_event or self._stop_event
        logging.info(f"[Monitor] Démarrage du sondage ({int(self.interval * 1000)} ms)")
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logging.critical(f"[Monitor] Erreur inattendue pendant le sondage : {e}", exc_info=True)
            if stop_event.wait(self.interval):
                break
        logging.info("[Monitor] Sondage arrêté.")

    def start(self) -> None:
        """Démarre le thread de sondage (un signal d'arrêt neuf par exécution)."""
        if self.is_running:
            return
        self._stop_event = Event()
        self._thread = Thread(target=self.run, args=(self._stop_event,), name="draft-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Arrête le sondage proprement et attend la fin du thread.

        Si le thread n'a pas fini dans le délai, il reste référencé et
        is_running reste vrai jusqu'à sa sortie effective.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if not self._thread.is_alive():
                self._thread = None
            else:
                logging.warning("[Monitor] Le thread de sondage ne s'est pas arrêté dans le délai imparti.")
