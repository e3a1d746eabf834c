"""
DRAFTLINK - Module Identifiants LCU
-----------------------------------
Découverte du port et du mot de passe de l'API locale du client LoL.

Deux stratégies, dans l'ordre:
1. Lecture du lockfile écrit par le client (emplacements connus par plateforme)
2. Lecture de la ligne de commande du processus LeagueClientUx via psutil
"""

import os
import re
import sys
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Iterable, Tuple

import psutil

from .config import (
    LCU_HOST, LCU_PROTOCOL, LCU_PROCESS_NAME, LOCKFILE_RELATIVE,
    WINDOWS_LOCKFILE_ENV_ROOTS, WINDOWS_LOCKFILE_DEFAULT,
    MAC_LOCKFILE_PATHS, LINUX_LOCKFILE_PATHS
)
from .errors import CredentialNotFound, LockfileFormatError


_PORT_RE = re.compile(r"--app-port=([0-9]+)")
_TOKEN_RE = re.compile(r"--remoting-auth-token=([\w-]+)")
_DIGITS_RE = re.compile(r"[0-9]+")

_MAX_PORT = 65535
_MAX_PID = 2 ** 32 - 1


@dataclass(frozen=True)
class Credentials:
    """Identifiants de l'API locale. Immuables: on les remplace en bloc."""

    process_name: str
    process_id: int
    port: int
    password: str = field(repr=False)
    protocol: str = LCU_PROTOCOL

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{LCU_HOST}:{self.port}"


# ───────────────────────────────────────────────────────────────────────────
# LOCKFILE
# ───────────────────────────────────────────────────────────────────────────

def _parse_bounded_int(raw: str, label: str, upper: int) -> int:
    # Chiffres ASCII uniquement: int() accepte aussi "+", "_" et les chiffres Unicode
    if not _DIGITS_RE.fullmatch(raw):
        raise LockfileFormatError(f"{label} non numérique: {raw!r}")
    value = int(raw)
    if value > upper:
        raise LockfileFormatError(f"{label} hors limites: {value}")
    return value


def parse_lockfile(contents: str) -> Credentials:
    """
    Analyse le contenu d'un lockfile (Nom:PID:Port:MotDePasse:Protocole).

    Args:
        contents: Contenu brut du fichier (seule la première ligne compte)

    Returns:
        Credentials extraits

    Raises:
        LockfileFormatError: fichier vide, nombre de champs != 5, PID/port invalides
    """
    lines = contents.splitlines()
    if not lines or not lines[0].strip():
        raise LockfileFormatError("Lockfile vide")

    parts = lines[0].split(":")
    if len(parts) != 5:
        raise LockfileFormatError(f"Format de lockfile invalide ({len(parts)} champs)")

    process_name, raw_pid, raw_port, password, protocol = parts
    return Credentials(
        process_name=process_name,
        process_id=_parse_bounded_int(raw_pid.strip(), "PID", _MAX_PID),
        port=_parse_bounded_int(raw_port.strip(), "Port", _MAX_PORT),
        password=password,
        protocol=protocol.strip(),
    )


def format_lockfile(credentials: Credentials) -> str:
    """Sérialise des identifiants au format lockfile (inverse de parse_lockfile)."""
    return ":".join([
        credentials.process_name,
        str(credentials.process_id),
        str(credentials.port),
        credentials.password,
        credentials.protocol,
    ])


def read_lockfile(path: str) -> Credentials:
    """
    Lit et analyse un lockfile sur disque.

    Raises:
        LockfileFormatError: contenu invalide
        OSError: fichier absent ou illisible
    """
    with open(path, "r", encoding="utf-8") as f:
        return parse_lockfile(f.read())


# ───────────────────────────────────────────────────────────────────────────
# LIGNE DE COMMANDE
# ───────────────────────────────────────────────────────────────────────────

def _leading_pid(commandline: str) -> int:
    """PID en tête de ligne (format de sortie de ps), 0 si absent."""
    parts = commandline.split()
    if parts and _DIGITS_RE.fullmatch(parts[0]):
        pid = int(parts[0])
        if pid <= _MAX_PID:
            return pid
    return 0


def extract_credentials(commandline: str, process_id: Optional[int] = None) -> Credentials:
    """
    Extrait port et jeton depuis la ligne de commande de LeagueClientUx.

    Args:
        commandline: Ligne de commande complète (bruit de préfixe toléré)
        process_id: PID connu; sinon lu en tête de ligne si possible, ou 0

    Returns:
        Credentials (protocole toujours https)

    Raises:
        CredentialNotFound: --app-port ou --remoting-auth-token absent
    """
    port_match = _PORT_RE.search(commandline)
    if not port_match:
        raise CredentialNotFound("--app-port absent de la ligne de commande")
    port = int(port_match.group(1))
    if port > _MAX_PORT:
        raise CredentialNotFound(f"Port invalide dans la ligne de commande: {port}")

    token_match = _TOKEN_RE.search(commandline)
    if not token_match:
        raise CredentialNotFound("--remoting-auth-token absent de la ligne de commande")

    if process_id is None:
        process_id = _leading_pid(commandline)

    return Credentials(
        process_name=LCU_PROCESS_NAME,
        process_id=process_id,
        port=port,
        password=token_match.group(1),
        protocol=LCU_PROTOCOL,
    )


# ───────────────────────────────────────────────────────────────────────────
# SOURCES PAR PLATEFORME
# ───────────────────────────────────────────────────────────────────────────

class CredentialSource:
    """
    Source d'identifiants propre à une plateforme.

    Les sous-classes fournissent les emplacements de lockfile et les noms
    du processus client à rechercher.
    """

    name: str = "generic"
    process_names: Tuple[str, ...] = ("LeagueClientUx", "LeagueClientUx.exe")

    def lockfile_paths(self) -> List[str]:
        return []

    def find_client_process(self) -> Optional[Tuple[str, int]]:
        """
        Cherche le processus client parmi les processus de la machine.

        Returns:
            (ligne de commande, PID) ou None si le client n'est pas lancé
        """
        wanted = {n.lower() for n in self.process_names}
        for proc in psutil.process_iter(["pid", "name", "cmdline"]):
            try:
                info = proc.info
                name = (info.get("name") or "").lower()
                if name not in wanted:
                    continue
                cmdline = info.get("cmdline") or proc.cmdline()
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
            if not cmdline:
                continue
            return " ".join(cmdline), int(info.get("pid") or 0)
        return None


class WindowsCredentialSource(CredentialSource):
    name = "windows"
    process_names = ("LeagueClientUx.exe",)

    def lockfile_paths(self) -> List[str]:
        paths = []
        for env_name in WINDOWS_LOCKFILE_ENV_ROOTS:
            root = os.getenv(env_name)
            if root:
                paths.append(os.path.join(root, LOCKFILE_RELATIVE))
        paths.append(WINDOWS_LOCKFILE_DEFAULT)
        return paths


class MacCredentialSource(CredentialSource):
    name = "macos"
    process_names = ("LeagueClientUx",)

    def lockfile_paths(self) -> List[str]:
        return [os.path.expanduser(p) for p in MAC_LOCKFILE_PATHS]


class LinuxCredentialSource(CredentialSource):
    # Client lancé via Wine: le nom du processus garde son extension .exe
    name = "linux"
    process_names = ("LeagueClientUx", "LeagueClientUx.exe")

    def lockfile_paths(self) -> List[str]:
        return [os.path.expanduser(p) for p in LINUX_LOCKFILE_PATHS]


def default_credential_source(platform: Optional[str] = None) -> CredentialSource:
    """Choisit la source adaptée à la plateforme courante (une seule fois au démarrage)."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsCredentialSource()
    if platform == "darwin":
        return MacCredentialSource()
    return LinuxCredentialSource()


# ───────────────────────────────────────────────────────────────────────────
# RESOLVER
# ───────────────────────────────────────────────────────────────────────────

class CredentialResolver:
    """Résout les identifiants: lockfile d'abord, ligne de commande ensuite."""

    def __init__(
        self,
        source: Optional[CredentialSource] = None,
        extra_lockfiles: Iterable[str] = ()
    ):
        """
        Args:
            source: Source plateforme (détectée automatiquement si None)
            extra_lockfiles: Chemins de lockfile essayés avant ceux de la plateforme
        """
        self.source = source or default_credential_source()
        self.extra_lockfiles = [p for p in extra_lockfiles if p]

    def candidate_lockfiles(self) -> List[str]:
        return self.extra_lockfiles + self.source.lockfile_paths()

    def _from_lockfiles(self) -> Optional[Credentials]:
        for path in self.candidate_lockfiles():
            if not os.path.isfile(path):
                continue
            try:
                creds = read_lockfile(path)
            except (OSError, UnicodeDecodeError, LockfileFormatError) as e:
                logging.debug(f"[Lockfile] Ignoré {path}: {e}")
                continue
            logging.debug(f"[Lockfile] Identifiants lus depuis {path}")
            return creds
        return None

    def _from_process(self) -> Optional[Credentials]:
        found = self.source.find_client_process()
        if not found:
            return None
        commandline, pid = found
        try:
            return extract_credentials(commandline, process_id=pid)
        except CredentialNotFound as e:
            logging.debug(f"[Lockfile] Processus client trouvé mais {e}")
            return None

    def resolve(self) -> Credentials:
        """
        Découvre les identifiants du client LoL.

        Raises:
            CredentialNotFound: client non lancé (cas normal, pas une erreur)
        """
        creds = self._from_lockfiles()
        if creds is None:
            creds = self._from_process()
        if creds is None:
            raise CredentialNotFound()
        logging.debug(f"[Lockfile] Client LoL détecté sur le port {creds.port} (PID {creds.process_id})")
        return creds
