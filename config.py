"""Central configuration for the interactive-fiction engine.

Tunable parameters (trap seeding, flag sweeps, graph validation, saves,
CLI ticking) live here. Every value has a sensible default and can be
overridden through ``IF_*`` environment variables.
"""
from __future__ import annotations
import os
from typing import List, Optional


def _get_int_env(name: str, default: int, minval: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw)
        if minval is not None and v < minval:
            return default
        return v
    except ValueError:
        return default


def _get_float_env(name: str, default: float, minval: float | None = None, maxval: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = float(raw)
        if minval is not None and v < minval:
            return default
        if maxval is not None and v > maxval:
            return default
        return v
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in {"1", "true", "yes", "on"}


def _get_list_env(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    items = [part.strip() for part in raw.split(",")]
    return [i for i in items if i]


# ---------------- Logging ----------------
LOG_LEVEL: str = os.getenv("IF_LOG_LEVEL", "WARNING").strip().upper()


# ---------------- Sessione ----------------
# Stanza di partenza per una nuova partita
START_ROOM: str = os.getenv("IF_START_ROOM", "introstart").strip()

# Nome giocatore di default
DEFAULT_PLAYER_NAME: str = os.getenv("IF_PLAYER_NAME", "Player").strip()

# Comandi di debug (trappole/flag) abilitati?
DEBUG_MODE: bool = _get_bool_env("IF_DEBUG", False)


def get_rng_seed() -> Optional[int]:
    """Seed for the session RNG. Var: IF_RNG_SEED (unset means nondeterministic)."""
    raw = os.getenv("IF_RNG_SEED")
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


# ---------------- Trappole ----------------
TRAP_PROBABILITY: float = _get_float_env("IF_TRAP_PROBABILITY", 0.3, minval=0.0, maxval=1.0)
TRAP_DENSITY: float = _get_float_env("IF_TRAP_DENSITY", 1.0, minval=0.0, maxval=1.0)
TRAP_MAX_COUNT: int = _get_int_env("IF_TRAP_MAX_COUNT", 5, minval=0)
TRAP_SAFE_ROOMS: List[str] = _get_list_env("IF_TRAP_SAFE_ROOMS", ["intro", "safe_zone", "shop", "inn"])
TRAP_AUTO_DISARM_CHANCE: float = _get_float_env("IF_TRAP_AUTO_DISARM_CHANCE", 0.3, minval=0.0, maxval=1.0)


# ---------------- Flag ----------------
# Secondi tra due sweep periodici dei flag scaduti
FLAG_SWEEP_INTERVAL_SECONDS: float = _get_float_env("IF_FLAG_SWEEP_SEC", 60.0, minval=1.0)

# Massimo numero di trigger registrabili per singolo flag
MAX_EVENT_TRIGGERS: int = _get_int_env("IF_MAX_EVENT_TRIGGERS", 50, minval=1)


# ---------------- Miniquest ----------------
# Tentativi massimi per miniquest (0 = illimitati, salvo override nel contenuto)
QUEST_ATTEMPT_CAP: int = _get_int_env("IF_QUEST_ATTEMPT_CAP", 0, minval=0)


# ---------------- Validazione grafo ----------------
GRAPH_START_ROOMS: List[str] = _get_list_env("IF_GRAPH_START_ROOMS", ["controlnexus", "crossing", "introstart"])
GRAPH_HUB_THRESHOLD: int = _get_int_env("IF_GRAPH_HUB_THRESHOLD", 4, minval=1)
GRAPH_MAX_CYCLES: int = _get_int_env("IF_GRAPH_MAX_CYCLES", 1000, minval=1)


# ---------------- Salvataggi ----------------
SAVES_DIR: str = os.getenv("IF_SAVES_DIR", "data/saves")
SAVE_MAX_BACKUPS: int = _get_int_env("IF_SAVE_MAX_BACKUPS", 3, minval=0)
SAVE_RETRY_LIMIT: int = _get_int_env("IF_SAVE_RETRY_LIMIT", 1, minval=0)


# ---------------- CLI ----------------
# Intervallo di tick (secondi) del thread di background nel CLI
CLI_TICK_INTERVAL_SECONDS: float = _get_float_env("IF_TICK_INTERVAL_SEC", 0.2, minval=0.05)


__all__ = [
    "LOG_LEVEL",
    # Sessione
    "START_ROOM", "DEFAULT_PLAYER_NAME", "DEBUG_MODE", "get_rng_seed",
    # Trappole
    "TRAP_PROBABILITY", "TRAP_DENSITY", "TRAP_MAX_COUNT", "TRAP_SAFE_ROOMS", "TRAP_AUTO_DISARM_CHANCE",
    # Flag
    "FLAG_SWEEP_INTERVAL_SECONDS", "MAX_EVENT_TRIGGERS",
    # Miniquest
    "QUEST_ATTEMPT_CAP",
    # Grafo
    "GRAPH_START_ROOMS", "GRAPH_HUB_THRESHOLD", "GRAPH_MAX_CYCLES",
    # Salvataggi
    "SAVES_DIR", "SAVE_MAX_BACKUPS", "SAVE_RETRY_LIMIT",
    # CLI
    "CLI_TICK_INTERVAL_SECONDS",
]
