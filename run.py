"""Minimal CLI loop for the interactive-fiction engine.

Usage (example):
    python run.py
Then type commands:
    look
    go north
    search for traps
    quests
"""
from __future__ import annotations
import logging
import sys
import threading

from config import CLI_TICK_INTERVAL_SECONDS, LOG_LEVEL
from game.bootstrap import ASSETS_DIR, create_session
from ifengine.core.errors import PersistenceError
from ifengine.core.score import load_score_table

PROMPT = "> "

# Comandi gestiti dal CLI e non dall'interprete
SESSION_COMMANDS = {
    "save": "save [slot] - save the game (default: quicksave)",
    "load": "load [slot] - load a saved game (default: quicksave)",
    "restart": "restart - start over",
    "quit": "quit - leave the game",
}


def _print_result(result) -> None:
    for message in result.messages:
        if message.type == "error":
            print(f"[!] {message.text}")
        else:
            print(message.text)


def _handle_session_command(session, cmd: str) -> bool:
    parts = cmd.split(maxsplit=1)
    verb = parts[0]
    slot = parts[1] if len(parts) > 1 else "quicksave"
    if verb == "save":
        try:
            session.save(slot)
            print(f"Game saved to slot '{slot}'.")
        except PersistenceError as e:
            print(f"[!] Save failed: {e}")
        return True
    if verb == "load":
        try:
            if session.load(slot):
                print(f"Loaded slot '{slot}'.")
                _print_result(session.submit_command("look"))
            else:
                print(f"[!] No save named '{slot}'.")
        except PersistenceError as e:
            print(f"[!] Load failed: {e}")
        return True
    if verb == "restart":
        session.reset()
        _print_result(session.start())
        return True
    return False


def main() -> int:
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.WARNING),
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        # Forza l'output UTF-8 su Windows
        sys.stdout.reconfigure(encoding="utf-8")
    except AttributeError:
        pass

    session = create_session()
    score_table = load_score_table(str(ASSETS_DIR / "score_events.json"))

    def _on_score(event_id: str) -> None:
        points = score_table.get(event_id)
        if points:
            print(f"  ({event_id}: {points:+d})")

    session.on_score_event(_on_score)

    lock = threading.Lock()
    stop_event = threading.Event()

    def _bg_ticker() -> None:
        while not stop_event.is_set():
            with lock:
                results = session.tick()
            if results:
                print()
                for result in results:
                    _print_result(result)
                print(PROMPT, end="", flush=True)
            stop_event.wait(CLI_TICK_INTERVAL_SECONDS)

    print("-- New game started. Type 'help' for the list of commands. --")
    with lock:
        _print_result(session.start())

    ticker = threading.Thread(target=_bg_ticker, name="session-ticker", daemon=True)
    ticker.start()
    try:
        while True:
            try:
                cmd = input(PROMPT).strip()
            except EOFError:
                break
            if not cmd:
                continue
            if cmd.lower() in {"quit", "exit"}:
                print("Goodbye.")
                break
            with lock:
                if _handle_session_command(session, cmd.lower()):
                    continue
                result = session.submit_command(cmd)
            _print_result(result)
            if cmd.lower() == "help":
                for line in SESSION_COMMANDS.values():
                    print(f"  {line}")
            if session.state.player.health <= 0:
                print("You have died. Type 'restart' to try again or 'quit' to leave.")
    finally:
        stop_event.set()
        ticker.join(timeout=1.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
