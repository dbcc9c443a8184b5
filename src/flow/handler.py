from __future__ import annotations

import logging
import os
import re
import sys
from typing import Any, Dict, Iterable, List, Optional, TextIO

from state.manager import AppStateManager
from state.store import KeyValueStore, StoreError, store_from_env

from .screens import RootCoordinator, UnknownActionError


ENV_LOG_LEVEL = "APPFLOW_LOG_LEVEL"

logger = logging.getLogger(__name__)

# Slash commands are shorthands for button labels
_COMMANDS: Dict[str, str] = {
    "finish": "Finish Onboarding",
    "pay": "Pay",
    "reset": "Reset Onboarding",
    "expire": "Expire Payment",
}

_COMMAND_RE = re.compile(r"^\s*/([a-z]+)\s*$", re.IGNORECASE)
_SHOW_RE = re.compile(r"^\s*/show\s*$", re.IGNORECASE)
_QUIT_RE = re.compile(r"^\s*/(quit|exit)\s*$", re.IGNORECASE)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(name)
    return v if v not in (None, "") else default


def _log_level(name: Optional[str]) -> int:
    """Resolve a level name such as "debug"; unknown names fall back to WARNING."""
    level = logging.getLevelName((name or "WARNING").upper())
    return level if isinstance(level, int) else logging.WARNING


def _parse_label(text: str) -> Optional[str]:
    """Return the button label a line of input refers to, or None for /show and blanks.

    Slash commands are translated through `_COMMANDS`; any other non-empty
    text is taken as a button label verbatim. Unknown slash commands come
    back unchanged so the coordinator rejects them.
    """
    if not text or not text.strip() or _SHOW_RE.match(text):
        return None
    m = _COMMAND_RE.match(text)
    if m:
        return _COMMANDS.get(m.group(1).lower(), text.strip())
    return text.strip()


def _apply(coordinator: RootCoordinator, text: str) -> bool:
    """Apply one line of input. Returns True if a button was pressed."""
    label = _parse_label(text)
    if label is None:
        return False
    coordinator.press(label)
    return True


def run_once(commands: Iterable[str], *, store: Optional[KeyValueStore] = None) -> Dict[str, Any]:
    """
    Apply a batch of commands against the persisted state.

    - Builds the store from env unless one is injected.
    - Loads the manager, then feeds each command to the root coordinator.
    - Commands not available on the visible screen are counted as rejected.

    Returns: {"ok": True, "applied": N, "rejected": M, "screen": title, "state": {...}}.
    """
    kv = store if store is not None else store_from_env()
    manager = AppStateManager(kv)
    coordinator = RootCoordinator(manager)

    applied = 0
    rejected = 0
    try:
        for text in commands:
            try:
                if _apply(coordinator, text):
                    applied += 1
            except UnknownActionError as e:
                logger.info("Rejected command %r: %s", text, e)
                rejected += 1
    finally:
        coordinator.close()

    return {
        "ok": True,
        "applied": applied,
        "rejected": rejected,
        "screen": coordinator.current_screen().title,
        "state": manager.snapshot().as_dict(),
    }


def repl(
    manager: AppStateManager,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> None:
    """Interactive console: prints the visible screen, reads one command per line."""
    stdin = stdin or sys.stdin
    out = stdout or sys.stdout

    def show(text: str) -> None:
        out.write(text + "\n")
        out.flush()

    coordinator = RootCoordinator(manager, on_render=show)
    show(coordinator.render())
    try:
        for line in stdin:
            if _QUIT_RE.match(line):
                break
            if _SHOW_RE.match(line):
                show(coordinator.render())
                continue
            try:
                _apply(coordinator, line)
            except UnknownActionError as e:
                show(f"Unavailable here: {e}")
    finally:
        coordinator.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point.

    With arguments, applies them as a batch and prints the resulting screen;
    without, starts the interactive loop.

    Environment:
    - APPFLOW_STATE_PATH (default: .appflow/state.json), APPFLOW_FERNET_KEY
    - APPFLOW_LOG_LEVEL (default: WARNING)
    """
    args = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=_log_level(_getenv(ENV_LOG_LEVEL)),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        store = store_from_env()
    except RuntimeError as e:
        sys.stderr.write(f"{e}\n")
        return 2

    try:
        if args:
            out = run_once(args, store=store)
            sys.stdout.write(f"{out['screen']} {out['state']} applied={out['applied']} rejected={out['rejected']}\n")
            return 0 if out["rejected"] == 0 else 1

        repl(AppStateManager(store))
    except StoreError as e:
        sys.stderr.write(f"{e}\n")
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
