# src/taskmaster/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import CommandRegistry
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_command(state: AppState, line: str, *, registry: CommandRegistry = command_registry, emit=None) -> str:
    """
    Run one console line and always return something printable.

    Failures never escape: user errors are shown as-is, the rest is logged
    and reported with a generic notice.
    """
    line = line.strip()
    if not line.startswith("/"):
        # Plain text is treated as a new task title.
        line = f"/add {line}"

    try:
        with state.lock:
            reply = registry.handle(state, line, emit=emit)
    except (ValueError, PermissionError) as e:
        logger.info("Command rejected line=%r: %s", line, e)
        return f"Error: {e}"
    except RuntimeError as e:
        logger.info("Command runtime error line=%r: %s", line, e)
        return f"Error: {friendly_llm_error_message(e)}"
    except Exception:
        logger.exception("Command handler crashed line=%r", line)
        return "Something went wrong. Please try again."

    return reply if reply is not None else ""


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (user=%s).", state.user_id)
    _print_ts("[CONSOLE] Type a task title to add it, or use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        _print_ts(run_command(state, user_input, emit=emit))

    logger.info("Console connector finished.")
