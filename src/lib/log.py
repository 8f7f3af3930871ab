"""
Verbosity-gated logging on top of loguru

LOG() prints only when the verbosity of the connected ProgramState allows
it, so library code never has to be handed a verbosity flag:

    state_connectToLogger(state)          # once, at the top of a stage
    LOG("Compiling 3 pages", level=1)     # shown by default
    LOG("Resolved ./main.ts", level=3)    # shown with -vv
    LOG("No manifest", severity="WARNING")

The state lives in a context variable. Threads that start outside that
context (dev server request threads, the watchdog observer, debounce
timers) fall back to the most recently connected state. Nothing is printed
before any state is connected, which keeps library use and tests quiet.
"""

import sys
from contextvars import ContextVar
from typing import Any, Optional

from loguru import logger

_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)
_fallback_state: Optional[Any] = None

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <7}</level> │ "
    "<cyan>{module}:{function}</cyan>:<cyan>{line}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Make ``state.verbosity`` govern LOG() calls from here on.

    Args:
        state: Any object with an integer ``verbosity`` (normally ProgramState)
    """
    global _fallback_state
    _program_state.set(state)
    _fallback_state = state


def verbosity_get() -> int:
    """Verbosity of the connected state, 0 when none is connected"""
    state = _program_state.get()
    if state is None:
        state = _fallback_state
    return int(getattr(state, 'verbosity', 0) or 0)


def LOG(message: str, level: int = 1, severity: str = "DEBUG", **kwargs: Any) -> None:
    """
    Emit ``message`` if the current verbosity is at least ``level``.

    Args:
        message: Text to log
        level: 1 normal, 2 verbose (-v), 3 debug (-vv)
        severity: loguru level name, e.g. "INFO", "WARNING", "ERROR"
        **kwargs: Passed through to loguru for ``{}`` formatting
    """
    if verbosity_get() >= level:
        logger.opt(depth=1).log(severity, message, **kwargs)
