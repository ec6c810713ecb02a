"""
Conditional installer — run an action only when its precondition says
the work is not already done.

"Already done" is whatever the precondition probes (a directory, a
resolvable command, an installed package). Content and version are
never verified.
"""

from __future__ import annotations

import logging
from typing import Callable

from vmsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)

ALREADY_SATISFIED = "already satisfied"


def check_precondition(precondition: Callable[[], bool] | None, name: str = "") -> bool:
    """Evaluate a precondition; a probe that raises counts as unsatisfied."""
    if precondition is None:
        return False
    try:
        return bool(precondition())
    except Exception as e:
        logger.warning("Precondition for '%s' raised, treating as not satisfied: %s", name, e)
        return False


def ensure(
    precondition: Callable[[], bool] | None,
    action: Callable[[], Receipt],
    *,
    name: str = "",
) -> Receipt:
    """Skip *action* if *precondition* holds, otherwise run it.

    Returns:
        A ``skipped`` receipt with "already satisfied", or the action's
        own receipt unchanged.
    """
    if check_precondition(precondition, name):
        logger.info("%s: %s", name or "step", ALREADY_SATISFIED)
        return Receipt.skip(adapter="precondition", action_id=name, reason=ALREADY_SATISFIED)
    return action()
