"""Scoped bypass of authorization checks."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class SecurityContext:
    """Tracks whether authorization checks are currently enforced.

    Scopes nest; checks are enforced again once the outermost scope exits,
    whether it exits normally or through an exception.
    """

    def __init__(self) -> None:
        self._bypass_depth = 0

    @property
    def authorization_checks_disabled(self) -> bool:
        return self._bypass_depth > 0

    @contextmanager
    def without_authorization_checks(self) -> Iterator[None]:
        self._bypass_depth += 1
        logger.debug(f"Authorization checks disabled (depth {self._bypass_depth})")
        try:
            yield
        finally:
            self._bypass_depth -= 1
            logger.debug(f"Authorization checks restored (depth {self._bypass_depth})")
