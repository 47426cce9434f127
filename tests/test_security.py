"""Tests for the security context."""

import pytest

from translation_exchange.protocols import SecurityContextProtocol
from translation_exchange.security import SecurityContext


class TestSecurityContext:
    """Tests for SecurityContext."""

    def test_checks_enforced_by_default(self) -> None:
        """A new context enforces authorization checks."""
        assert not SecurityContext().authorization_checks_disabled

    def test_nested_scopes(self) -> None:
        """Checks come back only when the outermost scope exits."""
        security = SecurityContext()

        with security.without_authorization_checks():
            with security.without_authorization_checks():
                assert security.authorization_checks_disabled
            assert security.authorization_checks_disabled

        assert not security.authorization_checks_disabled

    def test_restored_on_exception(self) -> None:
        """An exception inside the scope still restores the checks."""
        security = SecurityContext()

        with pytest.raises(ValueError):
            with security.without_authorization_checks():
                raise ValueError("boom")

        assert not security.authorization_checks_disabled

    def test_satisfies_protocol(self) -> None:
        assert isinstance(SecurityContext(), SecurityContextProtocol)
