"""Typed interfaces for adapter-layer responsibilities."""

from __future__ import annotations

from typing import Protocol

from boxsync.domain import BoxRecord, UnitDefinition


class ExtractionAdapterPort(Protocol):
    """Port definition for authenticating against and paging through the remote service."""

    def adapter_source_name(self) -> str:
        """Return adapter source identifier for diagnostics.

        Returns:
            str: Human-readable upstream source identifier.
        """

    def adapter_open(self) -> None:
        """Acquire the underlying browsing session.

        Raises:
            AdapterConnectionError: Raised when the session cannot be created.
        """

    def adapter_close(self) -> None:
        """Release the underlying browsing session; safe to call repeatedly."""

    def adapter_is_on_login_surface(self) -> bool:
        """Return whether the current location is the login surface.

        Returns:
            bool: True when the session is looking at the login page.
        """

    def adapter_has_session_marker(self) -> bool:
        """Return whether a post-login-only marker is present on the current page.

        Returns:
            bool: True when the marker is visible.
        """

    def adapter_login(self) -> None:
        """Run the authentication sequence.

        Raises:
            AdapterAuthenticationError: Raised when authentication fails.
            AdapterTimeoutError: Raised when the login form does not respond in time.
        """

    def adapter_select_unit(self, unit: UnitDefinition) -> None:
        """Switch the session to the unit's target context.

        Args:
            unit: Unit to select.

        Raises:
            AdapterSelectionError: Raised when the unit cannot be selected.
        """

    def adapter_apply_filters(self) -> None:
        """Apply the listing filters required by the extraction.

        Raises:
            AdapterSelectionError: Raised when filters cannot be applied.
        """

    def adapter_extract_page(self, unit: UnitDefinition) -> list[BoxRecord]:
        """Extract the records shown on the current page.

        Args:
            unit: Unit being processed, used as locality key.

        Returns:
            list[BoxRecord]: Records of the current page.

        Raises:
            AdapterPageError: Raised when the page cannot be read.
        """

    def adapter_has_next_page(self) -> bool:
        """Return whether a further page of records exists.

        Returns:
            bool: True when the pagination control allows moving forward.
        """

    def adapter_goto_next_page(self) -> None:
        """Navigate to the next page of records.

        Raises:
            AdapterPageError: Raised when navigation fails.
        """
