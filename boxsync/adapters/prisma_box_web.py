"""Prisma Box web UI adapter implementation backed by Playwright."""

from __future__ import annotations

import logging
from typing import Any, Final

from playwright.sync_api import Browser, Error as PlaywrightError, Page, Playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from boxsync.domain import BoxRecord, UnitDefinition, domain_box_parse_rows

from .errors import (
    AdapterAuthenticationError,
    AdapterConnectionError,
    AdapterPageError,
    AdapterSelectionError,
    AdapterTimeoutError,
)
from .interfaces import ExtractionAdapterPort

logger = logging.getLogger(__name__)

_ROW_SNAPSHOT_SCRIPT: Final[str] = """
() => Array.from(document.querySelectorAll('table tbody tr')).map((row) => {
    const cells = Array.from(row.querySelectorAll('td'));
    return {
        cells: cells.map((cell) => (cell.innerText || cell.textContent || '').trim()),
        links: cells.map((cell) => {
            const link = cell.querySelector('a');
            return link ? (link.textContent || '').trim() : '';
        }),
    };
})
"""


class PrismaBoxWebAdapter(ExtractionAdapterPort):
    """Adapter driving the Prisma Box back-office UI through one browser page."""

    _USERNAME_SELECTOR: Final[str] = 'input[name="username"]'
    _PASSWORD_SELECTOR: Final[str] = 'input[name="password"]'
    _SUBMIT_SELECTOR: Final[str] = 'button[type="submit"]:has-text("Entrar")'
    _SESSION_MARKER_SELECTOR: Final[str] = 'a[href*="/box"]'
    _PERMISSION_MODAL_DECLINE_SELECTOR: Final[str] = 'button:has-text("NÃO")'
    _FILTER_TOGGLE_SELECTOR: Final[str] = 'a[href="#"]:has-text("Filtros")'
    _FILTER_STATUS_SELECTOR: Final[str] = "select"
    _FILTER_STATUS_VALUE: Final[str] = "Disponível"
    _FILTER_APPLY_SELECTOR: Final[str] = "#btn-apply-filter"
    _NEXT_PAGE_SELECTOR: Final[str] = (
        '.pagination li:not(.disabled) a:has-text("Próximo"), '
        '.pagination li.next:not(.disabled) a, '
        'a[rel="next"]'
    )

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        headless: bool = True,
        slow_mo_ms: int = 0,
        unit_select_selector: str | None = None,
        navigation_timeout_ms: float = 30000,
        element_timeout_ms: float = 10000,
    ):
        """Initialize the web adapter.

        Args:
            base_url: Base URL of the remote service.
            username: Login user.
            password: Login password.
            headless: Whether the browser runs headless.
            slow_mo_ms: Delay between browser actions in milliseconds.
            unit_select_selector: Optional `<select>` selector switching the active unit.
            navigation_timeout_ms: Default navigation timeout.
            element_timeout_ms: Timeout of element waits during login and filtering.

        Raises:
            ValueError: Raised when required config values are blank.
        """

        normalized_base_url = base_url.strip().rstrip("/")
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")

        self._base_url = normalized_base_url
        self._username = username
        self._password = password
        self._headless = headless
        self._slow_mo_ms = slow_mo_ms
        self._unit_select_selector = unit_select_selector
        self._navigation_timeout_ms = navigation_timeout_ms
        self._element_timeout_ms = element_timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

    def adapter_source_name(self) -> str:
        """Return stable adapter source label.

        Returns:
            str: Source identifier.
        """

        return "prisma_box_web"

    def adapter_open(self) -> None:
        """Launch the browser and open one page.

        Raises:
            AdapterConnectionError: Raised when the browser cannot be launched.
        """

        if self._page is not None:
            return
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self._headless, slow_mo=self._slow_mo_ms)
            self._page = self._browser.new_page(viewport={"width": 1920, "height": 1080})
            self._page.set_default_timeout(self._navigation_timeout_ms)
        except PlaywrightError as error:
            self.adapter_close()
            raise AdapterConnectionError("browser launch failed", stage="open") from error

    def adapter_close(self) -> None:
        """Close the browser and stop Playwright."""

        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError:
                logger.warning("Browser close failed", exc_info=True)
        if self._playwright is not None:
            self._playwright.stop()
        self._page = None
        self._browser = None
        self._playwright = None

    def adapter_is_on_login_surface(self) -> bool:
        """Return whether the page currently shows the login route.

        Returns:
            bool: True when the URL points at `/login` or no page is loaded yet.
        """

        page = self._adapter_require_page()
        current_url = page.url or ""
        return current_url in ("", "about:blank") or "/login" in current_url

    def adapter_has_session_marker(self) -> bool:
        """Return whether the post-login navigation link is present.

        Returns:
            bool: True when the marker element exists.
        """

        page = self._adapter_require_page()
        try:
            return page.locator(self._SESSION_MARKER_SELECTOR).count() > 0
        except PlaywrightError:
            return False

    def adapter_login(self) -> None:
        """Fill and submit the login form.

        Raises:
            AdapterAuthenticationError: Raised when the form stays on the login route.
            AdapterTimeoutError: Raised when the form elements do not appear in time.
            AdapterConnectionError: Raised for navigation failures.
        """

        if not self._username or not self._password:
            raise AdapterAuthenticationError("credentials are not configured", stage="login")

        page = self._adapter_require_page()
        try:
            page.goto(f"{self._base_url}/login")
            page.wait_for_load_state("networkidle")
            page.wait_for_selector(self._USERNAME_SELECTOR, timeout=self._element_timeout_ms)
            page.fill(self._USERNAME_SELECTOR, self._username)
            page.wait_for_selector(self._PASSWORD_SELECTOR, timeout=self._element_timeout_ms)
            page.fill(self._PASSWORD_SELECTOR, self._password)
            page.wait_for_selector(self._SUBMIT_SELECTOR, timeout=self._element_timeout_ms)
            page.click(self._SUBMIT_SELECTOR)
            page.wait_for_load_state("networkidle")
        except PlaywrightTimeoutError as error:
            raise AdapterTimeoutError("login form did not respond in time", stage="login") from error
        except PlaywrightError as error:
            raise AdapterConnectionError("login navigation failed", stage="login") from error

        if self.adapter_is_on_login_surface():
            raise AdapterAuthenticationError("login was rejected by the remote service", stage="login")
        logger.info("Login completed against %s", self._base_url)

    def adapter_select_unit(self, unit: UnitDefinition) -> None:
        """Open the box listing and switch to the unit's base.

        Args:
            unit: Unit to select.

        Raises:
            AdapterSelectionError: Raised when the listing or unit selector fails.
        """

        page = self._adapter_require_page()
        try:
            page.goto(f"{self._base_url}/box")
            page.wait_for_load_state("networkidle")
            self._adapter_dismiss_permission_modal(page)
            if self._unit_select_selector:
                page.select_option(self._unit_select_selector, label=unit.display_name)
                page.wait_for_load_state("networkidle")
        except PlaywrightError as error:
            raise AdapterSelectionError(f"unit selection failed for {unit.display_name}", stage="select") from error

    def adapter_apply_filters(self) -> None:
        """Restrict the listing to available boxes.

        Raises:
            AdapterSelectionError: Raised when the filter panel cannot be used.
        """

        page = self._adapter_require_page()
        try:
            page.click(self._FILTER_TOGGLE_SELECTOR, timeout=self._element_timeout_ms)
            page.select_option(self._FILTER_STATUS_SELECTOR, self._FILTER_STATUS_VALUE)
            page.click(self._FILTER_APPLY_SELECTOR, timeout=self._element_timeout_ms)
            page.wait_for_load_state("networkidle")
        except PlaywrightError as error:
            raise AdapterSelectionError("availability filter could not be applied", stage="filter") from error

    def adapter_extract_page(self, unit: UnitDefinition) -> list[BoxRecord]:
        """Read all table rows of the current page.

        Args:
            unit: Unit being processed.

        Returns:
            list[BoxRecord]: Parsed records of the page.

        Raises:
            AdapterPageError: Raised when the table cannot be read.
        """

        page = self._adapter_require_page()
        try:
            raw_rows: list[dict[str, Any]] = page.evaluate(_ROW_SNAPSHOT_SCRIPT)
        except PlaywrightError as error:
            raise AdapterPageError("table rows could not be read", stage="extract") from error
        records = domain_box_parse_rows(raw_rows, locality=unit.display_name)
        logger.debug("Parsed %s of %s rows for %s", len(records), len(raw_rows), unit.display_name)
        return records

    def adapter_has_next_page(self) -> bool:
        """Return whether an enabled next-page control exists.

        Returns:
            bool: True when another page can be requested.
        """

        page = self._adapter_require_page()
        try:
            return page.locator(self._NEXT_PAGE_SELECTOR).count() > 0
        except PlaywrightError:
            return False

    def adapter_goto_next_page(self) -> None:
        """Click the next-page control and wait for the table to reload.

        Raises:
            AdapterPageError: Raised when navigation fails.
        """

        page = self._adapter_require_page()
        try:
            page.locator(self._NEXT_PAGE_SELECTOR).first.click()
            page.wait_for_load_state("networkidle")
        except PlaywrightError as error:
            raise AdapterPageError("next page navigation failed", stage="paginate") from error

    def _adapter_dismiss_permission_modal(self, page: Page) -> None:
        """Decline the optional notification permission modal when it shows up."""

        try:
            page.wait_for_selector(self._PERMISSION_MODAL_DECLINE_SELECTOR, timeout=3000)
        except PlaywrightTimeoutError:
            return
        page.click(self._PERMISSION_MODAL_DECLINE_SELECTOR)

    def _adapter_require_page(self) -> Page:
        if self._page is None:
            raise AdapterConnectionError("adapter session is not open", stage="session")
        return self._page
