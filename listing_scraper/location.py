"""
Delivery location selection and popup handling.

Both flows are best effort: a missing button or a modal that never shows up is
logged and reported as False so the scrape can carry on without a location.
"""

import asyncio
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .page import PageHandle
from .sites import SiteConfig

logger = logging.getLogger(__name__)

BUTTON_CLICK_TIMEOUT_MS = 3000
MODAL_TIMEOUT_MS = 5000
SUGGESTION_TIMEOUT_MS = 5000
TYPE_DELAY_MS = 80
POPUP_CLICK_TIMEOUT_MS = 1500


async def _click_location_button(page: PageHandle, site: SiteConfig) -> bool:
    for selector in site.location_button_selectors:
        try:
            if await page.count(selector) == 0:
                continue
            await page.click(selector, BUTTON_CLICK_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug(f"Location button {selector} not clickable: {e}")
            continue
        logger.info(f"Clicked location button: {selector}")
        return True
    return False


async def set_location(
    page: PageHandle,
    site: SiteConfig,
    pincode: str,
    pause_seconds: float = 0.5
) -> bool:
    """
    Set the delivery location through the site's location picker.

    Opens the picker, types the pincode, picks the first suggestion and checks
    that the modal closed.

    Args:
        page: Page showing the site
        site: Site profile with the location selectors
        pincode: Postal code to type
        pause_seconds: Base pause between UI steps

    Returns:
        True if the location was set, False otherwise
    """
    if not site.has_location_flow:
        logger.info(f"{site.platform_name} has no location picker, skipping pincode setup")
        return False

    logger.info(f"Setting location to pincode: {pincode}")

    try:
        await page.wait_for_load_state('domcontentloaded')
        await asyncio.sleep(pause_seconds)

        if not await _click_location_button(page, site):
            logger.warning("Location button not found")
            return False

        await asyncio.sleep(pause_seconds)

        try:
            await page.wait_for_selector(site.location_modal_selector, MODAL_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.warning("Location modal not detected")
            return False

        if await page.count(site.location_input_selector) == 0:
            logger.warning("Search input not found in location modal")
            return False

        await page.clear_input(site.location_input_selector)
        await page.type_text(site.location_input_selector, pincode, delay_ms=TYPE_DELAY_MS)
        await asyncio.sleep(pause_seconds * 2)

        try:
            await page.wait_for_selector(site.location_result_selector, SUGGESTION_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.warning("No address results appeared")
            return False

        await page.click(site.location_result_selector, BUTTON_CLICK_TIMEOUT_MS, force=True)
        await asyncio.sleep(pause_seconds * 2)

        if await page.count(site.location_modal_selector) == 0:
            logger.info("Location set successfully")
            return True

        logger.warning("Location modal still open after choosing an address")
        return False

    except PlaywrightError as e:
        logger.warning(f"Error setting pincode: {e}")
        return False


async def dismiss_popups(page: PageHandle, site: SiteConfig) -> bool:
    """Close the first visible popup, if any. Returns True when one was closed."""
    for selector in site.popup_close_selectors:
        try:
            if await page.count(selector) == 0:
                continue
            await page.click(selector, POPUP_CLICK_TIMEOUT_MS)
        except PlaywrightError as e:
            logger.debug(f"Popup close button {selector} not usable: {e}")
            continue
        logger.info("Closed popup")
        return True
    return False
