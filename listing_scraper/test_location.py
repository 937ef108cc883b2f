"""Tests for the delivery location flow and popup handling."""

import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .conftest import FakePage
from .location import dismiss_popups, set_location
from .sites import SITE_CONFIGS

ZEPTO = SITE_CONFIGS['zepto']
BUTTON = ZEPTO.location_button_selectors[0]


def location_page(**kwargs):
    kwargs.setdefault('counts', {
        BUTTON: 1,
        ZEPTO.location_input_selector: 1,
        ZEPTO.location_modal_selector: 1,
    })
    kwargs.setdefault('visible', {ZEPTO.location_modal_selector, ZEPTO.location_result_selector})
    kwargs.setdefault('click_effects', {ZEPTO.location_result_selector: {ZEPTO.location_modal_selector: 0}})
    return FakePage(**kwargs)


def run_set_location(page, site=ZEPTO):
    return asyncio.run(set_location(page, site, '411001', pause_seconds=0))


def test_sets_location():
    page = location_page()

    assert run_set_location(page)
    assert page.typed == [(ZEPTO.location_input_selector, '411001')]
    assert page.clicks == [(BUTTON, False), (ZEPTO.location_result_selector, True)]


def test_tries_next_button_selector():
    second = ZEPTO.location_button_selectors[1]
    page = location_page(counts={
        BUTTON: 0,
        second: 1,
        ZEPTO.location_input_selector: 1,
        ZEPTO.location_modal_selector: 1,
    })

    assert run_set_location(page)
    assert page.clicks[0] == (second, False)


def test_detached_button_falls_through_to_next_selector():
    second = ZEPTO.location_button_selectors[1]
    page = location_page(
        counts={
            BUTTON: 1,
            second: 1,
            ZEPTO.location_input_selector: 1,
            ZEPTO.location_modal_selector: 1,
        },
        click_errors={BUTTON: PlaywrightError("Element is not attached to the DOM")},
    )

    assert run_set_location(page)
    assert page.clicks[0] == (second, False)


def test_missing_button():
    page = location_page(counts={selector: 0 for selector in ZEPTO.location_button_selectors})

    assert not run_set_location(page)
    assert page.typed == []


def test_modal_never_opens():
    page = location_page(visible=set())

    assert not run_set_location(page)
    assert page.typed == []


def test_no_suggestions():
    page = location_page(visible={ZEPTO.location_modal_selector})

    assert not run_set_location(page)
    assert len(page.clicks) == 1


def test_modal_still_open():
    page = location_page(click_effects={})

    assert not run_set_location(page)


def test_interaction_error_is_reported_as_failure():
    page = location_page(errors={'type_text': PlaywrightError("Element is not attached to the DOM")})

    assert not run_set_location(page)


def test_site_without_location_flow():
    page = FakePage()

    assert not run_set_location(page, SITE_CONFIGS['blinkit'])
    assert page.calls == []


def test_dismiss_popups():
    selector = SITE_CONFIGS['blinkit'].popup_close_selectors[1]
    page = FakePage(counts={sel: 0 for sel in SITE_CONFIGS['blinkit'].popup_close_selectors})
    page.counts[selector] = 1

    assert asyncio.run(dismiss_popups(page, SITE_CONFIGS['blinkit']))
    assert page.clicks == [(selector, False)]


def test_dismiss_popups_nothing_to_close():
    page = FakePage(counts={'button[aria-label*="Close"]': 0})

    assert not asyncio.run(dismiss_popups(page, ZEPTO))


def test_dismiss_popups_click_timeout():
    page = FakePage(
        counts={'button[aria-label*="Close"]': 1},
        errors={'click': PlaywrightTimeoutError("Timeout 1500ms exceeded")},
    )

    assert not asyncio.run(dismiss_popups(page, ZEPTO))
