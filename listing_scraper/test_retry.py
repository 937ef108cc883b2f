"""Tests for the retry shell around scrolling and extraction."""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from .conftest import FakePage
from .extractor import ExtractionResult
from .models import ProductRecord
from .retry import collect_listing, wait_for_results


def scripted_extractor(sizes):
    """Extractor returning len(sizes) results of the given sizes, in order."""
    remaining = list(sizes)
    seen = []

    def extract(html, site, base_url=None):
        size = remaining.pop(0)
        seen.append(size)
        products = [ProductRecord(product_id=f"p-{i}", name=f"Item {i}") for i in range(size)]
        return ExtractionResult(products=products, delivery_time='12 mins')

    extract.seen = seen
    return extract


def results_page(**kwargs):
    return FakePage(visible={'a.card'}, counts={'a.card': 10}, signals=[400], **kwargs)


def test_reloads_until_minimum_reached(test_site, fast_options):
    page = results_page()
    extract = scripted_extractor([2, 3, 6])

    result = asyncio.run(collect_listing(page, test_site, fast_options, extract=extract))

    assert len(result.products) == 6
    assert result.attempts == 3
    assert result.reloads == 2
    assert page.reloads == 2
    assert result.delivery_time == '12 mins'


def test_stops_on_first_good_attempt(test_site, fast_options):
    page = results_page()
    extract = scripted_extractor([7, 9])

    result = asyncio.run(collect_listing(page, test_site, fast_options, extract=extract))

    assert len(result.products) == 7
    assert result.attempts == 1
    assert page.reloads == 0


def test_exhausted_attempts_return_empty(test_site, fast_options):
    page = results_page()
    extract = scripted_extractor([0, 0, 0])

    result = asyncio.run(collect_listing(page, test_site, fast_options, extract=extract))

    assert result.products == []
    assert result.attempts == 3
    assert result.reloads == 2
    assert extract.seen == [0, 0, 0]


def test_keeps_last_extraction_when_short(test_site, fast_options):
    page = results_page()
    extract = scripted_extractor([4, 1, 2])

    result = asyncio.run(collect_listing(page, test_site, fast_options, extract=extract))

    assert len(result.products) == 2
    assert result.attempts == 3


def test_results_never_render(test_site, fast_options):
    page = FakePage()
    extract = scripted_extractor([])

    result = asyncio.run(collect_listing(page, test_site, fast_options, extract=extract))

    assert result.products == []
    assert result.attempts == 3
    assert page.reloads == 2
    assert extract.seen == []


def test_reload_failure_propagates(test_site, fast_options):
    page = results_page(errors={'reload': PlaywrightError("net::ERR_CONNECTION_RESET")})
    extract = scripted_extractor([1, 1, 1])

    with pytest.raises(PlaywrightError):
        asyncio.run(collect_listing(page, test_site, fast_options, extract=extract))


def test_wait_for_results_text_fallback(test_site):
    page = FakePage(body="Amul Butter 100 g ₹56 ADD")

    assert asyncio.run(wait_for_results(page, test_site, pause_seconds=0))


def test_wait_for_results_gives_up(test_site):
    page = FakePage(body="Something went wrong")

    assert not asyncio.run(wait_for_results(page, test_site, attempts=2, pause_seconds=0))
    assert page.calls.count('wait_for_selector') == 2
