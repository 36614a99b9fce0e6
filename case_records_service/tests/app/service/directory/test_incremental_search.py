import asyncio
import pytest
from unittest.mock import AsyncMock

from case_records_service.app.models import (
    DirectoryInsuranceCompany,
    DirectoryInsuranceCompanyInput,
    DirectoryProvider,
    InsuranceCompanyType,
    MedicalProviderDraft,
    MedicalProviderType,
)
from case_records_service.app.service.directory.incremental_search import (
    IncrementalDirectorySearch,
    SearchState,
    insurance_company_search,
    provider_search,
)
from case_records_service.app.service.providers.case_providers import directory_to_provider_draft

DEBOUNCE = 0.02


def _provider(name, **fields):
    return DirectoryProvider(id=f"dir-{name.lower().replace(' ', '-')}", name=name, **fields)

def _search_for(search_fn):
    return IncrementalDirectorySearch(
        search=search_fn,
        to_form=directory_to_provider_draft,
        empty_form=MedicalProviderDraft(),
        debounce_seconds=DEBOUNCE,
        min_query_length=2,
    )

async def _settle(search):
    await asyncio.sleep(DEBOUNCE * 3)
    await search.drain()


@pytest.mark.asyncio
async def test_short_query_never_searches():
    backend = AsyncMock(return_value=[])
    search = _search_for(backend)

    search.on_query_changed("a")
    await _settle(search)

    backend.assert_not_awaited()
    assert search.state == SearchState.IDLE
    assert search.form.name == "a"

@pytest.mark.asyncio
async def test_keystrokes_within_debounce_issue_one_search():
    backend = AsyncMock(return_value=[_provider("General Hospital")])
    search = _search_for(backend)

    for query in ["ge", "gen", "gene"]:
        search.on_query_changed(query)
    assert search.state == SearchState.DEBOUNCING
    assert search.has_scheduled_search
    await _settle(search)

    backend.assert_awaited_once_with("gene")
    assert search.state == SearchState.RESULTS_SHOWN
    assert search.results_visible is True
    assert [r.name for r in search.results] == ["General Hospital"]

@pytest.mark.asyncio
async def test_no_results_state():
    search = _search_for(AsyncMock(return_value=[]))

    search.on_query_changed("zz")
    await _settle(search)

    assert search.state == SearchState.NO_RESULTS
    assert search.results_visible is False

@pytest.mark.asyncio
async def test_shortening_query_cancels_scheduled_search():
    backend = AsyncMock(return_value=[])
    search = _search_for(backend)

    search.on_query_changed("ge")
    search.on_query_changed("g")
    await _settle(search)

    backend.assert_not_awaited()
    assert not search.has_scheduled_search
    assert search.state == SearchState.IDLE

@pytest.mark.asyncio
async def test_stale_response_is_discarded():
    gates = {"ge": asyncio.Event(), "gen": asyncio.Event()}
    responses = {"ge": [_provider("Georgia Ortho")], "gen": [_provider("General Hospital")]}

    async def slow_search(query):
        await gates[query].wait()
        return responses[query]

    search = _search_for(slow_search)
    search.on_query_changed("ge")
    await asyncio.sleep(DEBOUNCE * 3) # "ge" is now in flight
    assert search.state == SearchState.SEARCHING
    search.on_query_changed("gen")
    await asyncio.sleep(DEBOUNCE * 3) # "gen" is now in flight too

    gates["gen"].set()
    await asyncio.sleep(0)
    gates["ge"].set()
    await search.drain()

    assert [r.name for r in search.results] == ["General Hospital"]
    assert search.state == SearchState.RESULTS_SHOWN

@pytest.mark.asyncio
async def test_backend_failure_shows_no_results():
    search = _search_for(AsyncMock(side_effect=RuntimeError("mongo down")))

    search.on_query_changed("gen")
    await _settle(search)

    assert search.state == SearchState.NO_RESULTS
    assert search.results == []

@pytest.mark.asyncio
async def test_select_autofills_form_and_typing_clears_flag():
    record = _provider("General Hospital", type=MedicalProviderType.HOSPITAL, phone="555-0100", city="Springfield")
    search = _search_for(AsyncMock(return_value=[record]))
    search.on_query_changed("gen")
    await _settle(search)

    form = search.select(record)

    assert search.auto_filled is True
    assert search.results_visible is False
    assert form.phone == "555-0100"
    assert form.city == "Springfield"
    assert form.total_cost is None

    # Manual edits are allowed; typing in the name field clears the indicator.
    search.update_form(phone="555-0199")
    assert search.form.phone == "555-0199"
    assert search.auto_filled is True
    search.on_query_changed("General Hospital East")
    assert search.auto_filled is False
    assert search.form.phone == "555-0199"

@pytest.mark.asyncio
async def test_provider_search_factory_uses_directory_search():
    directory = AsyncMock()
    directory.search = AsyncMock(return_value=[])

    search = provider_search(directory, debounce_seconds=DEBOUNCE)
    search.on_query_changed("ab")
    await _settle(search)

    directory.search.assert_awaited_once_with("ab")

@pytest.mark.asyncio
async def test_insurance_company_search_autofills_company_fields():
    record = DirectoryInsuranceCompany(
        id="ins-1",
        name="State Farm",
        type=InsuranceCompanyType.AUTO,
        phone="800-555-0100",
        claims_phone="800-555-0001",
        mailing_address="PO Box 106169",
        mailing_city="Atlanta",
        mailing_state="GA",
        mailing_zip="30348",
        website="https://www.statefarm.com",
    )
    directory = AsyncMock()
    directory.search = AsyncMock(return_value=[record])

    search = insurance_company_search(directory, debounce_seconds=DEBOUNCE)
    assert isinstance(search.form, DirectoryInsuranceCompanyInput)
    search.on_query_changed("state")
    await _settle(search)

    directory.search.assert_awaited_once_with("state")
    assert search.state == SearchState.RESULTS_SHOWN

    form = search.select(search.results[0])

    assert isinstance(form, DirectoryInsuranceCompanyInput)
    assert form.name == "State Farm"
    assert form.claims_phone == "800-555-0001"
    assert form.mailing_address == "PO Box 106169"
    assert form.mailing_city == "Atlanta"
    assert form.mailing_state == "GA"
    assert form.mailing_zip == "30348"
    assert form.website == "https://www.statefarm.com"
    assert search.auto_filled is True
