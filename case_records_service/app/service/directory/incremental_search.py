# Debounced, cancelable directory lookup driven by a name field as the user types
import asyncio
import enum
import logging
from typing import Awaitable, Callable, Generic, List, Optional, Set, TypeVar

from pydantic import BaseModel

from case_records_service.app.config import settings
from case_records_service.app.models import (
    DirectoryInsuranceCompany,
    DirectoryInsuranceCompanyInput,
    DirectoryProvider,
    MedicalProviderDraft,
)
from case_records_service.app.service.providers.case_providers import directory_to_provider_draft
from case_records_service.infrastructure.database.directory_store import DirectoryStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)
FormT = TypeVar("FormT", bound=BaseModel)


class SearchState(str, enum.Enum):
    IDLE = "idle" # Query shorter than the minimum length
    DEBOUNCING = "debouncing" # A search is scheduled but not issued
    SEARCHING = "searching" # A search is in flight
    RESULTS_SHOWN = "results_shown"
    NO_RESULTS = "no_results"


class IncrementalDirectorySearch(Generic[RecordT, FormT]):
    """
    State for one in-progress name entry backed by a directory search.

    Each keystroke cancels the scheduled search, if it has not been issued yet,
    and schedules a new one after the debounce delay. Issued searches always run
    to completion; each carries a sequence number and only the response to the
    most recently issued search may change what is displayed.
    """

    def __init__(
        self,
        search: Callable[[str], Awaitable[List[RecordT]]],
        to_form: Callable[[RecordT], FormT],
        empty_form: FormT,
        debounce_seconds: Optional[float] = None,
        min_query_length: Optional[int] = None
    ):
        self._search = search
        self._to_form = to_form
        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None
            else settings.DIRECTORY_SEARCH_DEBOUNCE_MS / 1000
        )
        self.min_query_length = min_query_length or settings.DIRECTORY_SEARCH_MIN_QUERY_LENGTH

        self.query = ""
        self.state = SearchState.IDLE
        self.results: List[RecordT] = []
        self.results_visible = False
        self.form: FormT = empty_form
        self.auto_filled = False # Display-only: form was last filled from a directory record

        self._timer: Optional[asyncio.TimerHandle] = None
        self._latest_seq = 0
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def has_scheduled_search(self) -> bool:
        return self._timer is not None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def on_query_changed(self, query: str) -> None:
        self.query = query
        self.form = self.form.model_copy(update={"name": query})
        self.auto_filled = False
        self._cancel_timer()

        if len(query) < self.min_query_length:
            # Anything still in flight belongs to an older query.
            self._latest_seq += 1
            self.state = SearchState.IDLE
            self.results = []
            self.results_visible = False
            return

        self.state = SearchState.DEBOUNCING
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._issue, query)

    def _issue(self, query: str) -> None:
        self._timer = None
        self._latest_seq += 1
        self.state = SearchState.SEARCHING
        task = asyncio.ensure_future(self._run(query, self._latest_seq))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self, query: str, seq: int) -> None:
        try:
            results = await self._search(query)
        except Exception as e:
            logger.error(f"Directory search for '{query}' failed: {e}", exc_info=True)
            results = []

        if seq != self._latest_seq:
            logger.debug(f"Discarding stale directory results for '{query}' (request {seq}, latest {self._latest_seq}).")
            return
        self.results = results
        self.results_visible = bool(results)
        self.state = SearchState.RESULTS_SHOWN if results else SearchState.NO_RESULTS

    def select(self, record: RecordT) -> FormT:
        """Copies the directory record into the form and closes the result list."""
        self._cancel_timer()
        self._latest_seq += 1
        self.form = self._to_form(record)
        self.query = self.form.name
        self.auto_filled = True
        self.results_visible = False
        self.state = SearchState.IDLE
        return self.form

    def update_form(self, **changes) -> FormT:
        # Manual edits are allowed after auto-fill and are not tracked as diverging.
        self.form = self.form.model_copy(update=changes)
        return self.form

    async def drain(self) -> None:
        """Waits for every issued search to finish."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight))


def _insurance_company_form(record: DirectoryInsuranceCompany) -> DirectoryInsuranceCompanyInput:
    return DirectoryInsuranceCompanyInput(**record.model_dump(exclude={"id", "created_at", "updated_at"}))


def provider_search(
    directory: DirectoryStore[DirectoryProvider],
    debounce_seconds: Optional[float] = None
) -> IncrementalDirectorySearch[DirectoryProvider, MedicalProviderDraft]:
    return IncrementalDirectorySearch(
        search=directory.search,
        to_form=directory_to_provider_draft,
        empty_form=MedicalProviderDraft(),
        debounce_seconds=debounce_seconds,
    )


def insurance_company_search(
    directory: DirectoryStore[DirectoryInsuranceCompany],
    debounce_seconds: Optional[float] = None
) -> IncrementalDirectorySearch[DirectoryInsuranceCompany, DirectoryInsuranceCompanyInput]:
    return IncrementalDirectorySearch(
        search=directory.search,
        to_form=_insurance_company_form,
        empty_form=DirectoryInsuranceCompanyInput(name=""),
        debounce_seconds=debounce_seconds,
    )
