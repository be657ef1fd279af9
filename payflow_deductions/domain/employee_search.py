"""Employee resolution for the deduction wizard"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from payflow_deductions.domain.exceptions import GatewayError
from payflow_deductions.domain.interfaces import EmployeeDirectory
from payflow_deductions.domain.models import Employee
from payflow_deductions.infrastructure.observability.metrics import employee_search_counter, stale_response_counter

logger = logging.getLogger(__name__)

BLANK_QUERY_MESSAGE = "Please enter a National ID or Employee Number to search."


@dataclass
class SearchOutcome:
    """Result of a single search call as seen by the caller"""

    query: str
    results: List[Employee] = field(default_factory=list)
    searched: bool = False
    stale: bool = False
    validation_message: Optional[str] = None
    error: Optional[str] = None

    @property
    def no_matches(self) -> bool:
        return self.searched and not self.stale and self.error is None and not self.results


class EmployeeResolver:
    """
    Holds the visible employee search results for one wizard session.

    Only the most recently issued search may update the visible results: each
    call takes a token, and a response whose token is no longer the latest is
    discarded regardless of arrival order.
    """

    def __init__(self, directory: EmployeeDirectory):
        self.directory = directory
        self.results: List[Employee] = []
        self.last_query: Optional[str] = None
        self.searched = False
        self.validation_message: Optional[str] = None
        self.error: Optional[str] = None
        self._latest_token = 0

    async def search(self, query: str) -> SearchOutcome:
        term = (query or "").strip()
        self._latest_token += 1
        token = self._latest_token

        if not term:
            # Blank input never reaches the directory
            self.results = []
            self.searched = False
            self.last_query = None
            self.error = None
            self.validation_message = BLANK_QUERY_MESSAGE
            employee_search_counter.labels(outcome="blank_query").inc()
            return SearchOutcome(query=term, validation_message=BLANK_QUERY_MESSAGE)

        self.validation_message = None
        try:
            found = await self.directory.search_employees(term)
        except GatewayError as e:
            if token != self._latest_token:
                stale_response_counter.labels(operation="search").inc()
                return SearchOutcome(query=term, searched=True, stale=True, error=str(e))
            # Keep previous results visible after a transient fault
            self.error = str(e)
            employee_search_counter.labels(outcome="failed").inc()
            logger.warning(f"Employee search failed: {e}", extra={"query": term})
            return SearchOutcome(query=term, results=list(self.results), searched=True, error=str(e))

        if token != self._latest_token:
            stale_response_counter.labels(operation="search").inc()
            logger.debug("Discarded stale employee search response", extra={"query": term})
            return SearchOutcome(query=term, results=found, searched=True, stale=True)

        self.results = list(found)
        self.last_query = term
        self.searched = True
        self.error = None
        employee_search_counter.labels(outcome="found" if found else "no_matches").inc()
        return SearchOutcome(query=term, results=list(found), searched=True)

    def find(self, employee_id: str) -> Optional[Employee]:
        """Look up an employee among the currently visible results"""
        return next((e for e in self.results if e.id == employee_id), None)

    def clear(self) -> None:
        self._latest_token += 1
        self.results = []
        self.last_query = None
        self.searched = False
        self.validation_message = None
        self.error = None
