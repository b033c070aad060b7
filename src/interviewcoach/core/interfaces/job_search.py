"""
Job Search Client Protocol

Boundary to the external job-board and company-review connectors. The
connectors themselves (scrapers, search APIs) live outside this package.
"""

from typing import Any, Protocol


class JobSearchClientProtocol(Protocol):
    async def search_jobs(
        self,
        title: str,
        location: str,
        work_type: str | None = None,
        max_results: int = 10,
    ) -> list[dict[str, Any]]:
        """
        Return job listings with at least ``title``, ``company`` and
        ``location``; ``url`` and ``description`` when available.
        """
        ...

    async def company_insights(self, company: str, max_results: int = 5) -> list[dict[str, Any]]:
        """Return interview reviews (difficulty, experience, questions) for a company."""
        ...
