"""
Job recommendation tools.

``search_jobs`` and ``search_company_reviews`` wrap an external job search
client; ``analyze_skill_match`` is a local keyword overlap score;
``generate_recommendation_reason`` asks the oracle for structured matches.
"""

import re
from typing import Any

import structlog

from interviewcoach.core.domain.contracts import CompanyMatchList, parse_contract
from interviewcoach.core.interfaces.job_search import JobSearchClientProtocol
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.infrastructure.tools.base_tool import BaseTool

_WORD_RE = re.compile(r"[a-z0-9+#.]+")


class SearchJobsTool(BaseTool):
    display_name = "Search job listings"
    estimated_time_ms = 30000

    def __init__(self, client: JobSearchClientProtocol):
        self.client = client

    @property
    def name(self) -> str:
        return "search_jobs"

    @property
    def description(self) -> str:
        return "Search real job listings related to the candidate's target position."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": 'Job title keywords, e.g. "Software Engineer"'},
                "location": {"type": "string", "description": 'Location, e.g. "San Francisco" or "Remote"'},
                "work_type": {"type": "string", "description": "onsite, remote or hybrid"},
                "max_results": {"type": "integer", "description": "Maximum number of results (default 10)"},
            },
            "required": ["title"],
        }

    async def execute(
        self,
        title: str = "",
        location: str = "United States",
        work_type: str | None = None,
        max_results: int = 10,
        **kwargs: Any,
    ) -> dict[str, Any]:
        valid, error = self.validate_params(title=title)
        if not valid:
            return {"success": False, "error": error}
        jobs = await self.client.search_jobs(
            title=title,
            location=location or "United States",
            work_type=work_type,
            max_results=int(max_results),
        )
        listings = [
            {
                "title": job.get("title"),
                "company": job.get("company"),
                "location": job.get("location"),
                "url": job.get("url"),
                "description": (job.get("description") or "")[:300],
            }
            for job in jobs[: int(max_results)]
        ]
        return {"success": True, "data": {"job_count": len(listings), "jobs": listings}}


class CompanyReviewsTool(BaseTool):
    display_name = "Search company reviews"
    estimated_time_ms = 45000

    def __init__(self, client: JobSearchClientProtocol):
        self.client = client

    @property
    def name(self) -> str:
        return "search_company_reviews"

    @property
    def description(self) -> str:
        return "Look up interview reviews for a company to learn its interview style and culture."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "company": {"type": "string", "description": 'Company name, e.g. "Google"'},
                "max_results": {"type": "integer", "description": "Maximum number of reviews (default 5)"},
            },
            "required": ["company"],
        }

    async def execute(self, company: str = "", max_results: int = 5, **kwargs: Any) -> dict[str, Any]:
        valid, error = self.validate_params(company=company)
        if not valid:
            return {"success": False, "error": error}
        reviews = await self.client.company_insights(company=company, max_results=int(max_results))
        summary = [
            {
                "title": r.get("title"),
                "difficulty": r.get("difficulty"),
                "experience": r.get("experience"),
                "questions": r.get("questions"),
                "content": (r.get("content") or "")[:300],
            }
            for r in reviews[:5]
        ]
        return {"success": True, "data": {"company": company, "review_count": len(reviews), "reviews": summary}}


def _tokens(text: str) -> set[str]:
    return set(_WORD_RE.findall(text.lower()))


class AnalyzeSkillMatchTool(BaseTool):
    """Keyword overlap between demonstrated skills and a job description."""

    display_name = "Analyze skill match"
    estimated_time_ms = 500

    @property
    def name(self) -> str:
        return "analyze_skill_match"

    @property
    def description(self) -> str:
        return "Score how well the candidate's demonstrated skills match a job description (0-100)."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "user_skills": {"type": "string", "description": "Comma-separated skills the candidate showed"},
                "job_description": {"type": "string", "description": "Job description or requirements"},
                "job_title": {"type": "string", "description": "Job title"},
            },
            "required": ["user_skills", "job_description"],
        }

    async def execute(
        self,
        user_skills: str = "",
        job_description: str = "",
        job_title: str = "",
        **kwargs: Any,
    ) -> dict[str, Any]:
        valid, error = self.validate_params(user_skills=user_skills, job_description=job_description)
        if not valid:
            return {"success": False, "error": error}

        skills = [s.strip() for s in user_skills.split(",") if s.strip()]
        job_words = _tokens(f"{job_title} {job_description}")
        matched = [s for s in skills if _tokens(s) and _tokens(s) <= job_words]
        gaps = [s for s in skills if s not in matched]
        score = round(100 * len(matched) / len(skills)) if skills else 0
        return {
            "success": True,
            "data": {
                "job_title": job_title,
                "match_score": score,
                "matched_skills": matched,
                "unmatched_skills": gaps,
            },
        }


class RecommendationReasonTool(BaseTool):
    """Oracle-backed recommendation reasons and preparation tips."""

    display_name = "Generate recommendation reasons"
    estimated_time_ms = 6000

    def __init__(self, llm_provider: LLMProviderProtocol, model_alias: str = "fast"):
        self.llm_provider = llm_provider
        self.model_alias = model_alias
        self.logger = structlog.get_logger().bind(component="recommendation_reason_tool")

    @property
    def name(self) -> str:
        return "generate_recommendation_reason"

    @property
    def description(self) -> str:
        return (
            "Turn candidate evidence and candidate companies into structured recommendations "
            "with reasons, key skills and preparation tips."
        )

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "companies": {"type": "string", "description": "Comma-separated companies (or 'any')"},
                "candidate_evidence": {"type": "string", "description": "Skills and achievements shown"},
                "position": {"type": "string", "description": "Target position"},
            },
            "required": ["candidate_evidence"],
        }

    async def execute(
        self,
        candidate_evidence: str = "",
        companies: str = "any",
        position: str = "",
        **kwargs: Any,
    ) -> dict[str, Any]:
        valid, error = self.validate_params(candidate_evidence=candidate_evidence)
        if not valid:
            return {"success": False, "error": error}

        prompt = (
            f"Target position: {position or 'unspecified'}\n"
            f"Candidate companies: {companies}\n"
            f"Candidate evidence:\n{candidate_evidence[:2000]}\n\n"
            "For each company (or up to 5 well-known fitting companies if 'any'), return JSON only:\n"
            '{"matches": [{"company": "...", "job_title": "...", "match_score": 0-100, '
            '"reasons": ["..."], "key_skills": ["..."], "preparation_tips": ["..."]}]}'
        )
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.model_alias,
            response_format={"type": "json_object"},
            temperature=0.3,
        )
        if not result.get("success"):
            return {"success": False, "error": result.get("error") or "Recommendation generation failed"}

        matches = parse_contract(CompanyMatchList, result.get("content"))
        if matches is None:
            return {"success": False, "error": "Recommendations were not valid JSON"}
        return {"success": True, "data": matches.model_dump()}
