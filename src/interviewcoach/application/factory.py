"""
Application Layer - Service Factory

Wires the practice service with its infrastructure adapters:
- LLM provider (LiteLLM, configured by YAML)
- Session store (in-memory or file-backed, selected by settings)
- Optional job search connector for the recommender agent
"""

import structlog

from interviewcoach.application.feedback import FeedbackService
from interviewcoach.application.practice_service import TopicPracticeService
from interviewcoach.application.topics import TopicPlanner
from interviewcoach.config.settings import Settings
from interviewcoach.config.settings import settings as default_settings
from interviewcoach.core.domain.grader import create_multi_grader
from interviewcoach.core.domain.intent import IntentClassifier
from interviewcoach.core.domain.topic_machine import TopicStateMachine
from interviewcoach.core.interfaces.job_search import JobSearchClientProtocol
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.interfaces.session_store import SessionStoreProtocol
from interviewcoach.infrastructure.llm.litellm_provider import LiteLLMProvider
from interviewcoach.infrastructure.persistence.file_session_store import FileSessionStore
from interviewcoach.infrastructure.persistence.in_memory_session_store import InMemorySessionStore

logger = structlog.get_logger().bind(component="service_factory")


def create_session_store(settings: Settings) -> SessionStoreProtocol:
    if settings.session_store == "file":
        return FileSessionStore(settings.session_store_dir, ttl_seconds=settings.session_ttl_seconds)
    if settings.session_store != "memory":
        raise ValueError(f"Unknown session store: {settings.session_store}")
    return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)


def create_practice_service(
    settings: Settings | None = None,
    llm_provider: LLMProviderProtocol | None = None,
    store: SessionStoreProtocol | None = None,
    job_search_client: JobSearchClientProtocol | None = None,
) -> TopicPracticeService:
    """
    Build a fully wired TopicPracticeService.

    Any collaborator can be injected; missing ones are created from settings.
    """
    settings = settings or default_settings
    llm_provider = llm_provider or LiteLLMProvider(settings.llm_config_path)
    store = store or create_session_store(settings)

    classifier = IntentClassifier(
        llm_provider,
        confidence_threshold=settings.intent_confidence_threshold,
        model_alias=settings.fast_model_alias,
    )
    machine = TopicStateMachine(llm_provider, classifier, settings, model_alias=settings.fast_model_alias)
    planner = TopicPlanner(llm_provider, settings, hint_grader=create_multi_grader("hint_system"))
    feedback = FeedbackService(
        llm_provider,
        settings,
        job_search_client=job_search_client,
        feedback_grader=create_multi_grader("feedback_generation", llm_provider),
    )

    logger.info(
        "practice_service_created",
        session_store=type(store).__name__,
        job_search=job_search_client is not None,
    )
    return TopicPracticeService(store, machine, planner, feedback, settings)
