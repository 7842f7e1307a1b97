"""AppContext: wires config, providers, persistence and services together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from deepresearch.config import AppConfig, load_config

if TYPE_CHECKING:
    from pathlib import Path

    from deepresearch.infra.db.client import MongoClient
    from deepresearch.infra.db.memory import MemoryRepo
    from deepresearch.infra.providers.classifier import TokenClassifier
    from deepresearch.infra.providers.venice import VeniceProvider
    from deepresearch.infra.search.brave import BraveSearchProvider
    from deepresearch.services.chat_bridge import ChatToResearchBridge
    from deepresearch.services.chat_session import ChatSession
    from deepresearch.services.memory_manager import MemoryManager
    from deepresearch.services.progress import ProgressCallback
    from deepresearch.services.query_generator import QueryGenerator
    from deepresearch.services.research_engine import ResearchEngine

logger = logging.getLogger(__name__)


class AppContext:
    """Central wiring for all application dependencies.

    Lazily builds services on first access. Call ``initialize()`` before
    using MongoDB-backed memory persistence.
    """

    def __init__(self, config: AppConfig | None = None, config_path: Path | None = None) -> None:
        self.config = config or load_config(config_path)
        self._mongo: MongoClient | None = None
        self._memory_repo: MemoryRepo | None = None
        self._llm: VeniceProvider | None = None
        self._llm_checked = False
        self._memory_manager: MemoryManager | None = None
        self._query_generator: QueryGenerator | None = None
        self._classifier: TokenClassifier | None = None

    async def initialize(self) -> None:
        """Connect persistence when configured."""
        if self.config.memory.persistence == "mongodb":
            from deepresearch.infra.db.client import MongoClient
            from deepresearch.infra.db.memory import MemoryRepo

            self._mongo = MongoClient(
                uri=self.config.mongodb.uri,
                database=self.config.mongodb.database,
            )
            self._memory_repo = MemoryRepo(self._mongo.db)
            await self._memory_repo.ensure_indexes()
        logger.info("AppContext initialized")

    async def close(self) -> None:
        """Close all connections."""
        if self._memory_manager:
            await self._memory_manager.wait_for_pending()
        if self._llm:
            await self._llm.close()
        if self._mongo:
            self._mongo.close()
        logger.info("AppContext closed")

    @property
    def memory_repo(self) -> MemoryRepo | None:
        return self._memory_repo

    @property
    def llm(self) -> VeniceProvider | None:
        """The LLM provider, or None when no API key is configured."""
        if not self._llm_checked:
            self._llm_checked = True
            venice = self.config.venice
            if self.config.llm_api_key:
                from deepresearch.infra.providers.venice import VeniceProvider

                retry = self.config.retry
                self._llm = VeniceProvider(
                    api_key=self.config.llm_api_key,
                    model=venice.default_model,
                    base_url=venice.base_url,
                    timeout=venice.timeout,
                    max_attempts=retry.max_attempts,
                    initial_delay=retry.initial_delay_ms / 1000,
                    exponential=retry.exponential,
                    max_delay=retry.max_delay_ms / 1000,
                )
            else:
                logger.warning("No Venice API key configured, LLM steps will use fallbacks")
        return self._llm

    def create_search_provider(self) -> BraveSearchProvider:
        from deepresearch.infra.search.brave import BraveSearchProvider

        brave = self.config.brave
        return BraveSearchProvider(
            api_key=self.config.search_api_key,
            rate_interval=brave.rate_interval_ms / 1000,
        )

    def research_engine(self, progress_fn: ProgressCallback | None = None) -> ResearchEngine:
        from deepresearch.services.research_engine import ResearchEngine

        return ResearchEngine(self.llm, self.create_search_provider, progress_fn=progress_fn)

    @property
    def memory_manager(self) -> MemoryManager:
        if self._memory_manager is None:
            from deepresearch.services.memory_manager import MemoryManager

            self._memory_manager = MemoryManager(
                self.llm,
                depth=self.config.memory.depth,
                persistence=self._memory_repo,
            )
        return self._memory_manager

    @property
    def query_generator(self) -> QueryGenerator:
        if self._query_generator is None:
            from deepresearch.services.query_generator import QueryGenerator

            self._query_generator = QueryGenerator(self.llm)
        return self._query_generator

    @property
    def classifier(self) -> TokenClassifier | None:
        if self._classifier is None and self.llm is not None:
            from deepresearch.infra.providers.classifier import TokenClassifier

            self._classifier = TokenClassifier(self.llm)
        return self._classifier

    def chat_bridge(self, progress_fn: ProgressCallback | None = None) -> ChatToResearchBridge:
        from deepresearch.services.chat_bridge import ChatToResearchBridge

        return ChatToResearchBridge(
            self.query_generator,
            classifier=self.classifier,
            engine=self.research_engine(progress_fn),
        )

    def chat_session(self) -> ChatSession:
        from deepresearch.services.chat_session import ChatSession

        return ChatSession(self.llm, memory=self.memory_manager, bridge=self.chat_bridge())
