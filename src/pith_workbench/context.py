"""Workbench context: the single owner of every engine-backed component.

Built once with `create_context(settings)` at application start and disposed
with `aclose()` at shutdown. Components receive their collaborators through
the context instead of reaching for module-level state.
"""

from dataclasses import dataclass

import structlog

from pith_workbench.ai.chat import ChatSession
from pith_workbench.ai.lifecycle import ModelLifecycleManager
from pith_workbench.ai.runtime import InferenceRuntime, OllamaRuntime
from pith_workbench.charts.plot import PlotBuilder
from pith_workbench.config import Settings
from pith_workbench.database import ConnectionManager
from pith_workbench.ingestion import IngestionService
from pith_workbench.preferences import PreferencesStore
from pith_workbench.query import QueryNormalizer
from pith_workbench.schema import SchemaIntrospector
from pith_workbench.transfer import DataTransferService
from pith_workbench.visual import VisualizationConnector

logger = structlog.get_logger()


@dataclass
class WorkbenchContext:
    settings: Settings
    manager: ConnectionManager
    normalizer: QueryNormalizer
    ingestion: IngestionService
    introspector: SchemaIntrospector
    connector: VisualizationConnector
    plots: PlotBuilder
    preferences: PreferencesStore
    lifecycle: ModelLifecycleManager
    chat: ChatSession
    transfer: DataTransferService

    async def start(self) -> None:
        await self.manager.init()

    async def aclose(self) -> None:
        await self.lifecycle.aclose()
        self.manager.reset()
        logger.info("workbench_context_closed")


def create_context(
    settings: Settings, runtime: InferenceRuntime | None = None
) -> WorkbenchContext:
    """Wire every component around one connection manager and one runtime."""
    manager = ConnectionManager(settings)
    normalizer = QueryNormalizer(manager, timeout=settings.query_timeout_seconds)
    ingestion = IngestionService(manager, normalizer)
    introspector = SchemaIntrospector(normalizer)
    preferences = PreferencesStore(settings.preferences_path)
    lifecycle = ModelLifecycleManager(
        runtime or OllamaRuntime(settings.ollama_url, timeout=settings.ai_request_timeout),
        preferences=preferences,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
    )
    return WorkbenchContext(
        settings=settings,
        manager=manager,
        normalizer=normalizer,
        ingestion=ingestion,
        introspector=introspector,
        connector=VisualizationConnector(normalizer),
        plots=PlotBuilder(normalizer, introspector),
        preferences=preferences,
        lifecycle=lifecycle,
        chat=ChatSession(lifecycle, normalizer, introspector),
        transfer=DataTransferService(manager, introspector, ingestion),
    )
