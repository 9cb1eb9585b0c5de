"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from gainchef.adapters.openai_chat_model import OpenAIChatModel
from gainchef.adapters.supabase_state_store import SupabaseStateStoreFactory
from gainchef.adapters.workflow_client import (
    HttpxWorkflowClient,
    InProcessWorkflowRunner,
)
from gainchef.config import Settings
from gainchef.services.composer import StreamComposer
from gainchef.services.model_resolver import ChatModel, ModelResolver
from gainchef.services.rate_limit import RateLimiter
from gainchef.services.session_state import SessionState
from gainchef.services.state_store import (
    InMemoryStateStoreFactory,
    StateStore,
    StateStoreFactory,
)
from gainchef.services.tools import ToolDispatcher
from gainchef.services.workflow import WorkflowClient, WorkflowService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store_factory: StateStoreFactory
    dispatcher: ToolDispatcher
    resolver: ModelResolver
    composer: StreamComposer
    workflow_client: WorkflowClient
    workflow_service: WorkflowService
    close_resources: Callable[[], Awaitable[None]]

    def open_session(self, session_id: str) -> SessionState:
        """Return the state object for one session."""
        return SessionState(session_id=session_id, store=self.store_factory(session_id))


def build_container(  # noqa: PLR0913
    settings: Settings | None = None,
    *,
    store_factory: StateStoreFactory | None = None,
    backend_factory: Callable[[str], ChatModel] | None = None,
    workflow_client: WorkflowClient | None = None,
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()

    if store_factory is None:
        if resolved_settings.supabase_url and resolved_settings.supabase_service_key:
            supabase_client = create_client(
                resolved_settings.supabase_url, resolved_settings.supabase_service_key
            )
            store_factory = SupabaseStateStoreFactory(
                client=supabase_client, table=resolved_settings.supabase_state_table
            )
        else:
            store_factory = InMemoryStateStoreFactory()

    if backend_factory is None:

        def backend_factory(model: str) -> ChatModel:
            return OpenAIChatModel.create(
                api_key=resolved_settings.openai_api_key or "",
                model=model,
                base_url=resolved_settings.openai_base_url,
            )

    http_workflow_client: HttpxWorkflowClient | None = None
    if workflow_client is None:
        if resolved_settings.workflow_url:
            http_workflow_client = HttpxWorkflowClient.create_client(
                url=resolved_settings.workflow_url,
                token=resolved_settings.workflow_token,
            )
            workflow_client = http_workflow_client
        else:
            workflow_client = InProcessWorkflowRunner()

    window = timedelta(seconds=resolved_settings.rate_limit_window_seconds)

    def rate_limiter_factory(store: StateStore) -> RateLimiter:
        return RateLimiter(
            store=store,
            window=window,
            max_requests=resolved_settings.rate_limit_max_requests,
        )

    dispatcher = ToolDispatcher()
    resolver = ModelResolver(
        settings=resolved_settings, backend_factory=backend_factory
    )
    composer = StreamComposer(
        resolver=resolver,
        dispatcher=dispatcher,
        rate_limiter_factory=rate_limiter_factory,
        max_steps=resolved_settings.max_generation_steps,
        intent_gating=resolved_settings.intent_gating,
    )

    async def close_resources() -> None:
        if http_workflow_client is not None:
            await http_workflow_client.close()

    return AppContainer(
        settings=resolved_settings,
        store_factory=store_factory,
        dispatcher=dispatcher,
        resolver=resolver,
        composer=composer,
        workflow_client=workflow_client,
        workflow_service=WorkflowService(workflow_client),
        close_resources=close_resources,
    )
