from functools import lru_cache

from newsletter_agent.config import load_config
from newsletter_agent.orchestrator import NewsletterOrchestrator
from newsletter_agent.workspace import Workspace


@lru_cache
def get_workspace() -> Workspace:
    return Workspace(load_config())


@lru_cache
def get_orchestrator() -> NewsletterOrchestrator:
    # One orchestrator per process so the busy guards see every request.
    return get_workspace().orchestrator()
