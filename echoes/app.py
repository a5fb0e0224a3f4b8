import logging

from fastapi import FastAPI

from echoes.config import Settings, load_settings
from echoes.pipeline.orchestrator import Orchestrator
from echoes.routes import router
from echoes.session import GameState

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings) -> Orchestrator:
    state = GameState(preferences=settings.preferences())
    return Orchestrator(settings.build_generator(), state=state)


def create_app(
    orchestrator: Orchestrator | None = None, settings: Settings | None = None
) -> FastAPI:
    if orchestrator is None:
        orchestrator = build_orchestrator(settings or load_settings())

    app = FastAPI(title="Echoes of the Void")
    app.state.orchestrator = orchestrator
    app.include_router(router, prefix="/api")
    logger.debug("app created world=%s", orchestrator.world.key)
    return app


# Default app instance for uvicorn (configured from the environment)
app = create_app()
