from fastapi import FastAPI

from workflow_canvas.api.routes import router
from workflow_canvas.config.settings import Settings, load_settings
from workflow_canvas.editor.factory import build_gateway
from workflow_canvas.persistence.gateway import PersistenceGateway


def create_app(
    settings: Settings | None = None,
    gateway: PersistenceGateway | None = None,
) -> FastAPI:
    app = FastAPI(title="Workflow Canvas")
    app.include_router(router)

    @app.on_event("startup")
    def startup():
        app.state.settings = settings or load_settings()
        app.state.gateway = gateway or build_gateway(app.state.settings)

    return app
