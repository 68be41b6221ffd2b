from prometheus_fastapi_instrumentator import Instrumentator

from assetdesk import create_app
from assetdesk.core.config import settings
from assetdesk.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
app = create_app()
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
