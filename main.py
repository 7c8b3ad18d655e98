import logging

import uvicorn

import settings
from api.app import create_app

logger = logging.getLogger(__name__)


def main():
    settings.configure_logging()
    app = create_app()
    logger.info(f"[Main] Serving on {settings.API_HOST}:{settings.API_PORT}")
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
