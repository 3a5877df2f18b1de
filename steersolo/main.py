import uvicorn

from steersolo.api.app import create_app
from steersolo.core.config import get_settings
from steersolo.core.logging import configure_logging, get_logger


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    log = get_logger(__name__)

    app = create_app(settings)
    log.info("server_starting", host=settings.http_host, port=settings.http_port)
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":
    main()
