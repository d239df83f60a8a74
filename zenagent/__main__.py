import logging

import uvicorn

from zenagent.config import AgentSettings
from zenagent.main import create_app


def main() -> None:
    settings = AgentSettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.api_token:
        logging.warning("API_TOKEN is not set: every authenticated call will be rejected")
    logging.info("Node agent on %s:%d, config %s", settings.host, settings.port, settings.config_path)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
