"""Run the gateway with uvicorn: ``python -m chatrelay``."""

import uvicorn

from .config_loader import load_config
from .main import create_app
from .settings import load_settings


def main() -> None:
    settings = load_settings(load_config())
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
