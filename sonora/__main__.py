"""Run the API with uvicorn: ``python -m sonora``."""

from __future__ import annotations

import uvicorn

from sonora.config import get_env

DEFAULT_PORT = 8080


def main() -> None:
    host = get_env("APP_HOST") or "0.0.0.0"
    try:
        port = int(get_env("APP_PORT") or DEFAULT_PORT)
    except ValueError:
        port = DEFAULT_PORT
    uvicorn.run("sonora.main:create_app", factory=True, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
