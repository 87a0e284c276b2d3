# src/soldracula/api/__main__.py
from __future__ import annotations

import uvicorn

from soldracula.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so SOLDRACULA_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from soldracula.api.app import create_app
    from soldracula.config import load_service_config

    cfg = load_service_config()
    uvicorn.run(create_app(config=cfg), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
