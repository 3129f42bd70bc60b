"""Run the RETRO BEATS server: ``python -m retrobeats``."""

import uvicorn

from retrobeats.config import settings


def main() -> None:
    uvicorn.run("retrobeats.api.server:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
