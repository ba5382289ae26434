"""Run the API under uvicorn on API_HOST / API_PORT."""

import uvicorn

from juris.api.app.config import settings


def main() -> None:
    uvicorn.run(
        "juris.api.app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
