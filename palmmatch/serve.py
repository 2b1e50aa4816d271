"""Launch the palmmatch API under uvicorn (installed as `palmmatch-serve`)."""

import uvicorn

from palmmatch.core.config import settings


def main() -> None:
    # In-memory stores are per process; keep one worker unless DATABASE_URL is set
    workers = settings.WEB_WORKERS if settings.DATABASE_URL else 1
    uvicorn.run(
        "palmmatch.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=workers,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
