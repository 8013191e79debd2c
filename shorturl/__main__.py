"""Command-line entry point: ``python -m shorturl -a localhost:8080 -b http://localhost:8080``."""

from typing import Optional, Sequence

import uvicorn

from shorturl.core.config import Settings


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Parse flags, build the application and serve it with uvicorn."""
    from shorturl.main import create_app

    settings = Settings.from_args(argv)
    app = create_app(settings)
    # log_config=None keeps uvicorn from replacing the loguru interceptor
    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
