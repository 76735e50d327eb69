"""Application entry point for the Lottery Ledger backend."""

from __future__ import annotations

import uvicorn

from lottery_ledger import create_app
from lottery_ledger.core.config_core import get_settings


def main() -> None:
    """Run the FastAPI server."""

    settings = get_settings()
    uvicorn.run(create_app(), host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    main()
