"""Run the relay: `python -m codeshui_gateway`."""

import uvicorn
from dotenv import load_dotenv

from .settings import RelaySettings


def main():
    load_dotenv(".env", override=False)
    settings = RelaySettings.from_env()
    uvicorn.run("codeshui_gateway.app:app", host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
