"""
ASGI entry point for the voice chat server.

`uvicorn server.asgi:app` and `voice-chat` (server.main) both come through
here, so this is the single place .env is loaded before AppConfig reads the
environment.
"""

from dotenv import load_dotenv

load_dotenv()

from config import AppConfig  # pylint: disable=wrong-import-position
from server.app import create_app  # pylint: disable=wrong-import-position

config = AppConfig.load_from_env()
app = create_app(config)
