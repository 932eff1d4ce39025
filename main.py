import logging
import os

from relay.config import RelayConfig
from relay.controller import create_app

_debug = os.getenv("DEBUG_MODE", "False").lower() == "true"
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "DEBUG" if _debug else "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

config = RelayConfig.from_env()
app = create_app(config)

if __name__ == '__main__':
    app.run(host=config.host, port=config.port, debug=config.debug, use_reloader=False)
