"""Runs the application with ``python -m bayan``."""

import logging
import os

from . import Bayan, config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = Bayan()

if __name__ == "__main__":
    app.run(
        host=config.HOST,
        port=config.PORT,
        debug=os.environ.get("BAYAN_DEBUG") == "1",
    )
