"""WSGI entry point for the load-generation control service."""

import logging
import os

from engine_app import create_app

app = create_app(os.getenv("FLASK_ENV", "production"))

if __name__ == "__main__":
    logging.getLogger(__name__).info("Cry engine running on port : %s", app.config["PORT"])
    app.run(host=app.config["HOST"], port=app.config["PORT"], threaded=True)
