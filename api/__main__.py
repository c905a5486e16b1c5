"""
Development server: python -m api
Production runs create_app() under a WSGI server with several threads;
revocation and check-in state live in Redis and the database, never in
the process.
"""
import logging
import os

from . import create_app

logger = logging.getLogger("api")


def main():
    app = create_app(os.getenv("APP_ENV"))
    host = os.getenv("FLASK_RUN_HOST", "127.0.0.1")
    port = int(os.getenv("FLASK_RUN_PORT", "8000"))
    debug = os.getenv("FLASK_DEBUG", str(app.config["DEBUG"])).lower() in ("1", "true", "yes")
    logger.info("serving on %s:%s (env=%s, revocation=%s)", host, port,
                app.config["APP_ENV"], app.config["REVOCATION_BACKEND"])
    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
