import logging

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from models import storage
from models.errors import RevocationStoreError

logger = logging.getLogger(__name__)

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API, database and revocation store are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
            database:
              type: string
              example: ok
            revocation_store:
              type: string
              example: ok
      503:
        description: A dependency is unavailable
    """
    checks = {"database": "ok", "revocation_store": "ok"}
    try:
        storage.ping()
    except SQLAlchemyError as exc:
        logger.error("database health check failed: %s", exc)
        checks["database"] = "unavailable"
    try:
        current_app.extensions["revocation_store"].ping()
    except RevocationStoreError as exc:
        logger.error("revocation store health check failed: %s", exc)
        checks["revocation_store"] = "unavailable"

    healthy = all(v == "ok" for v in checks.values())
    body = {"status": "ok" if healthy else "degraded", "version": "1.0.0", **checks}
    return body, 200 if healthy else 503
