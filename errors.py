import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class StorageError(ApiError):
    status_code = 500


@contextmanager
def storage_errors(message: str):
    """Turn store failures raised inside the block into a StorageError carrying `message`."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception(message)
        raise StorageError(message) from exc
