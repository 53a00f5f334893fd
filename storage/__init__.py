# Storage layer: persistent (SQLAlchemy) and volatile (in-process) backends

from .errors import ConnectivityError, DuplicateKeyError, EntityValidationError, StorageError
from .query import DocumentQuery, FindOptions
