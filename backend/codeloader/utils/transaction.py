from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from codeloader.extensions import db
from codeloader.domain.errors import StorageError

@contextmanager
def transactional(*, target=None, phase=None):
    """
    Context manager for database transactions.

    Datastore failures are re-raised as StorageError tagged with the
    target and phase; anything else propagates unchanged.
    """
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError(
            f"Database error during {phase or 'write'}: {exc}",
            target=target,
            phase=phase,
        ) from exc
    except Exception:
        db.session.rollback()
        raise
