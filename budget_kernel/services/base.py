"""
BaseService -- abstract base for services that write through a session.

Responsibility:
    Provides the common constructor and session-handling contract.  Concrete
    services receive a SQLAlchemy ``Session`` and use ``session.flush()``
    (directly or through repositories) -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries belong to the caller.  A clone therefore commits
    or rolls back as one unit inside ``session_scope()``, and an import's
    per-item SAVEPOINTs nest inside the caller's transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel and duplication services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()`` on the outer transaction.
    """

    def __init__(self, session: Session):
        self.session = session
