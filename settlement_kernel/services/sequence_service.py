"""
SequenceService -- monotonic counters and human-readable document numbers.

Responsibility:
    Provides strictly increasing counter values from a dedicated counter
    table, and builds document numbers on top of them:
    ``prefix + YYYYMMDD + 4-digit daily counter`` (e.g. ``HX202401150001``
    for the first verification record of 15 Jan 2024).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by the
    settlement module services whenever a payable (YF), statement (DZ),
    payment request (QK), payment order (FK) or verification record (HX)
    is created.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next value;
      aggregate-max-plus-one is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits; rollback returns the value.

Failure modes:
    - IntegrityError if two processes create the same counter row at once.
      The engine is single-process, so this is not retried.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from settlement_kernel.db.base import Base
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "HX20240115")
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            Returns an integer > 0 strictly greater than any value previously
            returned for this name within committed transactions.
        """
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=0)
            self._session.add(counter)

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None


class DocumentNumberService:
    """
    Builds human-readable document numbers.

    Contract:
        ``next_number("HX")`` -> ``"HX" + YYYYMMDD + NNNN`` where the date
        comes from the injected clock and NNNN restarts at 0001 every day
        for every prefix.
    """

    VERIFICATION = "HX"
    PAYABLE = "YF"
    STATEMENT = "DZ"
    PAYMENT_REQUEST = "QK"
    PAYMENT_ORDER = "FK"

    def __init__(self, session: Session, clock: Clock | None = None, width: int = 4):
        self._sequences = SequenceService(session)
        self._clock = clock or SystemClock()
        self._width = width

    def next_number(self, prefix: str) -> str:
        """Allocate the next document number for ``prefix``."""
        if not prefix:
            raise ValueError("Document number prefix cannot be empty")
        stem = f"{prefix}{self._clock.today():%Y%m%d}"
        value = self._sequences.next_value(stem)
        number = f"{stem}{value:0{self._width}d}"
        logger.debug("document_number_allocated", extra={"document_no": number})
        return number
