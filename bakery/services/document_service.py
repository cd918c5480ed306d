# Overview: Sequence-backed identifiers for orders, deliveries, purchase orders, batches and POS documents.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from .concurrency import run_with_retry


# document_type -> prefix
DOCUMENT_PREFIXES = {
    "ORDER": "ORD",
    "DELIVERY": "DEL",
    "PURCHASE_ORDER": "PO",
    "PRODUCTION": "BATCH",
    "POS_ORDER": "POS",
    "RECEIPT": "RCP",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_next_number(document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )


def next_document_number(document_type: str, *, pad: int = 6) -> str:
    """
    Atomically allocate the next number for a document type, e.g. ORD-000042.

    The increment is a single UPDATE ... SET next_number = next_number + 1, so
    two concurrent creators can never read the same value.
    """
    prefix = DOCUMENT_PREFIXES.get(document_type)
    if not prefix:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    def _op() -> str:
        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            next_num = _current_next_number(document_type) - 1
        else:
            seq = DocumentSequence(document_type=document_type, next_number=2)
            try:
                with db.session.begin_nested():
                    db.session.add(seq)
                next_num = 1
            except IntegrityError:
                # Lost the race to create the row; the winner's row now exists.
                result = db.session.execute(stmt)
                if not result.rowcount:
                    raise
                db.session.flush()
                next_num = _current_next_number(document_type) - 1

        return f"{prefix}-{next_num:0{pad}d}"

    return run_with_retry(_op)
