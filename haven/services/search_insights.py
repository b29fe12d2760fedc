import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ..models import SearchInsight

logger = logging.getLogger(__name__)

MAX_TERM_LENGTH = 100


def normalize_term(query: str) -> str:
    return " ".join((query or "").lower().split())[:MAX_TERM_LENGTH]


def record_search(db: Session, context: str, query: str) -> None:
    """Count a search term for the admin insights page. Failures are only logged."""
    term = normalize_term(query)
    if len(term) < 2:
        return
    try:
        row = (
            db.query(SearchInsight)
            .filter(SearchInsight.context == context, SearchInsight.term == term)
            .first()
        )
        if row:
            row.count += 1
            row.last_searched_at = datetime.utcnow()
        else:
            db.add(SearchInsight(context=context, term=term, count=1))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(f"Failed to record search term '{term}' ({context}): {e}")
