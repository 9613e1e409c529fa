import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from counter_service.models import Counter, utcnow
from counter_service.schemas import CounterOperation

logger = logging.getLogger(__name__)

# Chaque transition accepte un int ou la colonne Counter.value : la mise à jour
# s'exécute en "SET value = value + 1" dans la base.
OPERATIONS = {
    CounterOperation.increment: lambda value: value + 1,
    CounterOperation.decrement: lambda value: value - 1,
    CounterOperation.reset: lambda value: 0,
}


def _get_or_create(db: Session, clock) -> Counter:
    counter = db.query(Counter).order_by(Counter.id).first()
    if counter is None:
        counter = Counter(value=0, updated_at=clock())
        db.add(counter)
        db.flush()
        logger.info("Created counter %s", counter.id)
    return counter


def get_counter(db: Session, clock=utcnow) -> Counter:
    """Renvoie le compteur canonique, créé avec la valeur 0 si la table est vide."""
    try:
        counter = _get_or_create(db, clock)
        db.commit()
    except Exception:
        logger.exception("Counter lookup failed")
        db.rollback()
        raise
    return counter


def update_counter(db: Session, operation: CounterOperation, clock=utcnow) -> Counter:
    """Applique ``operation`` au compteur canonique et renvoie l'enregistrement mis à jour.

    ``updated_at`` avance toujours, même si ``clock`` renvoie deux fois la même heure.
    """
    operation = CounterOperation(operation)
    try:
        counter = _get_or_create(db, clock)
        now = clock()
        if now <= counter.updated_at:
            now = counter.updated_at + timedelta(microseconds=1)
        counter.value = OPERATIONS[operation](Counter.value)
        counter.updated_at = now
        db.commit()
        logger.debug("Counter %s -> %s", operation.value, counter.value)
    except Exception:
        logger.exception("Counter %s failed", operation.value)
        db.rollback()
        raise
    return counter
