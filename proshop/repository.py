import logging

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from .errors import ConstraintViolation, FieldError, NotFoundError, TransportError, ValidationError, WriteError
from .models import db

logger = logging.getLogger(__name__)

ASCENDING = 'asc'
DESCENDING = 'desc'


class EntityRepository:
    """Typed CRUD over one content table.

    Writes commit straight away and hand back the stored row. Nothing is
    cached: callers reload the list after every successful mutation.
    """

    def __init__(self, kind, session=None):
        self.kind = kind
        self.model = kind.model
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _column(self, name):
        column = self.model.__table__.columns.get(name)
        if column is None:
            raise ValidationError(fields=[FieldError(name, f'Cannot order {self.kind.key} by "{name}".')])
        return getattr(self.model, column.key)

    def _ordering(self, order_by, direction):
        ordering = list(self.kind.default_order)
        if order_by:
            descending = (direction or ASCENDING).lower() == DESCENDING
            ordering = [(order_by, descending)] + [item for item in ordering if item[0] != order_by]
        clauses = []
        for name, descending in ordering:
            column = self._column(name)
            clauses.append(column.desc() if descending else column.asc())
        return clauses

    def _read(self, action, query):
        try:
            return query()
        except (OperationalError, DBAPIError) as exc:
            self.session.rollback()
            logger.error('Reading %s failed during %s: %s', self.kind.key, action, exc)
            raise TransportError(f'Could not reach the database while loading {self.kind.key}.') from exc

    def list(self, order_by=None, direction=None):
        clauses = self._ordering(order_by, direction)
        return self._read('list', lambda: self.session.query(self.model).order_by(*clauses).all())

    def count(self):
        return self._read('count', lambda: self.session.query(func.count(self.model.id)).scalar() or 0)

    def get(self, entity_id):
        record = self._read('get', lambda: self.session.get(self.model, entity_id))
        if record is None:
            raise NotFoundError(f'{self.kind.label} {entity_id} no longer exists.')
        return record

    def get_by_slug(self, slug):
        if not self.kind.slug_field:
            raise NotFoundError(f'{self.kind.label} records have no slug.')
        column = getattr(self.model, self.kind.slug_field)
        record = self._read(
            'get_by_slug',
            lambda: self.session.query(self.model).filter(column == slug).order_by(self.model.id.asc()).first(),
        )
        if record is None:
            raise NotFoundError(f'{self.kind.label} "{slug}" was not found.')
        return record

    def first(self):
        return self._read('first', lambda: self.session.query(self.model).order_by(self.model.id.asc()).first())

    def _check_fields(self, values):
        allowed = self.kind.writable_columns()
        unknown = sorted(name for name in values if name not in allowed)
        if unknown:
            raise ValidationError(
                fields=[FieldError(name, f'{self.kind.label} has no editable field "{name}".') for name in unknown]
            )

    def _commit(self, action):
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.error('%s %s rejected by a constraint: %s', action, self.kind.key, exc.orig)
            raise ConstraintViolation(f'Error {action} {self.kind.label.lower()}: {exc.orig}') from exc
        except (OperationalError, DBAPIError) as exc:
            self.session.rollback()
            logger.error('%s %s failed: %s', action, self.kind.key, exc)
            raise TransportError(f'Error {action} {self.kind.label.lower()}: database unavailable.') from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception('%s %s failed unexpectedly.', action, self.kind.key)
            raise WriteError(f'Error {action} {self.kind.label.lower()}: {exc}') from exc

    def create(self, draft):
        self._check_fields(draft)
        record = self.model(**draft)
        self.session.add(record)
        self._commit('creating')
        logger.info('Created %s %s.', self.kind.key, record.id)
        return record

    def update(self, entity_id, patch):
        self._check_fields(patch)
        record = self.get(entity_id)
        # Shallow overwrite of exactly the supplied fields; no version check.
        for name, value in patch.items():
            setattr(record, name, value)
        self._commit('updating')
        logger.info('Updated %s %s (%s).', self.kind.key, entity_id, ', '.join(sorted(patch)))
        return record

    def delete(self, entity_id):
        record = self.get(entity_id)
        self.session.delete(record)
        self._commit('deleting')
        logger.info('Deleted %s %s.', self.kind.key, entity_id)
