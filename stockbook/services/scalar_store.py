from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from stockbook.db import make_engine, make_sessionmaker
from stockbook.entities import Identity, NavigationState
from stockbook.errors import StoreUnavailable, ValidationFailure, WriteFailure
from stockbook.models import ScalarBase, ScalarRow
from stockbook.schemas import identity_from_json, identity_to_json, navigation_from_json, navigation_to_json

logger = logging.getLogger(__name__)

TOTAL_EARNINGS = 'TOTAL_EARNINGS'
APP_STATE = 'APP_STATE'
USER = 'USER'


def parse_earnings(text: str | None) -> Decimal:
    if not text:
        return Decimal('0')
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        return Decimal('0')
    return value if value.is_finite() else Decimal('0')


class ScalarStore:
    """Synchronous text key/value store for small values and snapshot bundles."""

    def __init__(self, url: str, *, key_prefix: str = '') -> None:
        self.url = url
        self.key_prefix = key_prefix
        self._engine = make_engine(url)
        try:
            ScalarBase.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            self._engine.dispose()
            raise StoreUnavailable(f'Could not open scalar store at {url}') from exc
        self._sessions = make_sessionmaker(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    def app_key(self, name: str) -> str:
        return f'{self.key_prefix}{name}'

    def set_scalar(self, key: str, value: str) -> None:
        try:
            with self._sessions() as session, session.begin():
                session.merge(ScalarRow(key=key, value=value))
        except SQLAlchemyError as exc:
            raise WriteFailure(f'Failed to write scalar {key!r}') from exc

    def get_scalar(self, key: str) -> str | None:
        try:
            with self._sessions() as session:
                return session.execute(select(ScalarRow.value).where(ScalarRow.key == key)).scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception('Failed to read scalar %s', key)
            return None

    def delete_scalar(self, key: str) -> None:
        try:
            with self._sessions() as session, session.begin():
                session.execute(delete(ScalarRow).where(ScalarRow.key == key))
        except SQLAlchemyError as exc:
            raise WriteFailure(f'Failed to delete scalar {key!r}') from exc

    def get_earnings(self) -> Decimal:
        return parse_earnings(self.get_scalar(self.app_key(TOTAL_EARNINGS)))

    def save_earnings(self, amount: Decimal) -> None:
        safe_amount = amount if amount.is_finite() else Decimal('0')
        self.set_scalar(self.app_key(TOTAL_EARNINGS), format(safe_amount, 'f'))

    def get_navigation(self) -> NavigationState | None:
        raw = self.get_scalar(self.app_key(APP_STATE))
        if raw is None:
            return None
        try:
            return navigation_from_json(raw)
        except ValidationFailure:
            logger.warning('Ignoring unreadable navigation state')
            return None

    def save_navigation(self, navigation: NavigationState) -> None:
        self.set_scalar(self.app_key(APP_STATE), navigation_to_json(navigation))

    def get_identity(self) -> Identity | None:
        raw = self.get_scalar(self.app_key(USER))
        if raw is None:
            return None
        try:
            return identity_from_json(raw)
        except ValidationFailure:
            logger.warning('Ignoring unreadable stored identity')
            return None

    def save_identity(self, identity: Identity) -> None:
        self.set_scalar(self.app_key(USER), identity_to_json(identity))

    def clear_identity(self) -> None:
        self.delete_scalar(self.app_key(USER))
