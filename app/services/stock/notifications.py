import logging
from collections import defaultdict
from typing import Callable, Dict, List

from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]

_PENDING_KEY = "changed_tables"


class ChangeNotifier:
    """
    Table-level change notifications.

    Subscribers only learn which table changed and are expected to re-fetch
    the whole collection. Notifications fire after a successful commit; a
    rollback discards them.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[ChangeCallback]] = defaultdict(list)

    def subscribe(self, table_name: str, on_change: ChangeCallback) -> Callable[[], None]:
        """Register a callback for a table and return its unsubscribe handle."""
        self._subscribers[table_name].append(on_change)

        def unsubscribe():
            callbacks = self._subscribers.get(table_name, [])
            if on_change in callbacks:
                callbacks.remove(on_change)

        return unsubscribe

    def subscriber_count(self, table_name: str) -> int:
        return len(self._subscribers.get(table_name, []))

    def notify(self, table_name: str):
        for callback in list(self._subscribers.get(table_name, [])):
            try:
                callback(table_name)
            except Exception:
                logger.exception(f"Change subscriber for table {table_name} failed")
        logger.debug(f"Notified change on table {table_name}")

    def bind(self, session_factory: sessionmaker):
        """Collect tables touched by sessions from ``session_factory`` and notify on commit."""
        event.listen(session_factory, "after_flush", self._collect_flushed)
        event.listen(session_factory, "do_orm_execute", self._collect_executed)
        event.listen(session_factory, "after_commit", self._dispatch)
        event.listen(session_factory, "after_soft_rollback", self._discard)

    def unbind(self, session_factory: sessionmaker):
        event.remove(session_factory, "after_flush", self._collect_flushed)
        event.remove(session_factory, "do_orm_execute", self._collect_executed)
        event.remove(session_factory, "after_commit", self._dispatch)
        event.remove(session_factory, "after_soft_rollback", self._discard)

    @staticmethod
    def _pending(session: Session) -> set:
        return session.info.setdefault(_PENDING_KEY, set())

    def _collect_flushed(self, session: Session, flush_context):
        pending = self._pending(session)
        for instance in list(session.new) + list(session.dirty) + list(session.deleted):
            table = getattr(instance, "__tablename__", None)
            if table:
                pending.add(table)

    def _collect_executed(self, orm_execute_state):
        if orm_execute_state.is_update or orm_execute_state.is_delete:
            mapper = orm_execute_state.bind_mapper
            table = mapper.local_table if mapper is not None else getattr(orm_execute_state.statement, "table", None)
            if table is not None:
                self._pending(orm_execute_state.session).add(table.name)

    def _dispatch(self, session: Session):
        tables = session.info.pop(_PENDING_KEY, set())
        for table_name in sorted(tables):
            self.notify(table_name)

    def _discard(self, session: Session, previous_transaction):
        session.info.pop(_PENDING_KEY, None)


notifier = ChangeNotifier()
