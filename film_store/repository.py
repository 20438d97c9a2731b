import datetime
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Type, Union

import psycopg2
from psycopg2.extras import execute_batch
from psycopg2.pool import ThreadedConnectionPool

from film_store.backoff import backoff
from film_store.config import PostgresSettings
from film_store.errors import InvalidPageRequest, StorageUnavailable
from film_store.models import FilmRecord
from film_store.pagination import Order, Page, PageRequest
from film_store.schema import SORTABLE_COLUMNS, film_table_ddl

COLUMNS = ("title", "type", "release_date")


class FilmStore(ABC):
    """Title-keyed storage of FilmRecord values.

    Every public method borrows a connection, runs in its own transaction
    and gives the connection back, so one store can serve many callers.
    Driver connectivity errors are re-raised as StorageUnavailable.
    """

    placeholder = "%s"
    driver_errors: Tuple[Type[Exception], ...] = ()
    # first statement of find_all, pins one snapshot for the count and the slice
    snapshot_statement = ""
    table_name = FilmRecord.target_table

    @abstractmethod
    def _connect(self):
        """Context manager yielding a DB-API connection"""
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @contextmanager
    def _cursor(self):
        try:
            with self._connect() as connection:
                with connection:
                    cursor = connection.cursor()
                    try:
                        yield cursor
                    finally:
                        cursor.close()
        except self.driver_errors as e:
            logging.warning("Film storage is unavailable: %s", e)
            raise StorageUnavailable(str(e)) from e

    def _row_params(self, film: FilmRecord) -> tuple:
        return film.as_row()

    def _execute_many(self, cursor, query: str, params: List[tuple]) -> None:
        cursor.executemany(query, params)

    def _select(self, where: str = "") -> str:
        return f"SELECT {', '.join(COLUMNS)} FROM {self.table_name}{where}"

    def create_schema(self) -> None:
        """Create the film table unless it already exists"""
        with self._cursor() as cursor:
            cursor.execute(film_table_ddl(self.table_name))

    def find_by_title(self, title: str) -> Optional[FilmRecord]:
        query = self._select(f" WHERE title = {self.placeholder}")
        logging.debug("Looking up film %r", title)
        with self._cursor() as cursor:
            cursor.execute(query, (title,))
            row = cursor.fetchone()
            return FilmRecord.from_row(row) if row else None

    def find_all(self, request: PageRequest) -> Page[FilmRecord]:
        order_by = self._order_by(request)
        query = self._select(
            f" ORDER BY {order_by} LIMIT {self.placeholder} OFFSET {self.placeholder}"
        )
        with self._cursor() as cursor:
            if self.snapshot_statement:
                cursor.execute(self.snapshot_statement)
            cursor.execute(f"SELECT COUNT(*) FROM {self.table_name}")
            total = cursor.fetchone()[0]
            films = []
            if request.offset < total:
                cursor.execute(query, (request.size, request.offset))
                films = [FilmRecord.from_row(row) for row in cursor.fetchall()]
        logging.debug(
            "Fetched page %s of films (%s of %s)", request.page, len(films), total
        )
        return Page(films, request, total)

    @staticmethod
    def _order_by(request: PageRequest) -> str:
        orders = list(request.sort)
        for order in orders:
            if order.field not in SORTABLE_COLUMNS:
                raise InvalidPageRequest(
                    f"Can't sort films by {order.field!r}, "
                    f"expected one of {', '.join(SORTABLE_COLUMNS)}"
                )
        # title is unique, appending it makes the order total
        if not any(order.field == "title" for order in orders):
            orders.append(Order.asc("title"))
        return ", ".join(
            f"{order.field} {order.direction.value} NULLS LAST" for order in orders
        )

    def _upsert_query(self) -> str:
        placeholders = ", ".join(self.placeholder for _ in COLUMNS)
        return f"""
            INSERT INTO {self.table_name} ({', '.join(COLUMNS)})
            VALUES ({placeholders})
            ON CONFLICT (title) DO UPDATE
            SET type = excluded.type, release_date = excluded.release_date
        """

    def save(self, film: FilmRecord) -> FilmRecord:
        """Insert the film or replace the stored film with the same title"""
        with self._cursor() as cursor:
            cursor.execute(self._upsert_query(), self._row_params(film))
        return film

    def save_all(self, films: Iterable[FilmRecord]) -> List[FilmRecord]:
        films = list(films)
        if not films:
            return films
        with self._cursor() as cursor:
            self._execute_many(
                cursor, self._upsert_query(), [self._row_params(film) for film in films]
            )
        logging.info("Saved %s films", len(films))
        return films

    def exists_by_title(self, title: str) -> bool:
        query = f"SELECT 1 FROM {self.table_name} WHERE title = {self.placeholder} LIMIT 1"
        with self._cursor() as cursor:
            cursor.execute(query, (title,))
            return cursor.fetchone() is not None

    def count(self) -> int:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {self.table_name}")
            return cursor.fetchone()[0]

    def delete_by_title(self, title: str) -> bool:
        """Delete a film, returns False when there was nothing to delete"""
        query = f"DELETE FROM {self.table_name} WHERE title = {self.placeholder}"
        with self._cursor() as cursor:
            cursor.execute(query, (title,))
            return cursor.rowcount > 0

    def delete_all(self) -> int:
        with self._cursor() as cursor:
            cursor.execute(f"DELETE FROM {self.table_name}")
            return cursor.rowcount


class PostgresFilmStore(FilmStore):
    # ProgrammingError covers a missing film table, as OperationalError does in SQLite
    driver_errors = (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.ProgrammingError)
    snapshot_statement = "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ, READ ONLY"

    def __init__(self, pool: ThreadedConnectionPool) -> None:
        self.pool = pool
        # getconn raises PoolError instead of waiting when all connections are out
        self.slots = threading.BoundedSemaphore(pool.maxconn)

    @classmethod
    def from_settings(cls, settings: PostgresSettings) -> "PostgresFilmStore":
        """Open a connection pool, waiting for the database to come up"""
        retry = settings.backoff

        @backoff(
            exceptions=(psycopg2.OperationalError,),
            start_sleep_time=retry.start_sleep_time,
            factor=retry.factor,
            border_sleep_time=retry.border_sleep_time,
            timeout=datetime.timedelta(seconds=retry.timeout_seconds),
        )
        def create_pool():
            return ThreadedConnectionPool(
                settings.min_connections, settings.max_connections, **settings.dsn.model_dump()
            )

        try:
            pool = create_pool()
        except psycopg2.OperationalError as e:
            raise StorageUnavailable(str(e)) from e
        logging.info(
            "Connected to postgres at %s:%s", settings.dsn.host, settings.dsn.port
        )
        return cls(pool)

    @contextmanager
    def _connect(self):
        with self.slots:
            connection = self.pool.getconn()
            try:
                yield connection
            finally:
                self.pool.putconn(connection, close=bool(connection.closed))

    def _execute_many(self, cursor, query: str, params: List[tuple]) -> None:
        execute_batch(cursor, query, params)

    def close(self) -> None:
        self.pool.closeall()


class SQLiteFilmStore(FilmStore):
    """Film store over a SQLite file, opening one connection per call"""

    placeholder = "?"
    driver_errors = (sqlite3.OperationalError, sqlite3.InterfaceError)
    snapshot_statement = "BEGIN"

    def __init__(self, database_path: Union[str, Path], timeout: float = 5.0) -> None:
        self.database_path = str(database_path)
        self.timeout = timeout

    @contextmanager
    def _connect(self):
        connection = sqlite3.connect(self.database_path, timeout=self.timeout)
        try:
            yield connection
        finally:
            connection.close()

    def _row_params(self, film: FilmRecord) -> tuple:
        title, film_type, release_date = film.as_row()
        return title, film_type, release_date.isoformat() if release_date else None
