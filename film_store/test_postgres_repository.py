import datetime
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import psycopg2
import psycopg2.errors
import pytest
from psycopg2.pool import PoolError

from film_store.config import BackoffSettings, DSNSettings, PostgresSettings, config_from_env
from film_store.errors import StorageUnavailable
from film_store.models import FilmRecord, FilmType
from film_store.pagination import Order, PageRequest
from film_store.repository import PostgresFilmStore

needs_database = pytest.mark.skipif(
    not os.environ.get("DB_HOST"), reason="needs a postgres database, set DB_* variables"
)


class FakeCursor:
    def __init__(self, error=None):
        self.error = error

    def execute(self, query, params=None):
        if self.error:
            raise self.error

    def fetchone(self):
        return (0,)

    def close(self):
        pass


class FakeConnection:
    closed = 0

    def __init__(self, error=None):
        self.error = error

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def cursor(self):
        return FakeCursor(self.error)


class FakePool:
    """Hands out connections like ThreadedConnectionPool, failing when exhausted"""

    def __init__(self, maxconn, error=None):
        self.maxconn = maxconn
        self.error = error
        self.lock = threading.Lock()
        self.in_use = 0
        self.most_in_use = 0

    def getconn(self):
        with self.lock:
            if self.in_use >= self.maxconn:
                raise PoolError("connection pool exhausted")
            self.in_use += 1
            self.most_in_use = max(self.most_in_use, self.in_use)
        time.sleep(0.01)
        return FakeConnection(self.error)

    def putconn(self, connection, close=False):
        with self.lock:
            self.in_use -= 1

    def closeall(self):
        pass


def test_callers_wait_for_a_free_connection():
    pool = FakePool(maxconn=2)
    store = PostgresFilmStore(pool)

    with ThreadPoolExecutor(max_workers=8) as executor:
        counts = list(executor.map(lambda _: store.count(), range(16)))

    assert counts == [0] * 16
    assert pool.most_in_use <= 2
    assert pool.in_use == 0


def test_missing_table_is_unavailable_storage():
    store = PostgresFilmStore(FakePool(maxconn=1, error=psycopg2.errors.UndefinedTable("relation \"film\" does not exist")))

    with pytest.raises(StorageUnavailable) as error:
        store.count()
    assert isinstance(error.value.__cause__, psycopg2.ProgrammingError)


def test_unreachable_server_is_unavailable_storage():
    settings = PostgresSettings(
        dsn=DSNSettings(host="127.0.0.1", port=1, dbname="films", user="app", password="secret"),
        backoff=BackoffSettings(timeout_seconds=0),
    )

    with pytest.raises(StorageUnavailable) as error:
        PostgresFilmStore.from_settings(settings)
    assert isinstance(error.value.__cause__, psycopg2.OperationalError)


@pytest.fixture
def store():
    with PostgresFilmStore.from_settings(config_from_env().postgres) as store:
        store.create_schema()
        store.delete_all()
        yield store
        store.delete_all()


@needs_database
def test_find_by_title(store):
    inception = FilmRecord("Inception", FilmType.FEATURE, datetime.date(2010, 7, 16))
    store.save(inception)

    assert store.find_by_title("Inception") == inception
    assert store.find_by_title("NoSuchFilm") is None


@needs_database
def test_find_all_pages(store):
    store.save_all(
        FilmRecord(f"Film {n:02}", FilmType.SHORT, datetime.date(2000, 1, 1) + datetime.timedelta(days=n))
        for n in range(25)
    )
    store.save(FilmRecord("Undated", FilmType.SHORT))

    first = store.find_all(PageRequest(0, 10))
    last = store.find_all(PageRequest(2, 10))
    oldest = store.find_all(PageRequest.of(0, 26, Order.asc("release_date")))

    assert (len(first), first.total_elements, first.total_pages) == (10, 26, 3)
    assert len(last) == 6 and last.is_last
    assert oldest.content[0].title == "Film 00"
    assert oldest.content[-1].title == "Undated"
