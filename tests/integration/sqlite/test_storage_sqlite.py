"""
End-to-end storage tests against SQLite, with small data-access objects
built on top the way applications use the storage.
"""
import datetime
import hashlib
import sqlite3
from dataclasses import dataclass
from decimal import Decimal

import pytest
import qstorage
from qstorage import DriverFailure, load_queries


def sha256(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()


@dataclass
class User:
    userid: str
    password: str
    email: str


class UsersDao:
    """Users CRUD on named queries, one immediate write per call"""

    columns = [str, str, str]

    def __init__(self, storage):
        self.storage = storage

    def insert(self, user: User) -> int:
        return self.storage.write('users.insert', [user.userid, user.password, user.email])

    def find_by_pk(self, userid: str) -> User | None:
        rows = self.storage.read('users.select.by.pk', self.columns, [userid])
        return User(*rows[0].columns) if rows else None

    def find_all(self) -> list[User]:
        return [User(*row.columns) for row in self.storage.read('users.select.all', self.columns)]

    def update(self, user: User) -> int:
        return self.storage.write('users.update', [user.password, user.email, user.userid])

    def delete(self, userid: str) -> int:
        return self.storage.write('users.delete', [userid])


@dataclass
class Pagamento:
    pag_codice: int
    pag_int_codice: int
    pag_importo: Decimal
    pag_data_pagamento: datetime.date
    pag_cp_codice: int
    pag_stato: int
    pag_cc: str
    pag_sisare_tipo: str


class PagamentoDao:
    """Batched payment inserts"""

    columns = [int, int, Decimal, datetime.date, int, int, str, str]

    def __init__(self, storage, batch_size: int):
        self.storage = storage
        self.batch_size = batch_size

    def insert(self, p: Pagamento) -> int:
        return self.storage.write('pagamento.insert', [
            p.pag_codice, p.pag_int_codice, str(p.pag_importo), p.pag_data_pagamento.isoformat(),
            p.pag_cp_codice, p.pag_stato, p.pag_cc, p.pag_sisare_tipo,
            ], self.batch_size)

    def find_by_pk(self, key: int) -> Pagamento | None:
        rows = self.storage.read('pagamento.select.by.pk', self.columns, [key])
        return Pagamento(*rows[0].columns) if rows else None

    def count(self) -> int:
        return self.storage.read('pagamento.count', [int])[0][0]


def _pagamento(codice: int) -> Pagamento:
    return Pagamento(codice, 1, Decimal('100.00'), datetime.date(2024, 3, 1), 1, 1, '000123456', 'AAA')


def test_users_crud(sl_conn, users_properties):
    """Test insert, read, update and delete through a DAO"""
    dylan = User('dylan', sha256('changeit'), 'dylan@example.com')
    groucho = User('groucho', sha256('changeit'), 'groucho@example.com')
    block = User('block', sha256('changeit'), 'block@example.com')

    with qstorage.create(sl_conn, load_queries(users_properties)) as storage:
        dao = UsersDao(storage)

        assert dao.insert(dylan) == 1
        assert dao.find_by_pk('dylan') == dylan

        dao.insert(groucho)
        dao.insert(block)
        assert [u.userid for u in dao.find_all()] == ['block', 'dylan', 'groucho']

        dylan.password = sha256('secret')
        assert dao.update(dylan) == 1
        assert dao.delete('block') == 1
        assert dao.delete('block') == 0

        assert dao.find_all() == [dylan, groucho]
        assert dao.find_by_pk('block') is None
        assert len(storage.prepared_names()) == 5


def test_batched_inserts(sl_conn, pagamento_properties):
    """Test batched writes return 0 until each batch flushes"""
    with qstorage.create(sl_conn, load_queries(pagamento_properties)) as storage:
        dao = PagamentoDao(storage, batch_size=100)

        results = [dao.insert(_pagamento(i + 1)) for i in range(1000)]

        assert results.count(100) == 10
        assert sum(results) == 1000
        assert dao.count() == 1000
        assert dao.find_by_pk(1) == _pagamento(1)
        assert dao.find_by_pk(1000) == _pagamento(1000)
        assert dao.find_by_pk(1001) is None


def test_partial_batch_dropped_on_close(sl_conn, pagamento_properties):
    """Test bindings below the batch size are not written on close"""
    queries = load_queries(pagamento_properties)
    with qstorage.create(sl_conn, queries) as storage:
        dao = PagamentoDao(storage, batch_size=3)
        for i in range(5):
            dao.insert(_pagamento(i + 1))

    with qstorage.create(sl_conn, queries) as storage:
        assert PagamentoDao(storage, 3).count() == 3


def test_partial_batch_flushed_on_close(sl_conn, pagamento_properties):
    """Test flush_on_close writes the remaining bindings"""
    queries = load_queries(pagamento_properties)
    with qstorage.create(sl_conn, queries, flush_on_close=True) as storage:
        dao = PagamentoDao(storage, batch_size=3)
        for i in range(5):
            dao.insert(_pagamento(i + 1))

    with qstorage.create(sl_conn, queries) as storage:
        assert PagamentoDao(storage, 3).count() == 5


def test_read_many_rows_across_fetches(sl_conn, users_properties):
    """Test rows spanning several fetches keep cursor order"""
    with qstorage.create(sl_conn, load_queries(users_properties), fetch_size=7) as storage:
        for i in range(50):
            storage.write('users.insert', [f'user{i:02d}', 'x', f'user{i:02d}@example.com'])
        rows = storage.read('users.select.all', [str])

    assert [row[0] for row in rows] == [f'user{i:02d}' for i in range(50)]


def test_sqlalchemy_connection(sa_conn, users_properties):
    """Test a SQLAlchemy connection is unwrapped to its DBAPI connection"""
    with qstorage.create(sa_conn, load_queries(users_properties)) as storage:
        assert storage.dialect == 'sqlite'
        dao = UsersDao(storage)
        dao.insert(User('dylan', 'x', 'dylan@example.com'))
        assert dao.find_by_pk('dylan').email == 'dylan@example.com'


def test_closed_connection_rejected(users_properties):
    """Test closed sqlite3 connections are rejected"""
    conn = sqlite3.connect(':memory:')
    conn.close()
    with pytest.raises(qstorage.InvalidInput, match='^Invalid connection$'):
        qstorage.create(conn, load_queries(users_properties))


def test_driver_failures(sl_conn, users_properties):
    """Test constraint violations and parameter count errors come from the driver"""
    with qstorage.create(sl_conn, load_queries(users_properties)) as storage:
        storage.write('users.insert', ['dylan', 'x', 'dylan@example.com'])

        with pytest.raises(sqlite3.IntegrityError):
            storage.write('users.insert', ['dylan', 'x', 'dylan@example.com'])

        with pytest.raises(DriverFailure):
            storage.write('users.insert', ['only-one-param'])

        assert storage.read('users.select.by.pk', [str], ['dylan']) == [('dylan',)]


def test_invalid_sql_fails_on_first_use(sl_conn):
    """Test SQL is not validated until the query runs"""
    with qstorage.create(sl_conn, {'broken': 'SELEC nothing'}) as storage:
        with pytest.raises(sqlite3.OperationalError):
            storage.read('broken', [str])


if __name__ == '__main__':
    __import__('pytest').main([__file__])
