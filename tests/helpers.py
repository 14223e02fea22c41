"""
Dobles de prueba compartidos por todos los tests.

Simulan lo mínimo de psycopg2 (conexión, cursor de servidor, catálogo) y de
pymongo (database, colección) que usa el exportador, para validar el
pipeline sin bases de datos reales.

Uso:
    source = FakeSource({
        'users': FakeTable(['id', 'name'], [(1, 'Ana'), (2, 'Bo')]),
    })
    database = FakeDatabase()
"""

import sys
import os
import threading
from contextlib import contextmanager

import psycopg2
from bson import BSON
from pymongo.errors import PyMongoError

# Agregar directorio raíz al path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exporters.writer import EXPORT_CODEC_OPTIONS


class FakeTable:
    """
    Tabla simulada.

    Args:
        columns: Nombres de columna en orden posicional
        rows: Tuplas de valores
        fail_after: Si se indica, el cursor lanza scan_error después de
                    entregar esa cantidad de filas
        scan_error: Excepción psycopg2 a lanzar a mitad del stream
    """

    def __init__(self, columns, rows, fail_after=None, scan_error=None):
        self.columns = columns
        self.rows = rows
        self.fail_after = fail_after
        self.scan_error = scan_error or psycopg2.DataError("invalid byte sequence")


class FakeNamedCursor:
    """Cursor de servidor: description existe recién tras la primera fila."""

    def __init__(self, connection, name):
        self.connection = connection
        self.name = name
        self.itersize = 2000
        self.description = None
        self.closed = False
        self.executed = None
        self._table = None

    def execute(self, query, params=None):
        table_name = query.seq[-1].strings[-1]
        self.executed = query.seq[-1].strings
        self.connection.opened_tables.append(table_name)
        table = self.connection.tables.get(table_name)
        if table is None:
            raise psycopg2.ProgrammingError(f'relation "{table_name}" does not exist')
        self._table = table

    def __iter__(self):
        table = self._table
        for position, row in enumerate(table.rows):
            if table.fail_after is not None and position == table.fail_after:
                raise table.scan_error
            self.description = [(name, None) for name in table.columns]
            yield row
        if table.fail_after is not None and table.fail_after >= len(table.rows):
            raise table.scan_error

    def close(self):
        self.closed = True


class FakeCatalogCursor:
    """Cursor normal usado para consultar information_schema o contar filas."""

    def __init__(self, connection):
        self.connection = connection
        self._result = []

    def execute(self, query, params=None):
        if self.connection.catalog_error is not None:
            raise self.connection.catalog_error
        if params is not None:
            self.connection.catalog_schemas.append(params[0])
            self._result = [(name,) for name in self.connection.catalog]
        else:
            table_name = query.seq[-1].strings[-1]
            table = self.connection.tables.get(table_name)
            if table is None:
                raise psycopg2.ProgrammingError(f'relation "{table_name}" does not exist')
            self._result = [(len(table.rows),)]

    def fetchall(self):
        return list(self._result)

    def fetchone(self):
        return self._result[0]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        return False


class FakeConnection:
    def __init__(self, source):
        self.tables = source.tables
        self.catalog = source.catalog
        self.catalog_error = source.catalog_error
        self.catalog_schemas = source.catalog_schemas
        self.opened_tables = source.opened_tables
        self.named_cursors = source.named_cursors

    def cursor(self, name=None):
        if name is None:
            return FakeCatalogCursor(self)
        cursor = FakeNamedCursor(self, name)
        self.named_cursors.append(cursor)
        return cursor


class FakeSource:
    """
    Sustituto de SourceDatabase.

    Attributes:
        borrowed (int): Conexiones prestadas en total
        active (int): Conexiones prestadas en este momento
        opened_tables (list): Tablas sobre las que se abrió cursor, en orden
    """

    def __init__(self, tables=None, catalog=None, catalog_error=None, schema="public"):
        self.tables = tables or {}
        self.catalog = catalog if catalog is not None else list(self.tables)
        self.catalog_error = catalog_error
        self.schema = schema
        self.catalog_schemas = []
        self.opened_tables = []
        self.named_cursors = []
        self.borrowed = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @contextmanager
    def connection(self):
        with self._lock:
            self.borrowed += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            yield FakeConnection(self)
        finally:
            with self._lock:
                self.active -= 1

    def count_rows(self, table_name, qualified=True):
        return len(self.tables[table_name].rows)


class FakeCollection:
    """
    Colección simulada que guarda los documentos como listas de pares.

    Args:
        fail_on_insert: Número de insert (1-based) que debe fallar
    """

    def __init__(self, name, fail_on_insert=None, error=None):
        self.name = name
        self.documents = []
        self.insert_calls = 0
        self.fail_on_insert = fail_on_insert
        self.error = error or PyMongoError("connection closed")

    def insert_one(self, document):
        self.insert_calls += 1
        if self.fail_on_insert is not None and self.insert_calls == self.fail_on_insert:
            raise self.error
        self.documents.append(list(document.items()))


class EncodingCollection(FakeCollection):
    """Colección que codifica a BSON de verdad, como hace insert_one de pymongo."""

    def insert_one(self, document):
        self.insert_calls += 1
        BSON.encode(document, codec_options=EXPORT_CODEC_OPTIONS)
        self.documents.append(list(document.items()))


class FakeDatabase:
    """Database simulada; las colecciones persisten entre ejecuciones."""

    def __init__(self, failing=None):
        self.collections = {}
        self.codec_options_used = {}
        self._failing = failing or {}

    def get_collection(self, name, codec_options=None):
        self.codec_options_used[name] = codec_options
        if name not in self.collections:
            fail_on_insert = self._failing.get(name)
            self.collections[name] = FakeCollection(name, fail_on_insert=fail_on_insert)
        return self.collections[name]

    def __getitem__(self, name):
        return self.get_collection(name)


def users_table():
    """Tabla de ejemplo: users(id, name, deleted_at)."""
    return FakeTable(
        ["id", "name", "deleted_at"],
        [(1, "Ana", None), (2, "Bo", "2023-01-01")],
    )
