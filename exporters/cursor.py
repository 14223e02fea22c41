"""
Lectura fila a fila de una tabla PostgreSQL de forma desconocida.

Se usa un cursor de servidor (named cursor de psycopg2): la consulta
`SELECT * FROM tabla` se declara en el servidor y el driver trae filas en
bloques de `fetch_size`, así una tabla de millones de filas no se
materializa en memoria del cliente.

Las columnas (ColumnDescriptor) se obtienen una sola vez por stream, de
cursor.description, y se reutilizan en todas las filas: la forma del
resultado de una consulta es fija.
"""

import itertools
import sys
from collections import namedtuple

import psycopg2
from psycopg2 import sql

from .errors import QueryError, ScanError
from .tables import table_identifier

ColumnDescriptor = namedtuple("ColumnDescriptor", ["name", "index"])

_cursor_ids = itertools.count(1)


class RowStream:
    """
    Stream perezoso de filas de una tabla.

    Uso:
        stream = open_cursor('users', conn)
        try:
            while True:
                item = stream.next()
                if item is None:
                    break
                columns, values = item
        finally:
            stream.close()

    Attributes:
        table (str): Tabla que se está leyendo
        columns (list): ColumnDescriptor de la consulta; None hasta la primera fila
        rows_read (int): Filas entregadas hasta ahora
    """

    def __init__(self, table, cursor):
        self.table = table
        self.columns = None
        self.rows_read = 0
        self._cursor = cursor
        self._rows = iter(cursor)
        self._exhausted = False

    def next(self):
        """
        Avanza una fila.

        Returns:
            tuple: (columns, values) con los valores crudos en orden posicional,
                   o None cuando el stream terminó (distinto de un error)

        Raises:
            ScanError: Si la fila no se puede leer (decodificación de texto,
                       conversión de tipo, protocolo)
        """
        if self._exhausted:
            return None
        try:
            row = next(self._rows)
        except StopIteration:
            self._exhausted = True
            return None
        except (psycopg2.Error, UnicodeDecodeError, ValueError) as e:
            # UnicodeDecodeError/ValueError: el typecaster no pudo convertir el valor
            raise ScanError(
                self.table, f"error leyendo fila {self.rows_read + 1}: {e}"
            ) from e

        if self.columns is None:
            # En cursores de servidor description existe recién tras el primer FETCH
            self.columns = describe_columns(self._cursor.description)

        self.rows_read += 1
        return self.columns, row

    def __iter__(self):
        while True:
            item = self.next()
            if item is None:
                return
            yield item

    def close(self):
        try:
            self._cursor.close()
        except psycopg2.Error as e:
            # El cursor ya no existe si la transacción quedó abortada
            print(f"⚠️  {self.table}: no se pudo cerrar el cursor: {e}", file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def describe_columns(description):
    """Convierte cursor.description en una lista de ColumnDescriptor."""
    return [ColumnDescriptor(column[0], index) for index, column in enumerate(description)]


def open_cursor(table_name, conn, schema="public", fetch_size=2000, qualified=True):
    """
    Abre un stream sobre todas las filas y columnas de una tabla.

    Sin WHERE, sin ORDER BY, sin paginación SQL: el orden es el que
    devuelva PostgreSQL.

    Args:
        table_name: Nombre de la tabla (opcionalmente 'schema.tabla')
        conn: Conexión psycopg2 dedicada a este stream
        schema: Schema para nombres sin calificar
        fetch_size: Filas traídas por cada FETCH del cursor de servidor
        qualified: Si es False el nombre nunca se separa en schema.tabla
                   (nombres descubiertos en el catálogo)

    Returns:
        RowStream

    Raises:
        QueryError: Si la tabla no existe o no hay permisos
    """
    query = sql.SQL("SELECT * FROM {}").format(table_identifier(table_name, schema, qualified))
    cursor = conn.cursor(name=f"pgmongoexport_{next(_cursor_ids)}")
    cursor.itersize = fetch_size
    try:
        cursor.execute(query)
    except psycopg2.Error as e:
        raise QueryError(table_name, f"error abriendo cursor: {e}") from e
    return RowStream(table_name, cursor)
