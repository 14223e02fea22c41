"""
Tests del RowStream sobre un cursor de servidor simulado.
"""

import sys
import os

import psycopg2
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exporters.cursor import ColumnDescriptor, describe_columns, open_cursor
from exporters.errors import QueryError, ScanError
from tests.helpers import FakeConnection, FakeSource, FakeTable, users_table


def connection_for(tables):
    return FakeConnection(FakeSource(tables))


def test_stream_yields_rows_with_descriptors():
    """Cada next() entrega (columnas, valores); None al terminar."""
    print("\n🔍 Test: Stream de filas")

    conn = connection_for({"users": users_table()})
    stream = open_cursor("users", conn)

    columns, values = stream.next()
    assert columns == [
        ColumnDescriptor("id", 0),
        ColumnDescriptor("name", 1),
        ColumnDescriptor("deleted_at", 2),
    ]
    assert values == (1, "Ana", None)

    columns_again, values = stream.next()
    assert columns_again is columns  # mismas columnas para todo el stream
    assert values == (2, "Bo", "2023-01-01")

    assert stream.next() is None
    assert stream.next() is None
    assert stream.rows_read == 2
    print("   ✅ 2 filas y fin de stream")


def test_cursor_is_server_side_with_fetch_size():
    conn = connection_for({"users": users_table()})
    stream = open_cursor("users", conn, schema="ventas", fetch_size=500)

    cursor = conn.named_cursors[-1]
    assert cursor.name.startswith("pgmongoexport_")
    assert cursor.itersize == 500
    assert cursor.executed == ("ventas", "users")

    stream.close()
    assert cursor.closed


def test_empty_table_ends_immediately():
    conn = connection_for({"empty": FakeTable(["id"], [])})
    with open_cursor("empty", conn) as stream:
        assert stream.next() is None
        assert stream.columns is None
        assert list(stream) == []


def test_missing_table_raises_query_error():
    """Abrir cursor sobre una tabla inexistente es QueryError."""
    conn = connection_for({})

    with pytest.raises(QueryError) as excinfo:
        open_cursor("ghost", conn)
    assert excinfo.value.table == "ghost"
    assert isinstance(excinfo.value.__cause__, psycopg2.ProgrammingError)


def test_scan_failure_raises_scan_error():
    """Un error a mitad del stream no se salta la fila: lanza ScanError."""
    print("\n🔍 Test: Error de lectura a mitad del stream")

    table = FakeTable(["id"], [(1,), (2,), (3,)], fail_after=2)
    stream = open_cursor("broken", connection_for({"broken": table}))

    assert stream.next()[1] == (1,)
    assert stream.next()[1] == (2,)
    with pytest.raises(ScanError) as excinfo:
        stream.next()
    assert excinfo.value.table == "broken"
    assert "fila 3" in str(excinfo.value)
    print(f"   ✅ {excinfo.value}")


def test_iteration_protocol():
    stream = open_cursor("users", connection_for({"users": users_table()}))
    rows = [values for _, values in stream]
    assert rows == [(1, "Ana", None), (2, "Bo", "2023-01-01")]


def test_describe_columns():
    description = [("id", 23), ("name", 25)]
    assert describe_columns(description) == [
        ColumnDescriptor("id", 0),
        ColumnDescriptor("name", 1),
    ]


@pytest.mark.parametrize(
    "error",
    [
        UnicodeDecodeError("ascii", b"\xff", 0, 1, "ordinal not in range(128)"),
        ValueError("year 0 is out of range"),
    ],
)
def test_decode_failure_raises_scan_error(error):
    """Un valor que el typecaster no puede convertir también es ScanError."""
    table = FakeTable(["name"], [("Ana",), ("Bo",)], fail_after=1, scan_error=error)
    stream = open_cursor("latin", connection_for({"latin": table}))

    assert stream.next()[1] == ("Ana",)
    with pytest.raises(ScanError) as excinfo:
        stream.next()
    assert "fila 2" in str(excinfo.value)
    assert excinfo.value.__cause__ is error


def test_unqualified_name_keeps_dot():
    """Con qualified=False 'a.b' es un nombre de tabla, no schema.tabla."""
    conn = connection_for({"a.b": users_table()})
    with open_cursor("a.b", conn, qualified=False) as stream:
        assert stream.next()[1] == (1, "Ana", None)
    assert conn.named_cursors[-1].executed == ("public", "a.b")


def test_close_failure_warns_on_stderr(capsys):
    conn = connection_for({"users": users_table()})
    stream = open_cursor("users", conn)

    def broken_close():
        raise psycopg2.InterfaceError("cursor already closed")

    conn.named_cursors[-1].close = broken_close
    stream.close()

    assert "no se pudo cerrar el cursor" in capsys.readouterr().err
