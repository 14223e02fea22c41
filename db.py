"""
Conexiones a PostgreSQL (origen) y MongoDB (destino).

- PostgreSQL: pool de conexiones thread-safe (ThreadedConnectionPool).
  Cada tabla toma su propia conexión mientras se exporta, por lo que dos
  workers nunca comparten cursor ni buffer de filas.
- MongoDB: MongoClient es thread-safe; todas las tablas comparten el cliente.

Los errores de conexión se reportan como StoreConnectionError; decidir si
el proceso termina es responsabilidad de pgmongoexport.py.
"""

import sys
from contextlib import contextmanager

import psycopg2
from psycopg2 import sql
from psycopg2.pool import ThreadedConnectionPool
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from config import postgres_dsn_params
from exporters.errors import StoreConnectionError, QueryError
from exporters.tables import table_identifier


class SourceDatabase:
    """
    Handle del origen PostgreSQL con préstamo de conexiones por tabla.

    Attributes:
        pool: ThreadedConnectionPool de psycopg2
        schema (str): Schema por defecto para nombres de tabla sin calificar
    """

    def __init__(self, pool, schema="public"):
        self.pool = pool
        self.schema = schema

    @contextmanager
    def connection(self):
        """
        Presta una conexión del pool y la devuelve al salir.

        Al devolverla hace rollback: el exportador solo lee, y una tabla que
        falló deja la transacción abortada para la siguiente.
        """
        conn = self.pool.getconn()
        try:
            yield conn
        finally:
            try:
                conn.rollback()
            except psycopg2.Error:
                # Conexión rota: se descarta en vez de devolverla al pool
                self.pool.putconn(conn, close=True)
            else:
                self.pool.putconn(conn)

    def count_rows(self, table_name, qualified=True):
        """
        Cuenta filas de una tabla (usado por --dry-run).

        Raises:
            QueryError: Si la tabla no existe o no hay permisos
        """
        query = sql.SQL("SELECT COUNT(*) FROM {}").format(
            table_identifier(table_name, self.schema, qualified)
        )
        with self.connection() as conn:
            try:
                with conn.cursor() as cursor:
                    cursor.execute(query)
                    return cursor.fetchone()[0]
            except psycopg2.Error as e:
                raise QueryError(table_name, f"error contando filas: {e}") from e

    def close(self):
        self.pool.closeall()


def connect_to_postgres(pg_cfg, max_connections=1):
    """
    Establece el pool de conexiones a PostgreSQL.

    Args:
        pg_cfg: Sección 'postgres' de la configuración
        max_connections: Tamaño máximo del pool (= número de workers)

    Returns:
        SourceDatabase: Handle del origen

    Raises:
        StoreConnectionError: Si no puede conectar
    """
    try:
        print("🔌 Conectando a PostgreSQL...")
        pool = ThreadedConnectionPool(1, max_connections, **postgres_dsn_params(pg_cfg))
        print("✅ Conexión a PostgreSQL exitosa")
        return SourceDatabase(pool, schema=pg_cfg.get("schema", "public"))
    except psycopg2.Error as e:
        print("❌ Error de conexión a PostgreSQL", file=sys.stderr)
        print(f"   Detalle: {e}", file=sys.stderr)
        raise StoreConnectionError(f"PostgreSQL: {e}") from e


def connect_to_mongo(mongo_cfg):
    """
    Establece conexión a MongoDB y verifica con ping.

    Returns:
        tuple: (client, database) de pymongo

    Raises:
        StoreConnectionError: Si no puede conectar
    """
    try:
        print("🔌 Conectando a MongoDB...")
        client = MongoClient(mongo_cfg["uri"], serverSelectionTimeoutMS=5000)
        client.admin.command("ping")
        db = client[mongo_cfg["database"]]
        print("✅ Conexión a MongoDB exitosa")
        return client, db
    except PyMongoError as e:
        print("❌ Error de conexión a MongoDB", file=sys.stderr)
        print(f"   Detalle: {e}", file=sys.stderr)
        raise StoreConnectionError(f"MongoDB: {e}") from e
