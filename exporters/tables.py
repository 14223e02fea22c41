"""
Resolución de las tablas a exportar.

Dos modos:
- Lista explícita: se usa tal cual, en el orden configurado. No se valida
  que las tablas existan; eso se descubre al abrir el cursor (QueryError).
- Auto-descubrimiento (POSTGRES_ALL_TABLES=true): se consulta
  information_schema.tables y la lista explícita se ignora por completo.
"""

import psycopg2
from psycopg2 import sql

from .errors import DiscoveryError

# Solo tablas base: excluye vistas, tablas foráneas y tablas de sistema
# (pg_catalog e information_schema no se consultan porque se filtra por schema)
BASE_TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s AND table_type = 'BASE TABLE'
"""


def table_identifier(table_name, default_schema="public", qualified=True):
    """
    Construye el identificador SQL citado para una tabla.

    Con qualified=True acepta nombres calificados ('ventas.orders'); si no,
    usa default_schema. Los nombres que vienen del catálogo se pasan con
    qualified=False: en PostgreSQL una tabla citada puede llamarse "a.b" y
    ese punto es parte del nombre. El citado con sql.Identifier evita
    inyección con nombres arbitrarios.

    Ejemplo:
        >>> table_identifier('users')                    # "public"."users"
        >>> table_identifier('ventas.orders')            # "ventas"."orders"
        >>> table_identifier('a.b', qualified=False)     # "public"."a.b"
    """
    if qualified and "." in table_name:
        schema, name = table_name.split(".", 1)
    else:
        schema, name = default_schema, table_name
    return sql.Identifier(schema, name)


def list_base_tables(conn, schema):
    """
    Lista las tablas base de un schema en el orden reportado por el catálogo.

    Raises:
        DiscoveryError: Si la consulta al catálogo falla
    """
    try:
        with conn.cursor() as cursor:
            cursor.execute(BASE_TABLES_QUERY, (schema,))
            return [row[0] for row in cursor.fetchall()]
    except psycopg2.Error as e:
        raise DiscoveryError(
            f"error consultando tablas del schema '{schema}': {e}"
        ) from e


def resolve_tables(explicit_tables, all_tables, source, schema=None):
    """
    Determina la secuencia de tablas a exportar.

    Args:
        explicit_tables: Lista configurada en POSTGRES_TABLES
        all_tables: Si es True se descubren todas las tablas base
        source: SourceDatabase (solo se usa con all_tables=True)
        schema: Schema a inspeccionar (default: source.schema)

    Returns:
        list: Nombres de tabla. Con descubrimiento automático no se garantiza
              ningún orden particular.

    Raises:
        DiscoveryError: Si falla la consulta al catálogo
    """
    if not all_tables:
        return list(explicit_tables)

    schema = schema or source.schema
    try:
        with source.connection() as conn:
            return list_base_tables(conn, schema)
    except psycopg2.Error as e:
        raise DiscoveryError(f"sin conexión para consultar el catálogo: {e}") from e
