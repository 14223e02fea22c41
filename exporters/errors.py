"""
Jerarquía de errores del exportador PostgreSQL → MongoDB.

POLÍTICA DE PROPAGACIÓN:
- DiscoveryError: fatal para toda la ejecución (no hay tablas que procesar)
- QueryError, ScanError, WriteError, TransferCancelled: fatales solo para
  la tabla actual; el pipeline los registra en su TransferResult y continúa
- ConfigError, StoreConnectionError: se producen antes de iniciar el
  pipeline y terminan el proceso con código 1

Los errores de driver (psycopg2, pymongo, bson) se envuelven con
`raise ... from e` para conservar la causa original.
"""


class ExportError(Exception):
    """Base de todos los errores del exportador."""


class ConfigError(ExportError):
    """Configuración faltante o malformada."""


class StoreConnectionError(ExportError):
    """No se pudo establecer o mantener conexión con PostgreSQL o MongoDB."""


class DiscoveryError(ExportError):
    """Falló la consulta al catálogo para descubrir tablas."""


class TableError(ExportError):
    """
    Error asociado a una tabla concreta.

    Attributes:
        table (str): Nombre de la tabla que se estaba procesando
        reason (str): Descripción del error sin el nombre de la tabla
    """

    def __init__(self, table, message):
        super().__init__(f"{table}: {message}")
        self.table = table
        self.reason = message


class QueryError(TableError):
    """No se pudo abrir el cursor de la tabla (no existe, sin permisos...)."""


class ScanError(TableError):
    """Falló la lectura de una fila a mitad del stream."""


class WriteError(TableError):
    """MongoDB rechazó la inserción de un documento."""


class TransferCancelled(TableError):
    """La transferencia se canceló (timeout o señal de apagado)."""
