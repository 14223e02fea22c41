"""
Orquestador de la exportación PostgreSQL → MongoDB.

Flujo:
1. Resolver tablas (lista explícita o descubrimiento automático)
2. Por cada tabla: tomar conexión → abrir cursor → por cada fila construir
   documento → insertar → registrar TransferResult
3. Reportar una línea por tabla; el resultado global es éxito solo si
   todas las tablas terminaron COMPLETED

Estados por tabla:
    PENDING → STREAMING → COMPLETED
                        → FAILED (QueryError, ScanError, WriteError, cancelación)

Un fallo en una tabla no detiene las demás. Solo DiscoveryError aborta la
ejecución completa.

Concurrencia:
- workers == 1: tablas en secuencia, en el orden resuelto
- workers > 1: una tarea por tabla en un ThreadPoolExecutor; cada tarea usa
  su propia conexión del pool, nunca comparte cursor ni buffer de filas

Cancelación: cancel_event (threading.Event) se revisa antes de leer cada
fila, no hace falta esperar a que termine la tabla.
"""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor

import psycopg2

from .cursor import open_cursor
from .documents import build_document
from .errors import QueryError, TableError, TransferCancelled
from .tables import resolve_tables

PENDING = "pending"
STREAMING = "streaming"
COMPLETED = "completed"
FAILED = "failed"


class TransferResult:
    """
    Resultado de exportar una tabla.

    Attributes:
        table (str): Tabla origen (= colección destino)
        state (str): PENDING, STREAMING, COMPLETED o FAILED
        rows (int): Documentos insertados (parciales si FAILED)
        error (Exception): Causa del fallo, None si no falló
    """

    def __init__(self, table):
        self.table = table
        self.state = PENDING
        self.rows = 0
        self.error = None

    @property
    def succeeded(self):
        return self.state == COMPLETED

    def complete(self):
        self.state = COMPLETED

    def fail(self, error):
        self.state = FAILED
        self.error = error

    def status_line(self):
        """Línea legible para el usuario."""
        if self.succeeded:
            return f"✅ {self.table}: {self.rows:,} documentos transferidos"
        return (
            f"❌ {self.table}: {getattr(self.error, 'reason', self.error)} "
            f"({self.rows:,} documentos antes del fallo)"
        )

    def __repr__(self):
        return f"TransferResult(table={self.table!r}, state={self.state!r}, rows={self.rows})"


class ExportPipeline:
    """
    Ejecuta la exportación de un conjunto de tablas.

    Args:
        source: SourceDatabase (préstamo de conexiones por tabla)
        writer: MongoWriter
        schema: Schema PostgreSQL para nombres de tabla sin calificar
        fetch_size: Filas por FETCH del cursor de servidor
        workers: Tablas procesadas en paralelo
        cancel_event: threading.Event que cancela la exportación al activarse
        progress_every: Cada cuántas filas mostrar progreso (0 = nunca).
                        Solo aplica con workers == 1.
    """

    def __init__(
        self,
        source,
        writer,
        schema="public",
        fetch_size=2000,
        workers=1,
        cancel_event=None,
        progress_every=0,
    ):
        self.source = source
        self.writer = writer
        self.schema = schema
        self.fetch_size = fetch_size
        self.workers = workers
        self.cancel_event = cancel_event or threading.Event()
        self.progress_every = progress_every if workers == 1 else 0

    def resolve(self, explicit_tables, all_tables):
        """Resuelve las tablas; DiscoveryError se propaga al llamador."""
        return resolve_tables(explicit_tables, all_tables, self.source, self.schema)

    def run(self, explicit_tables, all_tables=False):
        """
        Resuelve las tablas y exporta cada una.

        Returns:
            list: TransferResult en el orden de las tablas resueltas

        Raises:
            DiscoveryError: Si falla el descubrimiento automático
        """
        tables = self.resolve(explicit_tables, all_tables)
        if not tables:
            print("⚠️  No se encontraron tablas para exportar")
        # Los nombres del catálogo son literales: nunca se separan en schema.tabla
        return self.transfer_tables(tables, qualified=not all_tables)

    def transfer_tables(self, tables, qualified=True):
        """
        Exporta una lista ya resuelta de tablas.

        Args:
            tables: Nombres de tabla en orden
            qualified: False si los nombres vienen del catálogo
        """
        results = []

        if self.workers == 1:
            for table in tables:
                result = self.transfer_table(table, qualified)
                self.report(result)
                results.append(result)
            return results

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [executor.submit(self.transfer_table, table, qualified) for table in tables]
            for future in futures:
                result = future.result()
                self.report(result)
                results.append(result)
        return results

    def transfer_table(self, table, qualified=True):
        """
        Exporta una tabla completa: cursor → documento → insert por fila.

        Nunca lanza errores de tabla (QueryError, ScanError, WriteError,
        TransferCancelled): quedan registrados en el TransferResult.
        """
        result = TransferResult(table)

        if self.cancel_event.is_set():
            result.fail(TransferCancelled(table, "exportación cancelada antes de iniciar"))
            return result

        try:
            with self.source.connection() as conn:
                with open_cursor(
                    table, conn, self.schema, self.fetch_size, qualified
                ) as stream:
                    result.state = STREAMING
                    self._stream_rows(stream, result)
            result.complete()
        except TableError as e:
            result.fail(e)
        except psycopg2.Error as e:
            # Pool agotado o conexión perdida al pedir la conexión
            result.fail(QueryError(table, f"sin conexión disponible: {e}"))

        return result

    def _stream_rows(self, stream, result):
        while True:
            if self.cancel_event.is_set():
                raise TransferCancelled(result.table, "exportación cancelada")

            item = stream.next()
            if item is None:
                break

            columns, values = item
            self.writer.write(build_document(columns, values), result.table)
            result.rows += 1

            if self.progress_every and result.rows % self.progress_every == 0:
                print(
                    f"\r\033[K⏳ {result.table}: {result.rows:,} documentos...",
                    end="",
                    flush=True,
                )

    def report(self, result):
        """Imprime la línea de estado de una tabla."""
        line = result.status_line()
        if self.progress_every:
            # Limpia la línea de progreso antes de escribir el estado
            line = "\r\033[K" + line
        if result.succeeded:
            print(line)
        else:
            print(line, file=sys.stderr)


def summarize(results):
    """
    Agrega los resultados de la ejecución.

    Returns:
        dict: {'completed': int, 'failed': int, 'documents': int}
    """
    completed = [r for r in results if r.succeeded]
    return {
        "completed": len(completed),
        "failed": len(results) - len(completed),
        "documents": sum(r.rows for r in results),
    }


def all_succeeded(results):
    """True si todas las tablas terminaron COMPLETED."""
    return all(r.succeeded for r in results)
