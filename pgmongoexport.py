r"""
Script principal de exportación de tablas PostgreSQL a MongoDB.

Arquitectura:
- pgmongoexport.py: Infraestructura (argumentos, conexiones, señales, resumen)
- exporters/*.py: Núcleo genérico (tablas, cursor, documentos, escritura)
- config.py: Carga de configuración desde .env

Flujo de ejecución:
1. Cargar configuración (.env + entorno + flags)
2. Conectar a PostgreSQL (pool) y MongoDB
3. Resolver tablas (lista explícita o todas las tablas base del schema)
4. Por cada tabla: SELECT * con cursor de servidor → documento → insert_one
5. Imprimir una línea por tabla y un resumen final

Cada tabla se exporta a una colección con el mismo nombre. Re-ejecutar
duplica documentos: no hay upsert ni limpieza previa.

Uso:
    python pgmongoexport.py
    python pgmongoexport.py --config prod.env --all-tables --workers 4
    python pgmongoexport.py --tables users,orders --timeout 3600
    python pgmongoexport.py --all-tables --dry-run

Exit codes:
    0: Todas las tablas exportadas
    1: Alguna tabla falló, o error de configuración/conexión/descubrimiento
    130: Exportación cancelada (señal o timeout)
"""

import argparse
import io
import signal
import sys
import threading

import config
from db import connect_to_mongo, connect_to_postgres
from exporters.errors import ConfigError, DiscoveryError, ExportError, StoreConnectionError
from exporters.pipeline import ExportPipeline, all_succeeded, summarize
from exporters.writer import MongoWriter

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def parse_args(argv=None):
    """Define y parsea los argumentos de línea de comandos."""
    parser = argparse.ArgumentParser(
        description="Exporta tablas PostgreSQL a colecciones MongoDB (una fila = un documento)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  # Tablas definidas en .env (POSTGRES_TABLES)
  python pgmongoexport.py

  # Todas las tablas base del schema, 4 en paralelo
  python pgmongoexport.py --all-tables --workers 4

  # Ver qué se exportaría sin escribir en MongoDB
  python pgmongoexport.py --all-tables --dry-run
        """,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Archivo .env con la configuración (default: .env)",
    )
    parser.add_argument(
        "--tables",
        default=None,
        help="Lista de tablas separadas por coma (reemplaza POSTGRES_TABLES)",
    )
    parser.add_argument(
        "--all-tables",
        action="store_true",
        help="Exportar todas las tablas base del schema (ignora la lista explícita)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Tablas exportadas en paralelo (default: EXPORT_WORKERS o 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Segundos antes de cancelar la exportación",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolver tablas y contar filas sin insertar documentos",
    )
    return parser.parse_args(argv)


def apply_overrides(cfg, args):
    """
    Aplica los flags de línea de comandos sobre la configuración cargada.

    Returns:
        dict: La misma configuración, modificada y revalidada

    Raises:
        ConfigError: Si los overrides dejan la configuración inválida
    """
    if args.tables is not None:
        cfg["postgres"]["tables"] = config.parse_table_list(args.tables)
    if args.all_tables:
        cfg["postgres"]["all_tables"] = True
    if args.workers is not None:
        if args.workers < 1:
            raise ConfigError(f"--workers debe ser >= 1, se recibió {args.workers}")
        cfg["export"]["workers"] = args.workers
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ConfigError(f"--timeout debe ser positivo, se recibió {args.timeout}")
        cfg["export"]["timeout"] = args.timeout
    config.validate_config(cfg)
    return cfg


def install_cancellation(cancel_event, timeout=None):
    """
    Conecta SIGINT/SIGTERM y el timeout opcional con cancel_event.

    La cancelación se aplica entre filas: la tabla en curso queda FAILED
    y las tablas ya completadas conservan su resultado.

    Returns:
        threading.Timer o None: Timer del timeout (cancelarlo al terminar)
    """

    def handle_signal(signum, frame):
        print(f"\n🛑 Señal {signum} recibida, cancelando exportación...", file=sys.stderr)
        cancel_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    if timeout is None:
        return None

    def handle_timeout():
        print(f"\n⏰ Timeout de {timeout:g}s alcanzado, cancelando exportación...", file=sys.stderr)
        cancel_event.set()

    timer = threading.Timer(timeout, handle_timeout)
    timer.daemon = True
    timer.start()
    return timer


def dry_run(pipeline, pg_cfg):
    """
    Muestra las tablas resueltas y su cantidad de filas sin escribir nada.

    Returns:
        int: Exit code (1 si alguna tabla no se pudo contar)
    """
    tables = pipeline.resolve(pg_cfg["tables"], pg_cfg["all_tables"])
    print(f"\n📋 DRY RUN: {len(tables)} tabla(s) a exportar")

    failed = 0
    total = 0
    for table in tables:
        try:
            count = pipeline.source.count_rows(table, qualified=not pg_cfg["all_tables"])
        except ExportError as e:
            failed += 1
            print(f"   ❌ {e}", file=sys.stderr)
            continue
        total += count
        print(f"   • {table}: {count:,} filas")

    print(f"\n   📊 Total de filas: {total:,}")
    return EXIT_FAILURE if failed else EXIT_OK


def print_summary(results):
    """Imprime el resumen final de la exportación."""
    stats = summarize(results)
    print("\n" + "=" * 70)
    print("📊 RESUMEN DE EXPORTACIÓN")
    print("=" * 70)
    print(f"   Tablas completadas: {stats['completed']}")
    print(f"   Tablas fallidas:    {stats['failed']}")
    print(f"   Documentos:         {stats['documents']:,}")
    print("=" * 70)

    if all_succeeded(results):
        print("✅ EXPORTACIÓN COMPLETADA EXITOSAMENTE")
    else:
        failed = ", ".join(r.table for r in results if not r.succeeded)
        print(f"❌ EXPORTACIÓN CON FALLOS: {failed}")
    print("=" * 70)


def main(argv=None):
    """
    Función principal que coordina el flujo completo de exportación.

    Returns:
        int: Exit code
    """
    args = parse_args(argv)

    try:
        cfg = apply_overrides(config.load_config(args.config), args)
    except ConfigError as e:
        print(f"❌ Error de configuración: {e}", file=sys.stderr)
        return EXIT_FAILURE

    pg_cfg = cfg["postgres"]
    export_cfg = cfg["export"]

    print("=" * 70)
    print("🚀 EXPORTADOR POSTGRESQL → MONGODB")
    print("=" * 70)
    print(f"📍 PostgreSQL: {pg_cfg['dbname']} (schema {pg_cfg['schema']})")
    print(f"📍 MongoDB: {cfg['mongodb']['database']}")
    if pg_cfg["all_tables"]:
        print("📋 Tablas: todas las tablas base (descubrimiento automático)")
    else:
        print(f"📋 Tablas: {', '.join(pg_cfg['tables'])}")
    print(f"⚙️  Workers: {export_cfg['workers']} | Fetch size: {export_cfg['fetch_size']}")

    try:
        source = connect_to_postgres(pg_cfg, max_connections=export_cfg["workers"])
    except StoreConnectionError:
        return EXIT_FAILURE

    mongo_client = None
    timer = None
    cancel_event = threading.Event()

    try:
        if not args.dry_run:
            mongo_client, mongo_db = connect_to_mongo(cfg["mongodb"])
            writer = MongoWriter(mongo_db)
        else:
            writer = None

        pipeline = ExportPipeline(
            source,
            writer,
            schema=pg_cfg["schema"],
            fetch_size=export_cfg["fetch_size"],
            workers=export_cfg["workers"],
            cancel_event=cancel_event,
            progress_every=export_cfg["progress_every"],
        )

        if args.dry_run:
            return dry_run(pipeline, pg_cfg)

        timer = install_cancellation(cancel_event, export_cfg["timeout"])

        print("\n🚚 Iniciando exportación...")
        results = pipeline.run(pg_cfg["tables"], pg_cfg["all_tables"])
        print_summary(results)

        if cancel_event.is_set():
            return EXIT_INTERRUPTED
        return EXIT_OK if all_succeeded(results) else EXIT_FAILURE

    except StoreConnectionError:
        return EXIT_FAILURE
    except DiscoveryError as e:
        print(f"\n❌ Error descubriendo tablas: {e}", file=sys.stderr)
        return EXIT_FAILURE

    finally:
        if timer is not None:
            timer.cancel()
        print("\n🔒 Cerrando conexiones...")
        source.close()
        if mongo_client is not None:
            mongo_client.close()
        print("✅ Conexiones cerradas correctamente")


if __name__ == "__main__":
    # Forzar UTF-8 en stdout/stderr para emojis en Windows
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8")

    sys.exit(main())
