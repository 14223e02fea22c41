"""
Configuración del exportador PostgreSQL → MongoDB.

ARQUITECTURA:
La configuración se lee desde un archivo .env (python-dotenv) y se
superpone con las variables de entorno del proceso. A diferencia de un
módulo con constantes globales, load_config() retorna un dict explícito
que se pasa a cada componente (conexiones, pipeline).

VARIABLES SOPORTADAS:
    POSTGRES_HOST        Host de PostgreSQL (default: localhost)
    POSTGRES_PORT        Puerto de PostgreSQL (default: 5432)
    POSTGRES_DB          Base de datos origen (obligatoria)
    POSTGRES_USER        Usuario
    POSTGRES_PASSWORD    Contraseña
    POSTGRES_SCHEMA      Schema de donde se leen las tablas (default: public)
    POSTGRES_TABLES      Lista de tablas separadas por coma
    POSTGRES_ALL_TABLES  true/false: descubrir todas las tablas base
    MONGO_URI            URI de conexión a MongoDB (obligatoria)
    MONGO_DATABASE       Base de datos destino (obligatoria)
    EXPORT_WORKERS       Tablas procesadas en paralelo (default: 1)
    FETCH_SIZE           Filas por FETCH del cursor de servidor (default: 2000)
    EXPORT_TIMEOUT       Segundos antes de cancelar la exportación (vacío = sin límite)
    PROGRESS_EVERY       Cada cuántas filas mostrar progreso (default: 1000)

USO:
    cfg = load_config('.env')
    cfg['postgres']['tables']      # ['users', 'orders']
    cfg['mongodb']['database']     # 'exports'
"""

import os
from dotenv import dotenv_values

from exporters.errors import ConfigError

DEFAULT_ENV_FILE = ".env"

# --- Valores por defecto ---
DEFAULT_POSTGRES_HOST = "localhost"
DEFAULT_POSTGRES_PORT = 5432
DEFAULT_POSTGRES_SCHEMA = "public"
DEFAULT_WORKERS = 1
DEFAULT_FETCH_SIZE = 2000  # Igual que el BATCH_SIZE histórico del migrador
DEFAULT_PROGRESS_EVERY = 1000

_TRUE_VALUES = ("1", "true", "yes", "si", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


# --- Funciones Helper ---


def parse_table_list(raw):
    """
    Convierte "users, orders,,items" en ['users', 'orders', 'items'].

    Conserva el orden indicado por el usuario y descarta entradas vacías.
    """
    if not raw:
        return []
    return [name.strip() for name in raw.split(",") if name.strip()]


def parse_bool(raw, name):
    """
    Interpreta un valor booleano de entorno.

    Raises:
        ConfigError: Si el valor no es reconocible
    """
    value = (raw or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} debe ser true/false, se recibió '{raw}'")


def _parse_int(raw, name, default, minimum=None):
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ConfigError(f"{name} debe ser un entero, se recibió '{raw}'")
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} debe ser >= {minimum}, se recibió {value}")
    return value


def _parse_timeout(raw):
    if raw is None or str(raw).strip() == "":
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        raise ConfigError(f"EXPORT_TIMEOUT debe ser un número, se recibió '{raw}'")
    if value <= 0:
        raise ConfigError(f"EXPORT_TIMEOUT debe ser positivo, se recibió {value}")
    return value


def load_config(env_file=None, environ=None):
    """
    Carga y valida la configuración completa del exportador.

    El archivo .env se lee con dotenv_values (no modifica os.environ) y
    las variables del proceso tienen prioridad sobre las del archivo.

    Args:
        env_file: Ruta del archivo .env (default: '.env'). Si no existe se
                  usan solo las variables de entorno.
        environ: Mapping de variables de entorno (default: os.environ).
                 Útil en tests.

    Returns:
        dict: Configuración con secciones 'postgres', 'mongodb' y 'export'

    Raises:
        ConfigError: Si falta una variable obligatoria o un valor es inválido

    Ejemplo:
        >>> cfg = load_config(environ={'POSTGRES_DB': 'shop',
        ...                            'POSTGRES_TABLES': 'users',
        ...                            'MONGO_URI': 'mongodb://localhost',
        ...                            'MONGO_DATABASE': 'shop'})
        >>> cfg['postgres']['tables']
        ['users']
    """
    path = env_file or DEFAULT_ENV_FILE
    values = {}
    if os.path.exists(path):
        values.update(dotenv_values(path))
    elif env_file:
        raise ConfigError(f"No se encontró el archivo de configuración '{env_file}'")

    values.update(os.environ if environ is None else environ)

    def get(name):
        value = values.get(name)
        return value.strip() if isinstance(value, str) else value

    postgres = {
        "host": get("POSTGRES_HOST") or DEFAULT_POSTGRES_HOST,
        "port": _parse_int(get("POSTGRES_PORT"), "POSTGRES_PORT", DEFAULT_POSTGRES_PORT, 1),
        "dbname": get("POSTGRES_DB") or "",
        "user": get("POSTGRES_USER") or "",
        "password": values.get("POSTGRES_PASSWORD") or "",
        "schema": get("POSTGRES_SCHEMA") or DEFAULT_POSTGRES_SCHEMA,
        "tables": parse_table_list(get("POSTGRES_TABLES")),
        "all_tables": parse_bool(get("POSTGRES_ALL_TABLES"), "POSTGRES_ALL_TABLES"),
    }

    mongodb = {
        "uri": get("MONGO_URI") or "",
        "database": get("MONGO_DATABASE") or "",
    }

    export = {
        "workers": _parse_int(get("EXPORT_WORKERS"), "EXPORT_WORKERS", DEFAULT_WORKERS, 1),
        "fetch_size": _parse_int(get("FETCH_SIZE"), "FETCH_SIZE", DEFAULT_FETCH_SIZE, 1),
        "timeout": _parse_timeout(get("EXPORT_TIMEOUT")),
        "progress_every": _parse_int(
            get("PROGRESS_EVERY"), "PROGRESS_EVERY", DEFAULT_PROGRESS_EVERY, 0
        ),
    }

    cfg = {"postgres": postgres, "mongodb": mongodb, "export": export}
    validate_config(cfg)
    return cfg


def validate_config(cfg):
    """
    Valida que la configuración tenga lo mínimo para ejecutar.

    Se llama también después de aplicar overrides de línea de comandos.

    Raises:
        ConfigError: Con el nombre de la variable faltante
    """
    if not cfg["postgres"]["dbname"]:
        raise ConfigError("Falta POSTGRES_DB")
    if not cfg["mongodb"]["uri"]:
        raise ConfigError("Falta MONGO_URI")
    if not cfg["mongodb"]["database"]:
        raise ConfigError("Falta MONGO_DATABASE")
    if not cfg["postgres"]["all_tables"] and not cfg["postgres"]["tables"]:
        raise ConfigError(
            "No hay tablas para exportar: definir POSTGRES_TABLES "
            "o POSTGRES_ALL_TABLES=true"
        )


def postgres_dsn_params(pg_cfg):
    """
    Retorna kwargs para psycopg2.connect() a partir de la sección 'postgres'.

    Ejemplo:
        >>> postgres_dsn_params(cfg['postgres'])
        {'dbname': 'shop', 'user': '', 'password': '', 'host': 'localhost', 'port': 5432}
    """
    return {
        "dbname": pg_cfg["dbname"],
        "user": pg_cfg["user"],
        "password": pg_cfg["password"],
        "host": pg_cfg["host"],
        "port": pg_cfg["port"],
    }
