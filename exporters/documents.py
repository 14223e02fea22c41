"""
Construcción de documentos a partir de filas.

Un Document es una lista ordenada de pares (clave, valor), una entrada por
columna, en el orden posicional de la consulta. Reglas:

- Sin coerción: enteros siguen siendo int, texto str, timestamps datetime.
- NULL se convierte en una entrada explícita con valor None, nunca en una
  clave ausente ni en string vacío.
- Valores binarios (memoryview de bytea) se copian a bytes: el driver
  puede reutilizar el buffer al avanzar el cursor.
- Nombres de columna repetidos no se resuelven aquí; al interpretar el
  documento como mapping gana el último.
"""

from datetime import date, datetime, time

# Tipos soportados de RawValue
KIND_NULL = "null"
KIND_INTEGER = "integer"
KIND_FLOAT = "float"
KIND_TEXT = "text"
KIND_BOOLEAN = "boolean"
KIND_TIMESTAMP = "timestamp"
KIND_BINARY = "binary"
KIND_OTHER = "other"


def value_kind(value):
    """
    Clasifica un valor crudo del driver en su tipo RawValue.

    bool se evalúa antes que int porque en Python bool es subclase de int.

    Ejemplo:
        >>> value_kind(None), value_kind(True), value_kind(3)
        ('null', 'boolean', 'integer')
    """
    if value is None:
        return KIND_NULL
    if isinstance(value, bool):
        return KIND_BOOLEAN
    if isinstance(value, int):
        return KIND_INTEGER
    if isinstance(value, float):
        return KIND_FLOAT
    if isinstance(value, str):
        return KIND_TEXT
    if isinstance(value, (datetime, date, time)):
        return KIND_TIMESTAMP
    if isinstance(value, (bytes, bytearray, memoryview)):
        return KIND_BINARY
    return KIND_OTHER


def copy_value(value):
    """Desacopla el valor del buffer del cursor (solo afecta a binarios)."""
    if isinstance(value, (memoryview, bytearray)):
        return bytes(value)
    return value


def build_document(columns, values):
    """
    Combina columnas y valores por posición en un documento ordenado.

    Args:
        columns: Lista de ColumnDescriptor (o cualquier objeto con .name)
        values: Valores crudos de la fila, en el mismo orden

    Returns:
        list: [(nombre_columna, valor), ...] con len == len(columns)

    Raises:
        ValueError: Si la cantidad de valores no coincide con las columnas
                    (error de programación, no una condición recuperable)

    Ejemplo:
        >>> build_document(cols, (1, 'Ana', None))
        [('id', 1), ('name', 'Ana'), ('deleted_at', None)]
    """
    if len(columns) != len(values):
        raise ValueError(
            f"La fila tiene {len(values)} valores pero la consulta {len(columns)} columnas"
        )
    return [(column.name, copy_value(value)) for column, value in zip(columns, values)]


def non_native_columns(document):
    """
    Columnas cuyo valor no es de un tipo RawValue nativo (KIND_OTHER).

    Se usa para diagnosticar documentos que MongoDB no pudo codificar:
    NUMERIC, intervalos, rangos, arrays, JSON...

    Ejemplo:
        >>> non_native_columns([('id', 1), ('price', Decimal('1.5'))])
        ['price']
    """
    return [name for name, value in document if value_kind(value) == KIND_OTHER]
