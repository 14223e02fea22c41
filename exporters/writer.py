"""
Escritura de documentos en MongoDB.

DECISIONES DE DISEÑO:
- Colección destino = nombre de la tabla origen (sin renombrar).
- Un insert_one por documento: sin batching y sin upsert. Ejecutar la
  exportación dos veces duplica los documentos; no hay merge ni overwrite.
- Los tipos de psycopg2 que BSON no codifica de forma nativa se mapean
  con un TypeRegistry en las CodecOptions de la colección:
    decimal.Decimal → Decimal128 (sin pérdida)
    datetime.date   → fecha BSON (medianoche UTC)
    uuid.UUID       → Binary subtype 4 (UuidRepresentation.STANDARD)
  Cualquier otro tipo no codificable (time, timedelta, rangos...) produce
  WriteError y falla la tabla. Lo mismo un NUMERIC con más de 34 dígitos
  significativos: Decimal128 no lo representa sin redondear.
"""

from datetime import date, datetime
from decimal import Decimal, DecimalException

from bson.son import SON
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions, TypeEncoder, TypeRegistry
from bson.decimal128 import Decimal128
from bson.errors import BSONError
from pymongo.errors import PyMongoError

from .documents import non_native_columns
from .errors import WriteError


class DecimalEncoder(TypeEncoder):
    """NUMERIC de PostgreSQL → Decimal128."""

    python_type = Decimal

    def transform_python(self, value):
        return Decimal128(value)


class DateEncoder(TypeEncoder):
    """DATE de PostgreSQL → fecha BSON a medianoche."""

    python_type = date

    def transform_python(self, value):
        return datetime(value.year, value.month, value.day)


EXPORT_CODEC_OPTIONS = CodecOptions(
    type_registry=TypeRegistry([DecimalEncoder(), DateEncoder()]),
    uuid_representation=UuidRepresentation.STANDARD,
)


class MongoWriter:
    """
    Inserta documentos en la base de datos destino.

    Las colecciones se resuelven una vez por nombre y se cachean;
    MongoClient es thread-safe, por lo que un mismo MongoWriter sirve a
    varios workers.

    Attributes:
        database: Database de pymongo
    """

    def __init__(self, database, codec_options=EXPORT_CODEC_OPTIONS):
        self.database = database
        self.codec_options = codec_options
        self._collections = {}

    def collection_for(self, table_name):
        """Retorna la colección destino de una tabla (mismo nombre)."""
        collection = self._collections.get(table_name)
        if collection is None:
            collection = self.database.get_collection(
                table_name, codec_options=self.codec_options
            )
            self._collections[table_name] = collection
        return collection

    def write(self, document, collection_name):
        """
        Inserta un documento como una entrada nueva.

        Args:
            document: Lista ordenada de (clave, valor) de build_document()
            collection_name: Colección destino (= nombre de la tabla)

        Raises:
            WriteError: Si MongoDB rechaza el documento (conexión perdida,
                        validación, tipo no serializable)
        """
        collection = self.collection_for(collection_name)
        try:
            collection.insert_one(SON(document))
        except PyMongoError as e:
            raise WriteError(collection_name, f"error insertando documento: {e}") from e
        except DecimalException as e:
            raise WriteError(
                collection_name,
                "NUMERIC no representable en Decimal128 (máx. 34 dígitos) "
                f"en columnas {non_native_columns(document)}",
            ) from e
        except (BSONError, ValueError, OverflowError) as e:
            # ValueError/OverflowError: exponente fuera de rango para Decimal128, int > 64 bits
            raise WriteError(
                collection_name,
                f"documento no codificable: {e} "
                f"(columnas con tipos no nativos: {non_native_columns(document)})",
            ) from e
