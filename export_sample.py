"""
export_sample.py - Exporta muestra de una colección destino a JSON

Sirve para revisar cómo quedaron los documentos después de una exportación
(orden de claves, nulls explícitos, tipos BSON).

Uso:
    python export_sample.py <collection_name> [limit]

Ejemplo:
    python export_sample.py users 200
"""

import sys
from pathlib import Path

from bson.json_util import dumps

import config
from db import connect_to_mongo
from exporters.errors import ExportError


def export_collection_sample(database, collection_name, limit=200, samples_dir="samples"):
    """
    Exporta muestra de una colección a JSON en formato Extended JSON.

    Args:
        database: Database de pymongo (destino de la exportación)
        collection_name: Nombre de la colección (= tabla origen)
        limit: Número de documentos a exportar

    Returns:
        Path o None: Archivo generado, None si la colección está vacía
    """
    print(f"📥 Obteniendo {limit} documentos de '{collection_name}'...")
    docs = list(database[collection_name].find().limit(limit))

    if not docs:
        print(f"⚠️  La colección '{collection_name}' está vacía o no existe")
        return None

    samples_path = Path(samples_dir)
    samples_path.mkdir(exist_ok=True)

    # Serializar usando bson.json_util (mantiene tipos de MongoDB)
    json_output = dumps(docs, indent=2, ensure_ascii=False)

    filename = samples_path / f"{collection_name}_sample.json"
    with open(filename, "w", encoding="utf-8") as f:
        f.write(json_output)

    print(f"✅ Exportados {len(docs)} documentos")
    print(f"📄 Archivo: {filename}")
    print(f"📊 Tamaño: {len(json_output) / 1024:.2f} KB")
    return filename


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Uso: python export_sample.py <collection_name> [limit]")
        print("Ejemplo: python export_sample.py users 200")
        sys.exit(1)

    collection_name = sys.argv[1]
    limit = int(sys.argv[2]) if len(sys.argv) > 2 else 200

    try:
        cfg = config.load_config()
        client, database = connect_to_mongo(cfg["mongodb"])
    except ExportError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    try:
        export_collection_sample(database, collection_name, limit)
    finally:
        client.close()
