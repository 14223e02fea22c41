"""
Exportadores de tablas PostgreSQL a colecciones MongoDB.

Cada fila se convierte en un documento autodescriptivo sin schema destino
predefinido. No hay código por tabla: columnas y tipos se descubren en
runtime desde el cursor.

Estructura:
    errors.py: Jerarquía de errores (DiscoveryError, QueryError, ...)
    tables.py: Resolución de tablas (lista explícita o catálogo)
    cursor.py: RowStream sobre un cursor de servidor de psycopg2
    documents.py: Fila → documento ordenado (clave, valor)
    writer.py: Inserción en MongoDB (insert_one, sin upsert)
    pipeline.py: Orquestación por tabla y TransferResult

Uso típico (ver pgmongoexport.py):
    pipeline = ExportPipeline(source, MongoWriter(mongo_db))
    results = pipeline.run(['users', 'orders'])
"""
