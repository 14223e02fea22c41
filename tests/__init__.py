"""
Suite de tests para el exportador PostgreSQL → MongoDB.

Los tests NO usan bases de datos reales, validan con dobles de prueba
(tests/helpers.py):
- Carga y validación de configuración
- Resolución de tablas, stream de filas y construcción de documentos
- Escritura en MongoDB y orquestación del pipeline
- Sintaxis de todos los módulos
"""
