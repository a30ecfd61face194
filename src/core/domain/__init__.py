"""Dominio: modelos, enums y errores del checkout por lotes.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce HTTP, navegador ni CLI: solo conceptos del problema.
"""
