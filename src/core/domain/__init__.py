"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de datos puras y estrictas (Pydantic v2).
- El dominio no conoce httpx, CLI, ni Rich: solo conceptos del problema
  (usuarios, descriptores de petición, envelopes).
"""
