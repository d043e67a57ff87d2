"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan servicios concretos.
- Permite invertir dependencias: la UI depende de abstracciones, no de httpx.
"""

from core.interfaces.directory import UserDirectory

__all__ = ["UserDirectory"]
