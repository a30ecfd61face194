"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos (runner ATG, fakes de test).
- Permite invertir dependencias: el pipeline depende del contrato, no del navegador ni de httpx.
"""
