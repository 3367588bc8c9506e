"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos
  (Docker, CloudFormation/SAM, httpx, Lambda).
- Permite invertir dependencias: el pipeline depende de abstracciones y los
  tests lo ejercitan con fakes, sin red ni nube.
"""
