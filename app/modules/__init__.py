"""
Feature modules of the KrishiVedha API.

Each module exposes its HTTP surface under ``presentation/api``:
request schemas in ``schemas`` and routers in ``v1``.
"""
