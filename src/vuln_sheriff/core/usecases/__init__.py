from __future__ import annotations

from .patrol import PatrolUseCase

__all__ = ["PatrolUseCase"]
