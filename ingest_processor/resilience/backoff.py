"""Políticas de espera entre intentos de conexión."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Protocol

MAX_EXPONENT = 64


class BackoffPolicy(Protocol):
    def delay(self, attempt: int) -> float:
        """Segundos a esperar tras el intento ``attempt`` (1-indexed)."""
        ...


@dataclass(frozen=True)
class FixedBackoff:
    """Intervalo fijo entre intentos."""

    interval: float = 5.0

    def delay(self, attempt: int) -> float:
        return max(0.0, self.interval)


@dataclass(frozen=True)
class ExponentialBackoff:
    """Backoff exponencial con tope y jitter opcional."""

    base_delay: float = 0.5  # segundos
    max_delay: float = 30.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        # Exponente acotado: el supervisor reintenta sin límite
        exponent = min(max(attempt, 1) - 1, MAX_EXPONENT)
        delay = self.base_delay * (self.exponential_base ** exponent)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Jitter de ±25%
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, delay)
