"""Procesador de lecturas IoT: stream → esquema canónico → BD.

Estructura:
- domain/         → Lectura canónica, lectura persistida, eventos
- normalization/  → Payload crudo → lectura canónica
- storage/        → Supervisor de conexión, resolver de sensores, writer
- transport/      → Redis Streams (consumer group y publicador)
- pipeline/       → Procesador por mensaje y loop de consumo
- resilience/     → Backoff y discard sink (dead letter)
- monitoring/     → Stats y sinks de eventos
"""

__version__ = "0.1.0"
