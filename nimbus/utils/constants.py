"""Limites das colunas inteiras usados na validação de entrada."""

MAX_DB_INT = 2**31 - 1  # Integer (ids, data_sent)
MAX_DB_BIGINT = 2**63 - 1  # BigInteger (Measurement.timestamp)

__all__ = ["MAX_DB_BIGINT", "MAX_DB_INT"]
