"""Cali package: line-oriented calculator core (parser, evaluator, units, currency, reactive document)."""

__all__ = [
    "config",
    "types",
    "expressions",
    "units",
    "currency",
    "parser",
    "evaluator",
    "formatting",
    "engine",
    "api",
    "logging_config",
]

# Public API exports

__api_exports__ = [
    "evaluate",
    "validate_expression",
    "set_exchange_rate",
    "setup_logging",
]
