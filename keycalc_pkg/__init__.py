"""Keycalc package: keystroke-driven calculator engine, bracket evaluator and CLI."""

__all__ = [
    "config",
    "types",
    "logging_config",
    "formatter",
    "parser",
    "formula",
    "evaluator",
    "scientific",
    "history",
    "engine",
    "keys",
    "api",
    "cli",
]

# Public API exports

__api_exports__ = [
    "evaluate",
    "format_number",
    "create_engine",
    "run_keys",
    "validate_expression",
]
