"""iota-funds — consolidate and report spendable funds of IOTA private keys."""

__version__ = "0.1.0"
