"""vaultkit: link graph and query engine for markdown vaults."""

__version__ = "0.3.0"
