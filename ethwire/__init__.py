"""Asyncio JSON-RPC transports for Ethereum nodes, with confirmations, signing and ABI tokens."""

__version__ = "0.1.0"