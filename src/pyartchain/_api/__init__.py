"""Thin loaders over the transport, one module per API area."""
