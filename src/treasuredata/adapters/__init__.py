"""Adapters: HTTP transport, client, streaming reader and filesystem helpers."""
