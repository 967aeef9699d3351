"""Infrastructure adapters: cryptography keys, transports, observability."""
