"""Domain layer for ledgerlink.

Pure models and codecs. Nothing in this package performs I/O or
cryptography, and nothing here imports from the other layers.
"""
