"""Quote store interface and implementations.

This package defines the abstract :class:`QuoteStore` contract and its
concrete backends: the YAML file store under :mod:`repositories.file` and the
MongoDB store under :mod:`repositories.mongo`.
"""
