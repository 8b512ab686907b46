"""
Secret stores for pgrotate.

This package provides the SecretStore implementations the rotation
phases read from and write to:

- SecretsManagerStore: AWS Secrets Manager, used in production
- InMemorySecretStore: process-local store for tests and dry runs

Use the get_store() factory function to get the appropriate backend.
"""

from pgrotate.store.base import SecretStore
from pgrotate.store.memory import InMemorySecretStore
from pgrotate.store.secretsmanager import SecretsManagerStore


def get_store(backend: str = "secretsmanager", **kwargs) -> SecretStore:
    """
    Factory function to get the appropriate secret store.

    Args:
        backend: Store type. Supported values:
            - "secretsmanager", "aws": AWS Secrets Manager (requires boto3)
            - "memory": in-process store
        **kwargs: Backend-specific configuration options

    Returns:
        Configured SecretStore instance

    Raises:
        ValueError: If backend type is unknown

    Examples:
        store = get_store("secretsmanager", region="eu-west-1")
        store = get_store("memory")
    """
    backend = backend.lower()

    if backend in ("secretsmanager", "aws"):
        return SecretsManagerStore(**kwargs)

    elif backend == "memory":
        return InMemorySecretStore(**kwargs)

    else:
        raise ValueError(
            f"Unknown secret store backend: {backend}. "
            "Supported backends: 'secretsmanager', 'memory'"
        )


__all__ = [
    "SecretStore",
    "SecretsManagerStore",
    "InMemorySecretStore",
    "get_store",
]
