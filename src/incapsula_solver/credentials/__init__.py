"""Secret providers for the solving-service credential.

Available implementations:
- AwsSecretsManagerProvider: JSON secrets stored in AWS Secrets Manager
- EnvSecretProvider: environment variables, for local runs
"""

from .providers import (
    AwsSecretsManagerProvider,
    EnvSecretProvider,
    ISecretProvider,
    create_secret_provider,
)

__all__ = [
    "AwsSecretsManagerProvider",
    "EnvSecretProvider",
    "ISecretProvider",
    "create_secret_provider",
]
