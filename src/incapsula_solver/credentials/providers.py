"""Secret provider implementations.

The resolver needs exactly one secret: the API key of the solving service.
It is fetched once per resolution attempt and handed straight to the solver,
never stored on any long-lived object.

- AwsSecretsManagerProvider: reads a JSON secret from AWS Secrets Manager
- EnvSecretProvider: reads the fields from environment variables (or .env)
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from ..config.settings import ResolverSettings
from ..exceptions import CredentialUnavailable

logger = structlog.get_logger()


class ISecretProvider(ABC):
    """Interface for secret providers."""

    @abstractmethod
    async def get(self, secret_id: str) -> Dict[str, str]:
        """Return the key/value fields stored under secret_id.

        Raises:
            CredentialUnavailable: If the secret cannot be read.
        """
        pass

    async def get_credential(self, secret_id: str, field: str) -> str:
        """Return a single non-empty field of a secret."""
        secret = await self.get(secret_id)
        value = secret.get(field)
        if not value:
            raise CredentialUnavailable(
                f"secret '{secret_id}' has no '{field}' field"
            )
        return value


class AwsSecretsManagerProvider(ISecretProvider):
    """Secret provider backed by AWS Secrets Manager.

    The secret is expected to hold a JSON object in SecretString. boto3 is
    blocking, so the call runs in a worker thread.
    """

    def __init__(self, region_name: str = "us-east-1", client: Optional[Any] = None):
        self.region_name = region_name
        self._client = client
        self.logger = logger.bind(provider="aws_secrets_manager")

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("secretsmanager", region_name=self.region_name)
        return self._client

    async def get(self, secret_id: str) -> Dict[str, str]:
        try:
            response = await asyncio.to_thread(
                self.client.get_secret_value, SecretId=secret_id
            )
        except (BotoCoreError, ClientError) as e:
            self.logger.error("secret_fetch_error", secret_id=secret_id, error=str(e))
            raise CredentialUnavailable(f"could not read secret '{secret_id}': {e}") from e

        try:
            secret = json.loads(response.get("SecretString") or "")
        except ValueError as e:
            raise CredentialUnavailable(
                f"secret '{secret_id}' is not a JSON object"
            ) from e

        if not isinstance(secret, dict):
            raise CredentialUnavailable(f"secret '{secret_id}' is not a JSON object")

        self.logger.info("secret_fetched", secret_id=secret_id)
        return secret


class EnvSecretProvider(ISecretProvider):
    """Secret provider reading fields from environment variables.

    Useful for local runs: the default mapping exposes TWOCAPTCHA_API_KEY as
    the captchaToken field, whatever secret id is requested.
    """

    DEFAULT_FIELDS = {"captchaToken": "TWOCAPTCHA_API_KEY"}

    def __init__(self, fields: Optional[Dict[str, str]] = None):
        """Initialize the provider.

        Args:
            fields: Mapping of secret field name to environment variable name.
        """
        load_dotenv()
        self.fields = fields or dict(self.DEFAULT_FIELDS)
        self.logger = logger.bind(provider="env")

    async def get(self, secret_id: str) -> Dict[str, str]:
        secret = {
            name: os.environ[env_var]
            for name, env_var in self.fields.items()
            if os.environ.get(env_var)
        }
        if not secret:
            raise CredentialUnavailable(
                f"none of {', '.join(self.fields.values())} is set"
            )

        self.logger.debug("secret_fetched", secret_id=secret_id, fields=list(secret))
        return secret


def create_secret_provider(settings: ResolverSettings) -> ISecretProvider:
    """Pick the secret provider selected by settings.secret_backend."""
    if settings.secret_backend == "aws":
        return AwsSecretsManagerProvider(region_name=settings.aws_region)
    if settings.secret_backend == "env":
        return EnvSecretProvider({settings.credential_field: "TWOCAPTCHA_API_KEY"})
    raise ValueError(f"Unknown secret backend: {settings.secret_backend}")
