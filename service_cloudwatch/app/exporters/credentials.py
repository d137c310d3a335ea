"""
AWS credential bootstrap for export destinations.

Credentials come from one of three places, picked from the instance config:

- static ``accessKeyId`` / ``secretAccessKey`` (and optional ``sessionToken``)
- ``iamRole: any``: whatever role the EC2 instance profile exposes, through
  botocore's instance metadata provider
- ``iamRole: <name>``: that specific role, read from the instance metadata
  service over HTTP

With none of these set, boto3's default credential chain applies. Resolution
happens once, when the backend is constructed; failures are logged and the
backend is still built.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from botocore.credentials import InstanceMetadataFetcher, InstanceMetadataProvider
from botocore.exceptions import BotoCoreError

from shared.errors import CredentialResolutionError
from shared.logging import get_logger

METADATA_BASE_URL = "http://169.254.169.254"
METADATA_TOKEN_PATH = "/latest/api/token"
METADATA_CREDENTIALS_PATH = "/latest/meta-data/iam/security-credentials/"
METADATA_TOKEN_TTL_SECONDS = 21600
ANY_ROLE = "any"

logger = get_logger("cloudwatch.credentials")


@dataclass(frozen=True)
class ResolvedCredentials:
    """A frozen set of AWS credentials."""
    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None

    def __repr__(self) -> str:
        return f"ResolvedCredentials(access_key_id={self.access_key_id!r}, secret_access_key='***')"


class CredentialProvider(ABC):
    """Source of AWS credentials."""

    name: str = "abstract"

    @abstractmethod
    def resolve(self) -> ResolvedCredentials:
        """Return credentials or raise CredentialResolutionError."""


class StaticCredentialProvider(CredentialProvider):
    name = "static"

    def __init__(self, access_key_id: str, secret_access_key: str, session_token: Optional[str] = None):
        self.credentials = ResolvedCredentials(access_key_id, secret_access_key, session_token)

    def resolve(self) -> ResolvedCredentials:
        return self.credentials


class InstanceMetadataAnyProvider(CredentialProvider):
    """Credentials of whichever role the instance profile carries."""

    name = "instance_metadata_any"

    def __init__(self, timeout: float = 1.0, num_attempts: int = 1):
        self.timeout = timeout
        self.num_attempts = num_attempts

    def resolve(self) -> ResolvedCredentials:
        fetcher = InstanceMetadataFetcher(timeout=self.timeout, num_attempts=self.num_attempts)
        try:
            credentials = InstanceMetadataProvider(iam_role_fetcher=fetcher).load()
        except BotoCoreError as e:
            raise CredentialResolutionError(f"Instance metadata lookup failed: {e}") from e

        if credentials is None:
            raise CredentialResolutionError(
                "No IAM role credentials available from instance metadata"
            )

        frozen = credentials.get_frozen_credentials()
        return ResolvedCredentials(frozen.access_key, frozen.secret_key, frozen.token)


class InstanceMetadataRoleProvider(CredentialProvider):
    """Credentials of a named IAM role, read from the metadata service."""

    name = "instance_metadata_role"

    def __init__(
        self,
        role: str,
        base_url: str = METADATA_BASE_URL,
        timeout: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.role = role
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    def _session_token(self, client: httpx.Client) -> Optional[str]:
        """IMDSv2 session token, or None where only IMDSv1 is available."""
        try:
            response = client.put(
                METADATA_TOKEN_PATH,
                headers={"X-aws-ec2-metadata-token-ttl-seconds": str(METADATA_TOKEN_TTL_SECONDS)},
            )
        except httpx.HTTPError as e:
            logger.debug("IMDSv2 token request failed, falling back to IMDSv1", error=str(e))
            return None

        if response.status_code != 200:
            logger.debug("IMDSv2 token unavailable", status_code=response.status_code)
            return None
        return response.text

    def resolve(self) -> ResolvedCredentials:
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                headers = {}
                token = self._session_token(client)
                if token:
                    headers["X-aws-ec2-metadata-token"] = token

                response = client.get(METADATA_CREDENTIALS_PATH + self.role, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise CredentialResolutionError(
                f"Failed to fetch IAM role credentials: {e}",
                {"role": self.role}
            ) from e
        except ValueError as e:
            raise CredentialResolutionError(
                "Instance metadata returned invalid JSON",
                {"role": self.role}
            ) from e

        try:
            return ResolvedCredentials(data["AccessKeyId"], data["SecretAccessKey"], data.get("Token"))
        except (KeyError, TypeError) as e:
            raise CredentialResolutionError(
                "Instance metadata response is missing credential fields",
                {"role": self.role, "missing": str(e)}
            ) from e


def provider_for(
    iam_role: Optional[str] = None,
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None,
    session_token: Optional[str] = None,
    metadata_timeout: float = 1.0,
) -> Optional[CredentialProvider]:
    """Pick the credential provider for an instance; None means default chain."""
    if iam_role:
        if iam_role == ANY_ROLE:
            return InstanceMetadataAnyProvider(timeout=metadata_timeout)
        return InstanceMetadataRoleProvider(iam_role, timeout=metadata_timeout)

    if access_key_id and secret_access_key:
        return StaticCredentialProvider(access_key_id, secret_access_key, session_token)

    return None


def bootstrap_credentials(provider: Optional[CredentialProvider]) -> Optional[ResolvedCredentials]:
    """Resolve credentials once; log and return None on failure."""
    if provider is None:
        return None

    try:
        credentials = provider.resolve()
    except CredentialResolutionError as e:
        logger.error(
            "Failed to fetch IAM role credentials",
            provider=provider.name,
            message=e.message,
            details=e.details
        )
        return None

    logger.info("Resolved AWS credentials", provider=provider.name)
    return credentials
