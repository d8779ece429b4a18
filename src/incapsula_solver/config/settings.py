"""Resolver settings.

All timing constants and page markers used during a resolution attempt live
here so that tests and the driver can tune them without touching the
components. Values come from environment variables (a local .env file is
honoured through python-dotenv) and fall back to the defaults the protection
layer has been observed to need.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ResolverSettings:
    """Configuration for one resolver instance.

    Attributes:
        markup_dwell_seconds: Time given to the protection layer to notice the
            blocked script and inject its retry markup.
        settle_seconds: Pause between the in-page resubmission and re-navigation.
        capture_timeout_seconds: How long to wait for the init payload once the
            dwell is over.
        poll_interval_seconds: Delay before each status poll of the solving service.
        max_poll_attempts: Upper bound on status polls (35 * 5s ~ 175s).
        solver_base_url: Base URL of the 2Captcha-compatible service.
        secret_id: Identifier handed to the secret provider.
        credential_field: Key of the solving-service credential inside the secret.
        secret_backend: "aws" for AWS Secrets Manager, "env" for environment variables.
        aws_region: Region used by the AWS secret backend.
        stealth: Patch new pages with playwright-stealth evasions.
    """
    markup_dwell_seconds: float = 120.0
    settle_seconds: float = 1.5
    capture_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 5.0
    max_poll_attempts: int = 35

    solver_base_url: str = "http://2captcha.com"

    secret_id: str = "proxyApiCredentials"
    credential_field: str = "captchaToken"
    secret_backend: str = "aws"
    aws_region: str = "us-east-1"

    # Network and markup markers of the protection layer
    challenge_script_marker: str = "gt.js"
    init_payload_marker: str = "GEE"
    resource_frame_marker: str = "Incapsula_Resource"
    error_content_selector: str = ".error-content"
    challenge_frame_selector: str = "#main-iframe"

    target_url: Optional[str] = None
    headless: bool = False
    stealth: bool = True

    @classmethod
    def from_env(cls) -> "ResolverSettings":
        """Build settings from the environment (and .env if present)."""
        load_dotenv()
        defaults = cls()

        return cls(
            markup_dwell_seconds=float(
                os.getenv("INCAP_MARKUP_DWELL_SECONDS", defaults.markup_dwell_seconds)
            ),
            settle_seconds=float(
                os.getenv("INCAP_SETTLE_SECONDS", defaults.settle_seconds)
            ),
            capture_timeout_seconds=float(
                os.getenv("INCAP_CAPTURE_TIMEOUT_SECONDS", defaults.capture_timeout_seconds)
            ),
            poll_interval_seconds=float(
                os.getenv("SOLVER_POLL_INTERVAL_SECONDS", defaults.poll_interval_seconds)
            ),
            max_poll_attempts=int(
                os.getenv("SOLVER_MAX_POLL_ATTEMPTS", defaults.max_poll_attempts)
            ),
            solver_base_url=os.getenv("SOLVER_BASE_URL", defaults.solver_base_url),
            secret_id=os.getenv("CAPTCHA_SECRET_ID", defaults.secret_id),
            credential_field=os.getenv("CAPTCHA_CREDENTIAL_FIELD", defaults.credential_field),
            secret_backend=os.getenv("SECRET_BACKEND", defaults.secret_backend).lower(),
            aws_region=os.getenv("AWS_REGION", defaults.aws_region),
            target_url=os.getenv("TARGET_URL") or None,
            headless=_env_bool("HEADLESS", defaults.headless),
            stealth=_env_bool("BROWSER_STEALTH", defaults.stealth),
        )
