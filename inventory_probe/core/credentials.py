"""
Explicit credential resolution for client adapters.

Adapters never read ambient session state: each one is constructed with a
Credentials value resolved by the caller.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ProfileNotFound

from .errors import AuthenticationFailure

logger = logging.getLogger('inventory_probe.credentials')


@dataclass(frozen=True)
class Credentials:
    """Resolved authentication material plus the region adapters target"""
    session: boto3.Session
    region: str
    profile: Optional[str] = None

    @property
    def access_key_hint(self) -> str:
        """Last four characters of the access key, for logs"""
        creds = self.session.get_credentials()
        if creds is None or not creds.access_key:
            return "????"
        return creds.access_key[-4:]


class SessionCredentialProvider:
    """Resolve credentials through the standard boto3 provider chain"""

    def __init__(self, region: str, profile: Optional[str] = None):
        self.region = region
        self.profile = profile

    def resolve(self) -> Credentials:
        try:
            if self.profile:
                session = boto3.Session(profile_name=self.profile, region_name=self.region)
            else:
                session = boto3.Session(region_name=self.region)
            resolved = session.get_credentials()
        except ProfileNotFound as e:
            raise AuthenticationFailure(str(e), code='ProfileNotFound', operation='resolve')
        except BotoCoreError as e:
            raise AuthenticationFailure(str(e), code=type(e).__name__, operation='resolve')

        if resolved is None:
            raise AuthenticationFailure(
                "No AWS credentials found in the provider chain",
                code='NoCredentials',
                operation='resolve'
            )

        credentials = Credentials(session=session, region=self.region, profile=self.profile)
        logger.debug(f"Resolved credentials for profile {self.profile or 'default'} "
                     f"(key ...{credentials.access_key_hint}) in {self.region}")
        return credentials
