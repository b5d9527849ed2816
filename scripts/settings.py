import math
import os
from dataclasses import dataclass
from getpass import getpass

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from errors import AuthenticationFailed, InvalidInput

DEFAULT_TARGET_TYPE = 'g6.8xlarge'
DEFAULT_REGION_PROMPT = 'ap-southeast-1'
DEFAULT_SETTLE_SECONDS = 2
# Same cadence as the boto3 instance_stopped / instance_running waiters
DEFAULT_WAIT_DELAY = 15
DEFAULT_WAIT_MAX_ATTEMPTS = 40


@dataclass(frozen=True)
class Settings:
    """Run configuration, built once at startup and handed to every step."""
    region: str
    access_key_id: str = None
    secret_access_key: str = None
    session_token: str = None
    target_type: str = DEFAULT_TARGET_TYPE
    settle_seconds: float = DEFAULT_SETTLE_SECONDS
    wait_delay: int = DEFAULT_WAIT_DELAY
    wait_max_attempts: int = DEFAULT_WAIT_MAX_ATTEMPTS

    @property
    def waiter_config(self):
        return {'Delay': self.wait_delay, 'MaxAttempts': self.wait_max_attempts}

    def session(self):
        return boto3.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            aws_session_token=self.session_token,
            region_name=self.region,
        )

    def ec2_client(self):
        return self.session().client('ec2', region_name=self.region)


def _number_from_env(env, name, default, cast):
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be a number, got '{raw}'")
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be a finite number, got '{raw}'")
    if value < 0:
        raise InvalidInput(f"{name} must not be negative, got '{raw}'")
    return value


def resolve_credentials(access_key_id=None, secret_access_key=None, env=None, prompt=input, secret_prompt=getpass):
    """Flags win over the environment; anything still missing is prompted for."""
    env = os.environ if env is None else env
    access_key_id = access_key_id or env.get('AWS_ACCESS_KEY_ID')
    secret_access_key = secret_access_key or env.get('AWS_SECRET_ACCESS_KEY')

    if not access_key_id:
        access_key_id = prompt("Enter AWS Access Key ID: ").strip()
    if not secret_access_key:
        secret_access_key = secret_prompt("Enter AWS Secret Access Key: ").strip()

    if not access_key_id or not secret_access_key:
        raise InvalidInput("AWS credentials are required (flags, environment or prompt)")
    return access_key_id, secret_access_key


def load_settings(region, target_type=None, access_key_id=None, secret_access_key=None,
                  env=None, prompt=input, secret_prompt=getpass, dotenv=True):
    if dotenv:
        load_dotenv()
    env = os.environ if env is None else env

    if not region:
        raise InvalidInput("AWS region is required")

    # A session token only belongs to a key pair taken wholly from the environment
    from_flags = access_key_id or secret_access_key
    session_token = None if from_flags else env.get('AWS_SESSION_TOKEN') or None
    access_key_id, secret_access_key = resolve_credentials(
        access_key_id, secret_access_key, env=env, prompt=prompt, secret_prompt=secret_prompt
    )
    target_type = target_type or env.get('EC2_CONVERT_TARGET_TYPE') or DEFAULT_TARGET_TYPE

    return Settings(
        region=region,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=session_token,
        target_type=target_type,
        settle_seconds=_number_from_env(env, 'EC2_CONVERT_SETTLE_SECONDS', DEFAULT_SETTLE_SECONDS, float),
        wait_delay=_number_from_env(env, 'EC2_CONVERT_WAIT_DELAY', DEFAULT_WAIT_DELAY, int),
        wait_max_attempts=_number_from_env(env, 'EC2_CONVERT_WAIT_MAX_ATTEMPTS', DEFAULT_WAIT_MAX_ATTEMPTS, int),
    )


def verify_credentials(ec2, region):
    """Cheap authenticated call; fails fast before any instance lookup."""
    try:
        ec2.describe_regions()
    except (ClientError, BotoCoreError) as e:
        raise AuthenticationFailed(
            "Failed to authenticate with AWS. Please check your credentials.",
            operation='describe-regions',
            region=region,
            detail=str(e),
        )
