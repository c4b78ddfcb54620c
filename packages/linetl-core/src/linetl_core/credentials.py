"""Credential pool with health tracking, rotation and cooldowns."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Collection, Mapping, Sequence
from dataclasses import dataclass

from linetl_core.ports.orchestrator import ConfigurationError, TranslationErrorCode
from linetl_schemas.config import CooldownConfig, CredentialConfig
from linetl_schemas.llm import LlmEndpointTarget
from linetl_schemas.primitives import CredentialHealth, FailureKind


@dataclass(slots=True)
class Credential:
    """An API key bound to an endpoint, owned by a CredentialPool."""

    name: str
    api_key: str
    base_url: str
    organization: str | None = None
    health: CredentialHealth = CredentialHealth.HEALTHY
    cooling_until: float | None = None

    def endpoint(self, timeout_s: float) -> LlmEndpointTarget:
        """Build the runtime endpoint target for this credential.

        Args:
            timeout_s: Request timeout in seconds.

        Returns:
            LlmEndpointTarget: Endpoint settings for one call.
        """
        return LlmEndpointTarget(
            credential=self.name,
            base_url=self.base_url,
            api_key=self.api_key,
            organization=self.organization,
            timeout_s=timeout_s,
        )


@dataclass(frozen=True, slots=True)
class HealthTransition:
    """Result of reporting a failure to the pool."""

    credential: str
    health: CredentialHealth
    cooldown_s: float | None = None


class PoolExhaustedError(Exception):
    """No credential is currently usable."""

    def __init__(self, retry_at: float | None) -> None:
        """Initialize the error.

        Args:
            retry_at: Clock value at which the earliest cooldown ends, or None
                when every credential is dead.
        """
        if retry_at is None:
            message = "all credentials are dead"
        else:
            message = "all credentials are cooling down"
        super().__init__(message)
        self.retry_at = retry_at

    @property
    def all_dead(self) -> bool:
        """Whether no credential can recover during this run."""
        return self.retry_at is None


class CredentialPool:
    """Round-robin credential selection with failover.

    Auth and quota failures kill a credential for the rest of the run; rate
    limits and transport failures cool it down. All state changes happen under
    a single lock.
    """

    def __init__(
        self,
        credentials: Sequence[Credential],
        *,
        rate_limit_cooldown_s: float = 20.0,
        transient_cooldown_s: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the pool.

        Args:
            credentials: Credentials in rotation order.
            rate_limit_cooldown_s: Cooldown after a rate-limit failure.
            transient_cooldown_s: Cooldown after a transport failure.
            clock: Monotonic clock used for cooldown expiry.

        Raises:
            ConfigurationError: If no credentials are provided.
        """
        if not credentials:
            raise ConfigurationError(
                "At least one credential is required",
                field="dispatch.credentials",
                code=TranslationErrorCode.NO_CREDENTIALS,
            )
        self._credentials = list(credentials)
        self._cooldowns = {
            FailureKind.RATE_LIMIT: rate_limit_cooldown_s,
            FailureKind.TRANSPORT: transient_cooldown_s,
        }
        self._clock = clock
        self._cursor = 0
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        credentials: Sequence[Credential],
        cooldown: CooldownConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> CredentialPool:
        """Create a pool using configured cooldowns.

        Args:
            credentials: Resolved credentials.
            cooldown: Cooldown configuration.
            clock: Monotonic clock used for cooldown expiry.

        Returns:
            CredentialPool: Configured pool.
        """
        return cls(
            credentials,
            rate_limit_cooldown_s=cooldown.rate_limit_s,
            transient_cooldown_s=cooldown.transient_s,
            clock=clock,
        )

    @property
    def secrets(self) -> list[str]:
        """API keys held by the pool, for log redaction."""
        return [credential.api_key for credential in self._credentials]

    def now(self) -> float:
        """Return the pool clock value."""
        return self._clock()

    def snapshot(self) -> dict[str, CredentialHealth]:
        """Return the current health of every credential by name."""
        return {
            credential.name: credential.health for credential in self._credentials
        }

    async def acquire(self, exclude: Collection[str] = ()) -> Credential:
        """Select the next healthy credential.

        Args:
            exclude: Names to avoid when another healthy credential exists.

        Returns:
            Credential: Selected credential.

        Raises:
            PoolExhaustedError: If no credential is healthy.
        """
        async with self._lock:
            now = self._clock()
            self._expire_cooldowns(now)
            count = len(self._credentials)
            healthy = [
                position % count
                for position in range(self._cursor, self._cursor + count)
                if self._credentials[position % count].health
                == CredentialHealth.HEALTHY
            ]
            if not healthy:
                raise PoolExhaustedError(self._earliest_recovery())
            preferred = [
                index
                for index in healthy
                if self._credentials[index].name not in exclude
            ]
            chosen = (preferred or healthy)[0]
            self._cursor = (chosen + 1) % count
            return self._credentials[chosen]

    async def report_failure(
        self, credential: Credential, kind: FailureKind
    ) -> HealthTransition:
        """Record a failed request against a credential.

        Args:
            credential: Credential that failed.
            kind: Failure classification.

        Returns:
            HealthTransition: The credential's resulting health.
        """
        async with self._lock:
            if credential.health == CredentialHealth.DEAD:
                return HealthTransition(credential.name, CredentialHealth.DEAD)
            if kind in {FailureKind.AUTH, FailureKind.QUOTA}:
                credential.health = CredentialHealth.DEAD
                credential.cooling_until = None
                return HealthTransition(credential.name, CredentialHealth.DEAD)
            cooldown_s = self._cooldowns[FailureKind(kind)]
            until = self._clock() + cooldown_s
            if credential.cooling_until is not None:
                until = max(until, credential.cooling_until)
            credential.health = CredentialHealth.COOLING
            credential.cooling_until = until
            return HealthTransition(
                credential.name, CredentialHealth.COOLING, cooldown_s
            )

    async def report_success(self, credential: Credential) -> None:
        """Record a successful request, clearing any cooldown.

        Args:
            credential: Credential that succeeded.
        """
        async with self._lock:
            if credential.health == CredentialHealth.COOLING:
                credential.health = CredentialHealth.HEALTHY
                credential.cooling_until = None

    def _expire_cooldowns(self, now: float) -> None:
        for credential in self._credentials:
            if (
                credential.health == CredentialHealth.COOLING
                and credential.cooling_until is not None
                and credential.cooling_until <= now
            ):
                credential.health = CredentialHealth.HEALTHY
                credential.cooling_until = None

    def _earliest_recovery(self) -> float | None:
        pending = [
            credential.cooling_until
            for credential in self._credentials
            if credential.health == CredentialHealth.COOLING
            and credential.cooling_until is not None
        ]
        return min(pending) if pending else None


def resolve_credentials(
    configs: Sequence[CredentialConfig], environ: Mapping[str, str]
) -> list[Credential]:
    """Resolve configured credentials into pool entries.

    Args:
        configs: Credential configurations.
        environ: Environment used to resolve ``api_key_env``.

    Returns:
        list[Credential]: Credentials in configured order.

    Raises:
        ConfigurationError: If a referenced environment variable is unset.
    """
    credentials: list[Credential] = []
    for config in configs:
        api_key = config.api_key
        if api_key is None and config.api_key_env is not None:
            api_key = environ.get(config.api_key_env)
        if not api_key:
            raise ConfigurationError(
                f"Missing API key for credential {config.name!r}",
                field="dispatch.credentials.api_key_env",
                provided=config.api_key_env,
                code=TranslationErrorCode.NO_CREDENTIALS,
            )
        credentials.append(
            Credential(
                name=config.name,
                api_key=api_key,
                base_url=config.base_url,
                organization=config.organization,
            )
        )
    return credentials
