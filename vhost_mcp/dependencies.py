"""Dependency injection container for vhost MCP.

Wires the core components together from one Config, assembled once at
process start.
"""

from dataclasses import dataclass

from vhost_mcp.config import Config
from vhost_mcp.models import SSHTarget
from vhost_mcp.services.driver import ReconciliationDriver
from vhost_mcp.services.session import SessionProvider
from vhost_mcp.services.state_store import StateStore
from vhost_mcp.services.store import RemoteArtifactStore


@dataclass
class Dependencies:
    """Container for vhost MCP dependencies.

    Example:
        deps = Dependencies.from_config(Config.from_env())
        response = await deps.driver.apply(desired)
    """

    config: Config
    target: SSHTarget
    provider: SessionProvider
    store: RemoteArtifactStore
    state: StateStore
    driver: ReconciliationDriver

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from the environment.

        Raises:
            FileNotFoundError: If strict host key checking has no known_hosts
            ValidationError: If host or credential settings are missing
        """
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(cls, config: Config) -> "Dependencies":
        """Create dependencies with custom configuration."""
        target = config.ssh_target()
        provider = SessionProvider(
            known_hosts=config.known_hosts_path,
            connect_timeout=config.connect_timeout,
            reuse_connection=config.settings.reuse_connection,
            insecure=config.host_keys.is_insecure,
        )
        store = RemoteArtifactStore(
            provider,
            target,
            command_timeout=config.command_timeout,
            use_sudo=config.settings.use_sudo,
        )
        state = StateStore(config.settings.state_file)
        driver = ReconciliationDriver(store, state)
        return cls(
            config=config,
            target=target,
            provider=provider,
            store=store,
            state=state,
            driver=driver,
        )

    async def cleanup(self) -> None:
        """Clean up resources (close all connections)."""
        await self.provider.close_all()
