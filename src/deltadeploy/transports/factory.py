"""Transport selection.

Backends are looked up by protocol in a registry. The built-in backends are
``manual`` (LocalTransport) and ``s3`` (S3Transport); a host can register
others with register_transport().
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from deltadeploy.core.config import DeploymentConfig
from deltadeploy.core.types import DeployProtocol
from deltadeploy.deploy.types import TransportError
from deltadeploy.transports.base import Transport
from deltadeploy.transports.local import LocalTransport
from deltadeploy.transports.s3 import S3Transport

logger = logging.getLogger(__name__)

# Builds a transport from a site's deployment configuration
TransportFactory = Callable[[DeploymentConfig], Transport]


def _create_local(config: DeploymentConfig) -> Transport:
    target_dir = config.options.get("target_dir")
    if not target_dir:
        raise TransportError("Manual deployment requires a 'target_dir' option")
    return LocalTransport(target_dir)


def _create_s3(config: DeploymentConfig) -> Transport:
    options = config.options
    bucket = options.get("bucket")
    if not bucket:
        raise TransportError("S3 deployment requires a 'bucket' option")
    return S3Transport(
        bucket=bucket,
        endpoint_url=options.get("endpoint_url"),
        access_key=options.get("access_key"),
        secret_key=options.get("secret_key"),
        region=options.get("region") or "us-east-1",
        max_workers=int(options.get("max_workers") or 4),
    )


_REGISTRY: dict[DeployProtocol, TransportFactory] = {
    DeployProtocol.MANUAL: _create_local,
    DeployProtocol.S3: _create_s3,
}


def register_transport(protocol: DeployProtocol, factory: TransportFactory) -> None:
    """Register (or replace) the backend of a protocol.

    Args:
        protocol: Protocol the backend implements.
        factory: Callable building the transport from a DeploymentConfig.
    """
    _REGISTRY[protocol] = factory
    logger.debug("Registered transport for %s", protocol.value)


def create_transport(config: DeploymentConfig) -> Transport:
    """Factory function to create a transport from configuration.

    Args:
        config: Deployment block of the site configuration.

    Returns:
        Configured Transport instance.

    Raises:
        TransportError: If the protocol has no backend or its options are
            incomplete.
    """
    factory = _REGISTRY.get(config.protocol)
    if factory is None:
        raise TransportError(f"No transport available for protocol: {config.protocol.value}")
    return factory(config)


def check_connection(config: DeploymentConfig) -> str:
    """Check that a deployment target is reachable.

    Returns:
        Human-readable location of the target.

    Raises:
        TransportError: If the transport cannot be created or connected.
    """
    transport = create_transport(config)
    try:
        transport.test_connection()
    finally:
        transport.close()
    logger.info("Connection to %s OK", transport.location)
    return transport.location
